from sqlalchemy import Column, String, Integer, DateTime, Enum, Text
from boatyard.database import Base
from boatyard.placement.records import BoatType
from datetime import datetime, timezone

class BoatMovement(Base):
    __tablename__ = "boat_movements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # not a foreign key: history outlives the boat row
    boat_id = Column(String(36), nullable=False, index=True)
    boat_type = Column(Enum(BoatType, values_callable=lambda e: [m.value for m in e]), nullable=False, index=True)
    from_location = Column(String(255), nullable=True)
    from_slot = Column(String(20), nullable=True)
    to_location = Column(String(255), nullable=True)
    to_slot = Column(String(20), nullable=True)
    moved_by = Column(String(255), nullable=True, index=True)
    notes = Column(Text, nullable=True)
    moved_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc), index=True)

    def __repr__(self):
        return f"<BoatMovement(boat_id='{self.boat_id}', {self.from_location}/{self.from_slot} -> {self.to_location}/{self.to_slot})>"
