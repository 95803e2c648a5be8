from sqlalchemy import Column, String, Integer, Float, Enum
from boatyard.database import Base
from boatyard.placement.records import BoatType
import uuid

class Boat(Base):
    __tablename__ = "boats"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False, index=True)
    boat_type = Column(Enum(BoatType, values_callable=lambda e: [m.value for m in e]), nullable=False, default=BoatType.CUSTOMER, index=True)
    owner = Column(String(255), nullable=True, index=True)
    hull_id = Column(String(64), nullable=True, index=True)
    make = Column(String(255), nullable=True)
    model = Column(String(255), nullable=True)
    year = Column(Integer, nullable=True)
    length = Column(Float, nullable=True)

    # Denormalized placement, written only by the placement engine
    location_name = Column(String(255), nullable=True, index=True)
    display_slot = Column(String(20), nullable=True)

    def __repr__(self):
        return f"<Boat(id='{self.id}', name='{self.name}', location='{self.location_name}', slot='{self.display_slot}')>"
