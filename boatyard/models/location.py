from sqlalchemy import Column, String, Integer, ForeignKey, Enum, JSON
from sqlalchemy.orm import relationship
from boatyard.database import Base
from boatyard.placement.records import LocationKind, LayoutShape
import boatyard.models.site  # noqa: F401  (registers Site for the relationship)
import uuid

class Location(Base):
    __tablename__ = "locations"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    # boats reference their location by name, so it must stay unique
    name = Column(String(255), nullable=False, unique=True, index=True)
    site_id = Column(String(36), ForeignKey("sites.id", ondelete="SET NULL"), nullable=True, index=True)
    kind = Column(Enum(LocationKind, values_callable=lambda e: [m.value for m in e]), nullable=False, index=True)
    shape = Column(Enum(LayoutShape, values_callable=lambda e: [m.value for m in e]), nullable=True)
    rows = Column(Integer, nullable=False, default=0)
    columns = Column(Integer, nullable=False, default=0)

    # Occupancy map for grid / u-shaped locations: {"row-col": boat_id}
    boats = Column(JSON, nullable=False, default=dict)
    # Occupancy list for pools: [boat_id, ...]
    pool_boats = Column(JSON, nullable=False, default=list)

    # Relationships
    site = relationship("Site", back_populates="locations")

    def __repr__(self):
        return f"<Location(id='{self.id}', name='{self.name}', kind='{self.kind.value}')>"
