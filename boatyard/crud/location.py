from sqlalchemy.orm import Session
from typing import List, Optional
from boatyard.models.location import Location
from boatyard.placement.records import LocationKind
from boatyard.schemas.location import LocationCreate

def get_location(db: Session, location_id: str) -> Optional[Location]:
    return db.query(Location).filter(Location.id == location_id).first()

def get_location_by_name(db: Session, name: str) -> Optional[Location]:
    return db.query(Location).filter(Location.name == name).first()

def get_locations(
    db: Session,
    site_id: Optional[str] = None,
    kind: Optional[LocationKind] = None,
) -> List[Location]:
    query = db.query(Location)
    if site_id:
        query = query.filter(Location.site_id == site_id)
    if kind:
        query = query.filter(Location.kind == kind)
    return query.order_by(Location.name).all()

def create_location(db: Session, location: LocationCreate) -> Location:
    """Create an empty location"""
    db_location = Location(
        **location.model_dump(),
        boats={},
        pool_boats=[],
    )
    try:
        db.add(db_location)
        db.commit()
        db.refresh(db_location)
        return db_location
    except Exception:
        db.rollback()
        raise
