from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import List, Optional, Tuple
from boatyard.models.boat import Boat
from boatyard.models.location import Location
from boatyard.placement.occupancy import all_assigned_boat_ids
from boatyard.placement.records import BoatType, LocationRecord
from boatyard.schemas.boat import BoatCreate

def get_boat(db: Session, boat_id: str) -> Optional[Boat]:
    return db.query(Boat).filter(Boat.id == boat_id).first()

def get_boats(
    db: Session,
    page: int = 1,
    page_size: int = 10,
    search: Optional[str] = None,
    boat_type: Optional[BoatType] = None,
    unassigned: Optional[bool] = None,
) -> Tuple[List[Boat], int]:
    """Get boats with pagination and filtering"""
    query = db.query(Boat)

    if search:
        search_term = f"%{search}%"
        query = query.filter(
            or_(
                Boat.name.ilike(search_term),
                Boat.owner.ilike(search_term),
                Boat.hull_id.ilike(search_term),
                Boat.model.ilike(search_term)
            )
        )

    if boat_type:
        query = query.filter(Boat.boat_type == boat_type)

    if unassigned is not None:
        # occupancy records are authoritative, not the boats' back-references
        locations = [LocationRecord.model_validate(row) for row in db.query(Location).all()]
        assigned_ids = all_assigned_boat_ids(locations)
        if unassigned:
            query = query.filter(Boat.id.notin_(list(assigned_ids)))
        else:
            query = query.filter(Boat.id.in_(list(assigned_ids)))

    query = query.order_by(Boat.name, Boat.id)
    total_count = query.count()

    skip = (page - 1) * page_size
    boats = query.offset(skip).limit(page_size).all()

    return boats, total_count

def create_boat(db: Session, boat: BoatCreate) -> Boat:
    """Create a boat; new boats start unplaced"""
    db_boat = Boat(**boat.model_dump())
    try:
        db.add(db_boat)
        db.commit()
        db.refresh(db_boat)
        return db_boat
    except Exception:
        db.rollback()
        raise
