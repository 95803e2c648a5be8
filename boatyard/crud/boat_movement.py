from sqlalchemy.orm import Session
from sqlalchemy import desc
from typing import List, Tuple
from datetime import datetime, timezone, timedelta
from boatyard.models.boat_movement import BoatMovement
from boatyard.placement.records import MovementEvent

def record_movement(db: Session, event: MovementEvent) -> BoatMovement:
    """Append one placement change to the movement log"""
    db_movement = BoatMovement(
        boat_id=event.boat_id,
        boat_type=event.boat_type,
        from_location=event.from_location,
        from_slot=event.from_slot,
        to_location=event.to_location,
        to_slot=event.to_slot,
        moved_by=event.moved_by,
        notes=event.notes,
    )
    try:
        db.add(db_movement)
        db.commit()
        db.refresh(db_movement)
        return db_movement
    except Exception:
        db.rollback()
        raise

def get_movements_for_boat(db: Session, boat_id: str, skip: int = 0, limit: int = 10) -> Tuple[List[BoatMovement], int]:
    query = db.query(BoatMovement).filter(BoatMovement.boat_id == boat_id)
    total_count = query.count()
    movements = query.order_by(desc(BoatMovement.moved_at), desc(BoatMovement.id)).offset(skip).limit(limit).all()
    return movements, total_count

def get_recent_movements(db: Session, days: int = 7, limit: int = 50) -> List[BoatMovement]:
    cutoff_date = datetime.now(timezone.utc) - timedelta(days=days)
    return db.query(BoatMovement)\
        .filter(BoatMovement.moved_at >= cutoff_date)\
        .order_by(desc(BoatMovement.moved_at), desc(BoatMovement.id))\
        .limit(limit)\
        .all()
