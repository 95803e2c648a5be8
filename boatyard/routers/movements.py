from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List
from boatyard.database import get_db
from boatyard.crud import boat_movement as movement_crud
from boatyard.schemas.boat import BoatMovementResponse

router = APIRouter(
    prefix="/movements",
    tags=["movements"]
)

@router.get("/recent", response_model=List[BoatMovementResponse])
def get_recent_movements(
    days: int = Query(7, ge=1, le=365, description="Look back this many days"),
    limit: int = Query(50, ge=1, le=500, description="Maximum results"),
    db: Session = Depends(get_db)
):
    """Get the most recent boat movements"""
    movements = movement_crud.get_recent_movements(db, days=days, limit=limit)
    return [BoatMovementResponse.model_validate(m) for m in movements]
