from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from boatyard.database import get_db
from boatyard.crud import boat as boat_crud
from boatyard.crud import boat_movement as movement_crud
from boatyard.crud.placement import placement_session
from boatyard.placement.records import BoatType
from boatyard.schemas.boat import (
    BoatCreate,
    BoatResponse,
    BoatMovementResponse,
    PaginatedBoatsResponse,
)

router = APIRouter(
    prefix="/boats",
    tags=["boats"]
)

def _boat_not_found():
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=[{"field": "boat_id", "message": "Boat not found"}]
    )

@router.get("/", response_model=PaginatedBoatsResponse)
def get_boats(
    page: int = Query(1, ge=1, description="Page number (starts from 1)"),
    page_size: int = Query(10, ge=1, le=100, description="Number of items per page"),
    search: Optional[str] = Query(None, description="Search name, owner, hull ID or model"),
    boat_type: Optional[str] = Query(None, description="Filter by boat type"),
    unassigned: Optional[bool] = Query(None, description="Only boats without (or with) a placement"),
    db: Session = Depends(get_db)
):
    """Get boats with pagination and filtering"""
    type_enum = None
    if boat_type:
        try:
            type_enum = BoatType(boat_type.lower())
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=[{"field": "boat_type", "message": f"Invalid boat type. Must be one of: {[t.value for t in BoatType]}"}]
            )

    boats, total_count = boat_crud.get_boats(
        db, page=page, page_size=page_size, search=search, boat_type=type_enum, unassigned=unassigned
    )
    return PaginatedBoatsResponse.create(
        boats=[BoatResponse.model_validate(b) for b in boats],
        total_count=total_count,
        page=page,
        page_size=page_size
    )

@router.get("/{boat_id}", response_model=BoatResponse)
def get_boat(boat_id: str, db: Session = Depends(get_db)):
    """Get boat by ID"""
    boat = boat_crud.get_boat(db, boat_id)
    if not boat:
        raise _boat_not_found()
    return BoatResponse.model_validate(boat)

@router.post("/", response_model=BoatResponse, status_code=status.HTTP_201_CREATED)
def create_boat(boat: BoatCreate, db: Session = Depends(get_db)):
    """Create new (unplaced) boat"""
    return BoatResponse.model_validate(boat_crud.create_boat(db, boat))

@router.delete("/{boat_id}", response_model=BoatResponse)
def delete_boat(boat_id: str, db: Session = Depends(get_db)):
    """Delete boat, dropping whatever slot or pool membership it holds"""
    boat = boat_crud.get_boat(db, boat_id)
    if not boat:
        raise _boat_not_found()
    response = BoatResponse.model_validate(boat)
    with placement_session(db) as engine:
        engine.drop_boat(boat_id)
    return response

@router.get("/{boat_id}/movements", response_model=List[BoatMovementResponse])
def get_boat_movements(
    boat_id: str,
    limit: int = Query(10, ge=1, le=100, description="Maximum results"),
    db: Session = Depends(get_db)
):
    """Movement history for a boat, most recent first"""
    movements, _ = movement_crud.get_movements_for_boat(db, boat_id, limit=limit)
    return [BoatMovementResponse.model_validate(m) for m in movements]
