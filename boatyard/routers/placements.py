from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from boatyard.database import get_db
from boatyard.crud import boat as boat_crud
from boatyard.crud.placement import placement_session
from boatyard.placement.transitions import PlacementResult
from boatyard.schemas.boat import BoatResponse
from boatyard.schemas.placement import (
    AssignRequest,
    MoveRequest,
    RemoveRequest,
    AutoPlaceRequest,
    PlacementResponse,
)

router = APIRouter(
    prefix="/placements",
    tags=["placements"]
)

def _to_response(db: Session, result: PlacementResult) -> PlacementResponse:
    db_boat = boat_crud.get_boat(db, result.boat.id)
    return PlacementResponse(
        boat=BoatResponse.model_validate(db_boat),
        changed=result.changed,
        from_location=result.event.from_location if result.event else None,
        from_slot=result.event.from_slot if result.event else None,
    )

@router.post("/assign", response_model=PlacementResponse)
def assign_boat(request: AssignRequest, db: Session = Depends(get_db)):
    """Place an unassigned boat into a slot, or into a pool"""
    with placement_session(db) as engine:
        result = engine.assign(
            request.boat_id, request.location, request.slot,
            moved_by=request.moved_by, notes=request.notes
        )
    return _to_response(db, result)

@router.post("/move", response_model=PlacementResponse)
def move_boat(request: MoveRequest, db: Session = Depends(get_db)):
    """Move a boat to another slot or location; no location unassigns it"""
    with placement_session(db) as engine:
        result = engine.move(
            request.boat_id, request.location, request.slot,
            moved_by=request.moved_by, notes=request.notes
        )
    return _to_response(db, result)

@router.post("/remove", response_model=PlacementResponse)
def remove_boat(request: RemoveRequest, db: Session = Depends(get_db)):
    """Take a boat out of its location (no-op if it is not placed)"""
    with placement_session(db) as engine:
        result = engine.remove(request.boat_id, moved_by=request.moved_by, notes=request.notes)
    return _to_response(db, result)

@router.post("/auto-place", response_model=PlacementResponse)
def auto_place_boat(request: AutoPlaceRequest, db: Session = Depends(get_db)):
    """Place an unassigned boat into the first vacant slot of a location"""
    with placement_session(db) as engine:
        result = engine.auto_place(
            request.boat_id, request.location,
            moved_by=request.moved_by, notes=request.notes
        )
    return _to_response(db, result)
