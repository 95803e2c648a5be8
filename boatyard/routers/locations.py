from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from boatyard.database import get_db
from boatyard.crud import location as location_crud
from boatyard.crud import site as site_crud
from boatyard.crud.placement import load_boats, load_locations, placement_session
from boatyard.models.boat import Boat
from boatyard.placement.errors import LocationNotFound, NoVacantSlot
from boatyard.placement.occupancy import boats_in_location, find_inconsistencies
from boatyard.placement.records import LocationKind, LocationRecord, OccupancyRatio, SlotAddress
from boatyard.placement.topology import find_first_vacant_slot, is_valid_slot_in, occupancy_ratio
from boatyard.schemas.boat import BoatResponse
from boatyard.schemas.location import (
    IntegrityReport,
    LocationCreate,
    LocationResponse,
    LocationUpdate,
    SlotCell,
)

router = APIRouter(
    prefix="/locations",
    tags=["locations"]
)

def _get_record(db: Session, location_ref: str) -> LocationRecord:
    """Look a location up by id, then by name"""
    db_location = location_crud.get_location(db, location_ref) or location_crud.get_location_by_name(db, location_ref)
    if not db_location:
        raise LocationNotFound(location_ref)
    return LocationRecord.model_validate(db_location)

def _pool_has_no_slots():
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=[{"field": "location_id", "message": "Pool locations have no slots"}]
    )

@router.get("/", response_model=List[LocationResponse])
def get_locations(
    site_id: Optional[str] = Query(None, description="Filter by site"),
    kind: Optional[str] = Query(None, description="Filter by kind (rack, lot, shop, pool)"),
    db: Session = Depends(get_db)
):
    """Get locations with their occupancy"""
    kind_enum = None
    if kind:
        try:
            kind_enum = LocationKind(kind.lower())
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=[{"field": "kind", "message": f"Invalid kind. Must be one of: {[k.value for k in LocationKind]}"}]
            )
    locations = location_crud.get_locations(db, site_id=site_id, kind=kind_enum)
    return [LocationResponse.from_record(LocationRecord.model_validate(loc)) for loc in locations]

@router.get("/kinds", response_model=List[str])
def get_location_kinds():
    """Get available location kinds"""
    return [k.value for k in LocationKind]

@router.get("/integrity", response_model=IntegrityReport)
def check_integrity(db: Session = Depends(get_db)):
    """Compare every occupancy record with the boats' back-references"""
    problems = find_inconsistencies(load_locations(db), load_boats(db))
    return IntegrityReport(consistent=not problems, problems=problems)

@router.get("/{location_id}", response_model=LocationResponse)
def get_location(location_id: str, db: Session = Depends(get_db)):
    """Get location by ID or name"""
    return LocationResponse.from_record(_get_record(db, location_id))

@router.post("/", response_model=LocationResponse, status_code=status.HTTP_201_CREATED)
def create_location(location: LocationCreate, db: Session = Depends(get_db)):
    """Create new, empty location"""
    if location_crud.get_location_by_name(db, location.name):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=[{"field": "name", "message": "Location with this name already exists"}]
        )
    if location.site_id and not site_crud.get_site(db, location.site_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=[{"field": "site_id", "message": "Site not found"}]
        )
    created = location_crud.create_location(db, location)
    return LocationResponse.from_record(LocationRecord.model_validate(created))

@router.put("/{location_id}", response_model=LocationResponse)
def update_location(location_id: str, location: LocationUpdate, db: Session = Depends(get_db)):
    """Update location name, site or layout in one commit"""
    record = _get_record(db, location_id)
    update_data = location.model_dump(exclude_unset=True)

    changes = {}
    if 'site_id' in update_data:
        if location.site_id and not site_crud.get_site(db, location.site_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=[{"field": "site_id", "message": "Site not found"}]
            )
        changes['site_id'] = location.site_id
    if location.changes_layout and record.kind == LocationKind.POOL:
        raise _pool_has_no_slots()

    with placement_session(db) as engine:
        engine.update_location(
            record.id,
            name=location.name,
            shape=location.shape,
            rows=location.rows,
            columns=location.columns,
            **changes
        )

    db.expire_all()
    return LocationResponse.from_record(_get_record(db, record.id))

@router.delete("/{location_id}", response_model=LocationResponse)
def delete_location(
    location_id: str,
    moved_by: Optional[str] = Query(None, description="Recorded on the movement log of unassigned boats"),
    db: Session = Depends(get_db)
):
    """Delete location, unassigning every boat it holds"""
    record = _get_record(db, location_id)
    response = LocationResponse.from_record(record)
    with placement_session(db) as engine:
        engine.delete_location(record.id, moved_by=moved_by)
    return response

@router.get("/{location_id}/occupancy", response_model=OccupancyRatio)
def get_location_occupancy(location_id: str, db: Session = Depends(get_db)):
    """Occupied / total / percent for a location"""
    return occupancy_ratio(_get_record(db, location_id))

@router.get("/{location_id}/boats", response_model=List[BoatResponse])
def get_location_boats(location_id: str, db: Session = Depends(get_db)):
    """Boats held by a location"""
    record = _get_record(db, location_id)
    member_ids = [b.id for b in boats_in_location(record, load_boats(db))]
    if not member_ids:
        return []
    boats = db.query(Boat).filter(Boat.id.in_(member_ids)).order_by(Boat.name).all()
    return [BoatResponse.model_validate(b) for b in boats]

@router.get("/{location_id}/slots", response_model=List[SlotCell])
def get_location_slots(location_id: str, db: Session = Depends(get_db)):
    """Every cell of a location's grid, row-major, with validity and occupant"""
    record = _get_record(db, location_id)
    if record.kind == LocationKind.POOL:
        raise _pool_has_no_slots()
    cells = []
    for row in range(record.rows):
        for col in range(record.columns):
            slot = SlotAddress(row, col)
            cells.append(SlotCell(
                row=row,
                col=col,
                key=slot.key,
                display=slot.display,
                valid=is_valid_slot_in(record, slot),
                boat_id=record.boats.get(slot.key),
            ))
    return cells

@router.get("/{location_id}/first-vacant", response_model=SlotCell)
def get_first_vacant_slot(location_id: str, db: Session = Depends(get_db)):
    """First vacant slot in row-major order"""
    record = _get_record(db, location_id)
    if record.kind == LocationKind.POOL:
        raise _pool_has_no_slots()
    slot = find_first_vacant_slot(record)
    if slot is None:
        raise NoVacantSlot(record.name)
    return SlotCell(row=slot.row, col=slot.col, key=slot.key, display=slot.display, valid=True)
