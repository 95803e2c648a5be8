from pydantic import BaseModel, field_validator, model_validator
from typing import Optional
from boatyard.placement.records import SlotAddress
from boatyard.schemas.boat import BoatResponse
from boatyard.validators import non_empty_string_validator, non_empty_string_optional_validator

class _PlacementRequest(BaseModel):
    boat_id: str
    moved_by: Optional[str] = None
    notes: Optional[str] = None

    @field_validator('boat_id')
    @classmethod
    def validate_boat_id(cls, v: str) -> str:
        return non_empty_string_validator('Boat ID')(v)

class _TargetedRequest(_PlacementRequest):
    # location id or name
    location: Optional[str] = None
    row: Optional[int] = None
    col: Optional[int] = None

    @field_validator('location')
    @classmethod
    def validate_location(cls, v: Optional[str]) -> Optional[str]:
        return non_empty_string_optional_validator('Location')(v)

    @model_validator(mode='after')
    def validate_slot_pair(self):
        if (self.row is None) != (self.col is None):
            raise ValueError('Row and col must be given together')
        if self.row is not None and self.location is None:
            raise ValueError('A slot needs a location; omit row and col to unassign')
        return self

    @property
    def slot(self) -> Optional[SlotAddress]:
        if self.row is None:
            return None
        return SlotAddress(self.row, self.col)

class AssignRequest(_TargetedRequest):
    location: str

class MoveRequest(_TargetedRequest):
    """A move with no location unassigns the boat"""

class RemoveRequest(_PlacementRequest):
    pass

class AutoPlaceRequest(_PlacementRequest):
    location: str

class PlacementResponse(BaseModel):
    boat: BoatResponse
    changed: bool
    from_location: Optional[str] = None
    from_slot: Optional[str] = None
