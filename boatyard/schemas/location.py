from pydantic import BaseModel, field_validator, model_validator
from typing import Dict, List, Optional, Union
from boatyard.placement.records import LayoutShape, LocationKind, LocationRecord, OccupancyRatio
from boatyard.placement.topology import capacity, occupancy_ratio
from boatyard.validators import (
    string_length_validator,
    bounded_int_optional_validator,
)

MAX_DIMENSION = 100

class LocationCreate(BaseModel):
    name: str
    site_id: Optional[str] = None
    kind: LocationKind
    shape: Optional[LayoutShape] = None
    rows: Optional[int] = None
    columns: Optional[int] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return string_length_validator(255, 'Location name')(v)

    @field_validator('rows')
    @classmethod
    def validate_rows(cls, v: Optional[int]) -> Optional[int]:
        return bounded_int_optional_validator(1, MAX_DIMENSION, 'Rows')(v)

    @field_validator('columns')
    @classmethod
    def validate_columns(cls, v: Optional[int]) -> Optional[int]:
        return bounded_int_optional_validator(1, MAX_DIMENSION, 'Columns')(v)

    @model_validator(mode='after')
    def validate_layout(self):
        if self.kind == LocationKind.POOL:
            # pools hold a membership list only
            self.shape = None
            self.rows = 0
            self.columns = 0
            return self
        if self.rows is None or self.columns is None:
            raise ValueError('Rows and columns are required for rack, lot and shop locations')
        if self.shape is None:
            self.shape = LayoutShape.GRID
        return self

class LocationUpdate(BaseModel):
    name: Optional[str] = None
    site_id: Optional[str] = None
    shape: Optional[LayoutShape] = None
    rows: Optional[int] = None
    columns: Optional[int] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            return string_length_validator(255, 'Location name')(v)
        return v

    @field_validator('rows')
    @classmethod
    def validate_rows(cls, v: Optional[int]) -> Optional[int]:
        return bounded_int_optional_validator(1, MAX_DIMENSION, 'Rows')(v)

    @field_validator('columns')
    @classmethod
    def validate_columns(cls, v: Optional[int]) -> Optional[int]:
        return bounded_int_optional_validator(1, MAX_DIMENSION, 'Columns')(v)

    @property
    def changes_layout(self) -> bool:
        return any(v is not None for v in (self.shape, self.rows, self.columns))

class LocationResponse(BaseModel):
    id: str
    name: str
    site_id: Optional[str] = None
    kind: LocationKind
    shape: Optional[LayoutShape] = None
    rows: int
    columns: int
    boats: Dict[str, str]
    pool_boats: List[str]
    capacity: Union[int, str]
    occupancy: OccupancyRatio

    @classmethod
    def from_record(cls, record: LocationRecord) -> "LocationResponse":
        return cls(
            **record.model_dump(),
            capacity=capacity(record),
            occupancy=occupancy_ratio(record),
        )

class SlotCell(BaseModel):
    row: int
    col: int
    key: str
    display: str
    valid: bool
    boat_id: Optional[str] = None

class IntegrityReport(BaseModel):
    consistent: bool
    problems: List[str]
