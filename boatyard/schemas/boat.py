from pydantic import BaseModel, ConfigDict, field_validator
from typing import List, Optional
from datetime import datetime
import math
from boatyard.placement.records import BoatType
from boatyard.validators import (
    string_length_validator,
    bounded_int_optional_validator,
    positive_float_optional_validator,
)

class BoatBase(BaseModel):
    name: str
    boat_type: BoatType = BoatType.CUSTOMER
    owner: Optional[str] = None
    hull_id: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    length: Optional[float] = None

    model_config = ConfigDict(protected_namespaces=())

class BoatCreate(BoatBase):
    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return string_length_validator(255, 'Boat name')(v)

    @field_validator('year')
    @classmethod
    def validate_year(cls, v: Optional[int]) -> Optional[int]:
        return bounded_int_optional_validator(1900, 2100, 'Year')(v)

    @field_validator('length')
    @classmethod
    def validate_length(cls, v: Optional[float]) -> Optional[float]:
        return positive_float_optional_validator('Length')(v)

class BoatResponse(BoatBase):
    id: str
    location_name: Optional[str] = None
    display_slot: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

class PaginatedBoatsResponse(BaseModel):
    boats: List[BoatResponse]
    total_boats: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def create(cls, boats: List[BoatResponse], total_count: int, page: int, page_size: int):
        total_pages = math.ceil(total_count / page_size) if total_count > 0 else 0

        return cls(
            boats=boats,
            total_boats=total_count,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1
        )

class BoatMovementResponse(BaseModel):
    id: int
    boat_id: str
    boat_type: BoatType
    from_location: Optional[str] = None
    from_slot: Optional[str] = None
    to_location: Optional[str] = None
    to_slot: Optional[str] = None
    moved_by: Optional[str] = None
    notes: Optional[str] = None
    moved_at: datetime

    model_config = ConfigDict(from_attributes=True)
