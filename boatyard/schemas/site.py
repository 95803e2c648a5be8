from pydantic import BaseModel, field_validator
from typing import Optional
from boatyard.validators import string_length_validator

class SiteBase(BaseModel):
    name: str
    address: Optional[str] = None

class SiteCreate(SiteBase):
    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return string_length_validator(255, 'Site name')(v)

class SiteResponse(SiteBase):
    id: str
    location_count: int = 0

    @classmethod
    def model_validate(cls, obj):
        location_count = len(obj.locations) if getattr(obj, 'locations', None) else 0
        return super().model_validate({
            'id': obj.id,
            'name': obj.name,
            'address': obj.address,
            'location_count': location_count,
        })
