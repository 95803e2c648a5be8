from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, NamedTuple, Optional, Union
import enum

POOL_SLOT = "pool"
UNBOUNDED = "unbounded"


class LocationKind(enum.Enum):
    RACK = "rack"
    LOT = "lot"
    SHOP = "shop"
    POOL = "pool"


class LayoutShape(enum.Enum):
    GRID = "grid"
    U_SHAPED = "u-shaped"


class BoatType(enum.Enum):
    CUSTOMER = "customer"
    INVENTORY = "inventory"


class SlotAddress(NamedTuple):
    row: int
    col: int

    @property
    def key(self) -> str:
        """Storage key used in a location's occupancy map"""
        return f"{self.row}-{self.col}"

    @property
    def display(self) -> str:
        """Human-facing, 1-indexed slot label"""
        return f"{self.row + 1}-{self.col + 1}"

    @classmethod
    def parse(cls, value: Union["SlotAddress", tuple, list, str]) -> "SlotAddress":
        """Accept a SlotAddress, a (row, col) pair or a "row-col" storage key"""
        if isinstance(value, cls):
            return value
        if isinstance(value, (tuple, list)):
            if len(value) != 2:
                raise ValueError(f"Slot address must have 2 parts, got {len(value)}")
            return cls(int(value[0]), int(value[1]))
        if isinstance(value, str):
            parts = value.split("-")
            if len(parts) != 2 or not all(p.isdigit() for p in parts):
                raise ValueError(f"Slot key '{value}' must be in format row-col")
            return cls(int(parts[0]), int(parts[1]))
        raise ValueError(f"Unsupported slot address: {value!r}")


SlotRef = Union[SlotAddress, tuple, list, str]


class LocationRecord(BaseModel):
    """In-memory view of a storage location and its occupancy record"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    site_id: Optional[str] = None
    kind: LocationKind
    shape: Optional[LayoutShape] = None
    rows: int = 0
    columns: int = 0
    # slot key -> boat id; only for grid / u-shaped locations
    boats: Dict[str, str] = Field(default_factory=dict)
    # boat ids; only for pools
    pool_boats: List[str] = Field(default_factory=list)

    @property
    def is_pool(self) -> bool:
        return self.kind == LocationKind.POOL

    def __repr__(self):
        return f"<LocationRecord(id='{self.id}', name='{self.name}', kind='{self.kind.value}')>"


class BoatRecord(BaseModel):
    """In-memory view of a boat with its denormalized placement reference"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: Optional[str] = None
    boat_type: BoatType = BoatType.CUSTOMER
    location_name: Optional[str] = None
    display_slot: Optional[str] = None

    @property
    def is_assigned(self) -> bool:
        return self.location_name is not None

    def __repr__(self):
        return f"<BoatRecord(id='{self.id}', location='{self.location_name}', slot='{self.display_slot}')>"


class OccupancyRatio(BaseModel):
    occupied: int
    total: Union[int, str]
    percent: int


class MovementEvent(BaseModel):
    """A committed change of one boat's placement"""
    boat_id: str
    boat_type: BoatType
    from_location: Optional[str] = None
    from_slot: Optional[str] = None
    to_location: Optional[str] = None
    to_slot: Optional[str] = None
    moved_by: Optional[str] = None
    notes: Optional[str] = None
