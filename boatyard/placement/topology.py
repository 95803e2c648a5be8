"""
Slot topology for storage locations.

A grid location accepts every in-range cell. A u-shaped location is an
open-topped perimeter: its left column, right column and bottom row. Every
caller that needs to know whether a cell exists (grid painting, auto-placement,
capacity) goes through is_valid_slot.
"""
import math
from typing import Iterator, Optional, Union
from boatyard.placement.records import (
    LayoutShape,
    LocationRecord,
    OccupancyRatio,
    SlotAddress,
    POOL_SLOT,
    UNBOUNDED,
)


def _shape_of(shape: Union[LayoutShape, str, None]) -> LayoutShape:
    if isinstance(shape, LayoutShape):
        return shape
    # locations created without a layout render as plain grids
    return LayoutShape(shape) if shape else LayoutShape.GRID


def is_valid_slot(shape, rows: int, columns: int, row: int, col: int) -> bool:
    if row < 0 or col < 0 or row >= rows or col >= columns:
        return False
    if _shape_of(shape) == LayoutShape.U_SHAPED:
        return col == 0 or col == columns - 1 or row == rows - 1
    return True


def is_valid_slot_in(location: LocationRecord, slot: SlotAddress) -> bool:
    if location.is_pool:
        return False
    return is_valid_slot(location.shape, location.rows, location.columns, slot.row, slot.col)


def iter_slots(location: LocationRecord) -> Iterator[SlotAddress]:
    """Valid slot addresses of a location in row-major order"""
    if location.is_pool:
        return
    for row in range(location.rows):
        for col in range(location.columns):
            if is_valid_slot(location.shape, location.rows, location.columns, row, col):
                yield SlotAddress(row, col)


def capacity(location: LocationRecord) -> Union[int, str]:
    if location.is_pool:
        return UNBOUNDED
    if _shape_of(location.shape) == LayoutShape.U_SHAPED:
        # reported capacity, not a count of valid cells: a 3x4 u has 8 slots but capacity 10
        return location.rows * 2 + location.columns
    return location.rows * location.columns


def occupied_count(location: LocationRecord) -> int:
    if location.is_pool:
        return len(location.pool_boats)
    return len(location.boats)


def occupancy_ratio(location: LocationRecord, occupied: Optional[int] = None) -> OccupancyRatio:
    """
    Occupied/total/percent for a location. Pools have no fixed capacity and
    always report 100 percent; that figure is a display convention, not a
    fill level.
    """
    if occupied is None:
        occupied = occupied_count(location)
    total = capacity(location)
    if total == UNBOUNDED:
        return OccupancyRatio(occupied=occupied, total=UNBOUNDED, percent=100)
    # half-up rounding, so 1 of 8 reads 13%
    percent = math.floor(occupied / total * 100 + 0.5) if total > 0 else 0
    return OccupancyRatio(occupied=occupied, total=total, percent=percent)


def find_first_vacant_slot(location: LocationRecord) -> Optional[SlotAddress]:
    for slot in iter_slots(location):
        if slot.key not in location.boats:
            return slot
    return None


def display_slot(location: LocationRecord, slot: Optional[SlotAddress]) -> str:
    if location.is_pool:
        return POOL_SLOT
    return slot.display
