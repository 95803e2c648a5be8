from typing import Dict, Iterable, List, Optional, Set, Union
from boatyard.placement.records import (
    BoatRecord,
    LocationRecord,
    POOL_SLOT,
    SlotAddress,
)
from boatyard.placement.topology import is_valid_slot_in


def occupant_of(location: LocationRecord, slot: SlotAddress) -> Optional[str]:
    if location.is_pool:
        return None
    return location.boats.get(SlotAddress.parse(slot).key)


def slot_of(location: LocationRecord, boat_id: str) -> Union[SlotAddress, str, None]:
    """Reverse lookup: where a boat sits inside one location"""
    if location.is_pool:
        return POOL_SLOT if boat_id in location.pool_boats else None
    # linear scan; per-location slot counts stay in the low hundreds
    for key, occupant in location.boats.items():
        if occupant == boat_id:
            return SlotAddress.parse(key)
    return None


def all_assigned_boat_ids(locations: Iterable[LocationRecord]) -> Set[str]:
    assigned = set()
    for location in locations:
        if location.is_pool:
            assigned.update(location.pool_boats)
        else:
            assigned.update(location.boats.values())
    return assigned


def boats_in_location(location: LocationRecord, boats: Iterable[BoatRecord]) -> List[BoatRecord]:
    if location.is_pool:
        members = set(location.pool_boats)
    else:
        members = set(location.boats.values())
    return [b for b in boats if b.id in members]


def unassigned_boats(locations: Iterable[LocationRecord], boats: Iterable[BoatRecord]) -> List[BoatRecord]:
    assigned = all_assigned_boat_ids(locations)
    return [b for b in boats if b.id not in assigned]


def find_inconsistencies(locations: Iterable[LocationRecord], boats: Iterable[BoatRecord]) -> List[str]:
    """
    Report every way the occupancy records and the boats' back-references
    disagree. An empty list means the placement invariants hold:

    - a slot holds at most one boat (guaranteed by the map itself)
    - a boat id appears in at most one location
    - a boat's location_name is set exactly when it is placed, and names that location
    - a boat's display_slot matches the slot it occupies
    - u-shaped locations only store perimeter slots
    """
    problems = []
    placements: Dict[str, List[tuple]] = {}

    for location in locations:
        if location.is_pool:
            if len(set(location.pool_boats)) != len(location.pool_boats):
                problems.append(f"Pool '{location.name}' lists a boat more than once")
            for boat_id in location.pool_boats:
                placements.setdefault(boat_id, []).append((location.name, POOL_SLOT))
            continue
        for key, boat_id in location.boats.items():
            try:
                slot = SlotAddress.parse(key)
            except ValueError:
                problems.append(f"Location '{location.name}' has malformed slot key '{key}'")
                continue
            if not is_valid_slot_in(location, slot):
                problems.append(f"Location '{location.name}' stores boat '{boat_id}' in invalid slot {slot.display}")
            placements.setdefault(boat_id, []).append((location.name, slot.display))

    for boat_id, places in placements.items():
        if len(places) > 1:
            names = ", ".join(f"{name} {slot}" for name, slot in places)
            problems.append(f"Boat '{boat_id}' is placed in more than one slot: {names}")

    for boat in boats:
        places = placements.get(boat.id, [])
        if not places:
            if boat.location_name is not None or boat.display_slot is not None:
                problems.append(
                    f"Boat '{boat.id}' claims '{boat.location_name}' {boat.display_slot} but no location holds it"
                )
            continue
        name, slot = places[0]
        if boat.location_name != name:
            problems.append(f"Boat '{boat.id}' claims location '{boat.location_name}' but is held by '{name}'")
        elif boat.display_slot != slot:
            problems.append(f"Boat '{boat.id}' claims slot '{boat.display_slot}' but occupies {slot}")

    return problems
