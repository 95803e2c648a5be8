"""
Assignment transition engine.

Every placement change (assign, move, remove, auto-place, and the cascades
triggered by deleting a location or a boat) runs through PlacementEngine. A
transition is planned on copies of the affected records, handed to the
persistence collaborator, and only applied to the in-memory records once the
collaborator reports success. A rejected or unsaved transition therefore
leaves the records exactly as they were.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterable, List, Optional, Union
from pydantic import BaseModel
from boatyard.placement.errors import (
    AssetAlreadyAssigned,
    AssetNotFound,
    InvalidSlot,
    LocationNameTaken,
    LocationNotFound,
    NoVacantSlot,
    PersistenceFailed,
    SlotOccupied,
    TransitionInFlight,
)
from boatyard.placement.occupancy import (
    boats_in_location,
    occupant_of,
    slot_of,
    unassigned_boats,
)
from boatyard.placement.records import (
    BoatRecord,
    LayoutShape,
    LocationRecord,
    MovementEvent,
    POOL_SLOT,
    SlotAddress,
    SlotRef,
)
from boatyard.placement.topology import (
    display_slot,
    find_first_vacant_slot,
    is_valid_slot,
    is_valid_slot_in,
    occupancy_ratio,
)

logger = logging.getLogger(__name__)

LocationRef = Union[LocationRecord, str]
BoatRef = Union[BoatRecord, str]
MovementListener = Callable[[MovementEvent], None]

# marks an update_location argument the caller did not pass
_UNCHANGED = object()


class PlacementResult(BaseModel):
    boat: BoatRecord
    changed: bool
    event: Optional[MovementEvent] = None


def _overwrite(target: BaseModel, source: BaseModel) -> None:
    # keep caller-held references valid by updating the record in place
    for name in type(target).model_fields:
        setattr(target, name, getattr(source, name))


def _clear_boat(location: LocationRecord, boat_id: str) -> bool:
    current = slot_of(location, boat_id)
    if current is None:
        return False
    if location.is_pool:
        location.pool_boats = [b for b in location.pool_boats if b != boat_id]
    else:
        del location.boats[current.key]
    return True


class PlacementEngine:
    """
    Owns one snapshot of locations and boats and applies placement changes
    to it. At most one transition runs at a time; a submission made while
    another is still being persisted fails with TransitionInFlight.

    `persist(locations, boats, **removed)` receives the changed records and
    returns True once they are durable. Deletions are passed as the keyword
    arguments `removed_locations` / `removed_boats`.
    """

    def __init__(
        self,
        locations: Iterable[LocationRecord],
        boats: Iterable[BoatRecord],
        persist: Optional[Callable[..., bool]] = None,
        listeners: Optional[Iterable[MovementListener]] = None,
        gate: Optional[threading.Lock] = None,
    ):
        self.locations: List[LocationRecord] = list(locations)
        self.boats: List[BoatRecord] = list(boats)
        self._persist = persist
        self._listeners: List[MovementListener] = list(listeners or [])
        self._gate = gate or threading.Lock()

    # -- lookups --
    def add_listener(self, listener: MovementListener) -> None:
        self._listeners.append(listener)

    @property
    def in_flight(self) -> bool:
        return self._gate.locked()

    def get_location(self, ref: LocationRef) -> LocationRecord:
        """Resolve a location by record, id or name"""
        key = ref.id if isinstance(ref, LocationRecord) else ref
        for location in self.locations:
            if location.id == key:
                return location
        for location in self.locations:
            if location.name == key:
                return location
        raise LocationNotFound(key)

    def get_boat(self, ref: BoatRef) -> BoatRecord:
        key = ref.id if isinstance(ref, BoatRecord) else ref
        for boat in self.boats:
            if boat.id == key:
                return boat
        raise AssetNotFound(key)

    def find_location_by_name(self, name: str) -> Optional[LocationRecord]:
        return next((loc for loc in self.locations if loc.name == name), None)

    def holder_of(self, boat_id: str) -> Optional[LocationRecord]:
        """The location whose occupancy record holds the boat, if any"""
        for location in self.locations:
            if slot_of(location, boat_id) is not None:
                return location
        return None

    def unassigned_boats(self) -> List[BoatRecord]:
        return unassigned_boats(self.locations, self.boats)

    def boats_in(self, ref: LocationRef) -> List[BoatRecord]:
        return boats_in_location(self.get_location(ref), self.boats)

    def occupancy(self, ref: LocationRef):
        return occupancy_ratio(self.get_location(ref))

    # -- transitions --
    def assign(self, boat: BoatRef, target_location: LocationRef, target_slot: Optional[SlotRef] = None,
               moved_by: Optional[str] = None, notes: Optional[str] = None) -> PlacementResult:
        with self._transition():
            record = self.get_boat(boat)
            target = self.get_location(target_location)
            return self._assign(record, target, target_slot, moved_by, notes)

    def move(self, boat: BoatRef, target_location: Optional[LocationRef] = None,
             target_slot: Optional[SlotRef] = None, moved_by: Optional[str] = None,
             notes: Optional[str] = None) -> PlacementResult:
        with self._transition():
            record = self.get_boat(boat)
            target = self.get_location(target_location) if target_location is not None else None
            return self._move(record, target, target_slot, moved_by, notes)

    def remove(self, boat: BoatRef, moved_by: Optional[str] = None, notes: Optional[str] = None) -> PlacementResult:
        return self.move(boat, None, None, moved_by=moved_by, notes=notes)

    def auto_place(self, boat: BoatRef, target_location: LocationRef, moved_by: Optional[str] = None,
                   notes: Optional[str] = None) -> PlacementResult:
        """Assign an unplaced boat to the first vacant slot of a location"""
        with self._transition():
            record = self.get_boat(boat)
            target = self.get_location(target_location)
            slot = None
            if not target.is_pool:
                slot = find_first_vacant_slot(target)
                if slot is None:
                    raise NoVacantSlot(target.name)
            return self._assign(record, target, slot, moved_by, notes)

    def delete_location(self, location: LocationRef, moved_by: Optional[str] = None) -> List[BoatRecord]:
        """
        Remove a location, first unassigning every boat it holds or that
        still names it. Returns the boats that were unassigned.
        """
        with self._transition():
            target = self.get_location(location)
            held = {b.id for b in boats_in_location(target, self.boats)}
            affected = [b for b in self.boats if b.id in held or b.location_name == target.name]

            staged_boats = []
            events = []
            for boat in affected:
                staged = boat.model_copy()
                staged.location_name = None
                staged.display_slot = None
                staged_boats.append(staged)
                events.append(MovementEvent(
                    boat_id=boat.id,
                    boat_type=boat.boat_type,
                    from_location=boat.location_name,
                    from_slot=boat.display_slot,
                    moved_by=moved_by,
                    notes=f"Location '{target.name}' deleted",
                ))

            self._commit([], staged_boats, removed_locations=[target])
            logger.info(f"Deleted location '{target.name}', unassigned {len(affected)} boat(s)")
            self._emit(events)
            return affected

    def drop_boat(self, boat: BoatRef) -> BoatRecord:
        """Forget a boat that is being deleted, dropping any occupancy entry it holds"""
        with self._transition():
            record = self.get_boat(boat)
            staged_locations = []
            holder = self.holder_of(record.id)
            if holder is not None:
                staged = holder.model_copy(deep=True)
                _clear_boat(staged, record.id)
                staged_locations.append(staged)
            self._commit(staged_locations, [], removed_boats=[record])
            logger.info(f"Dropped boat '{record.id}' from placement records")
            return record

    def update_location(self, location: LocationRef, name: Optional[str] = None,
                        shape: Optional[LayoutShape] = None, rows: Optional[int] = None,
                        columns: Optional[int] = None, site_id=_UNCHANGED) -> LocationRecord:
        """
        Apply a rename, a layout change and a site change to one location as a
        single commit. Every check runs before anything is staged, so a
        rejected update leaves the location and its occupants as they were.
        A rename rewrites the back-reference of every boat the location holds;
        a layout change must keep every occupied slot valid.
        """
        with self._transition():
            target = self.get_location(location)
            renaming = name is not None and name != target.name
            reshaping = any(v is not None for v in (shape, rows, columns))

            if renaming and self.find_location_by_name(name) is not None:
                raise LocationNameTaken(name)
            if reshaping:
                if target.is_pool:
                    raise InvalidSlot(target.name, None, "pool locations have no layout")
                shape = shape or target.shape
                rows = rows or target.rows
                columns = columns or target.columns
                for key in target.boats:
                    slot = SlotAddress.parse(key)
                    if not is_valid_slot(shape, rows, columns, slot.row, slot.col):
                        raise InvalidSlot(target.name, slot.display,
                                          "slot is occupied and would fall outside the new layout")

            staged_location = target.model_copy(deep=True)
            if site_id is not _UNCHANGED:
                staged_location.site_id = site_id
            if reshaping:
                staged_location.shape = shape
                staged_location.rows = rows
                staged_location.columns = columns
            staged_boats = []
            if renaming:
                staged_location.name = name
                for boat in boats_in_location(target, self.boats):
                    staged = boat.model_copy()
                    staged.location_name = name
                    staged_boats.append(staged)

            if staged_location == target:
                return target
            self._commit([staged_location], staged_boats)
            logger.info(f"Updated location '{staged_location.name}' ({target.id})")
            return target

    def rename_location(self, location: LocationRef, new_name: str) -> LocationRecord:
        """Rename a location and rewrite the back-reference of every boat it holds"""
        return self.update_location(location, name=new_name)

    def reshape_location(self, location: LocationRef, shape: Optional[LayoutShape], rows: int,
                         columns: int) -> LocationRecord:
        """Change a location's layout; every occupied slot must stay valid"""
        return self.update_location(location, shape=shape, rows=rows, columns=columns)

    # -- internals --
    @contextmanager
    def _transition(self):
        if not self._gate.acquire(blocking=False):
            logger.warning("Placement change rejected: another change is in flight")
            raise TransitionInFlight()
        try:
            yield
        finally:
            self._gate.release()

    def _assign(self, boat: BoatRecord, target: LocationRecord, target_slot: Optional[SlotRef],
                moved_by: Optional[str], notes: Optional[str]) -> PlacementResult:
        holder = self.holder_of(boat.id)
        if holder is None and boat.location_name is not None:
            holder = self.find_location_by_name(boat.location_name)
        if holder is not None or boat.location_name is not None:
            if holder is not None and holder.id == target.id and self._sits_at(boat, target, target_slot):
                return PlacementResult(boat=boat, changed=False)
            raise AssetAlreadyAssigned(boat.id, holder.name if holder is not None else boat.location_name)
        return self._move(boat, target, target_slot, moved_by, notes)

    def _sits_at(self, boat: BoatRecord, location: LocationRecord, target_slot: Optional[SlotRef]) -> bool:
        current = slot_of(location, boat.id)
        if current is None:
            return False
        if location.is_pool:
            return True
        try:
            return SlotAddress.parse(target_slot) == current
        except ValueError:
            return False

    def _checked_slot(self, location: LocationRecord, target_slot: Optional[SlotRef]) -> SlotAddress:
        if target_slot is None or target_slot == POOL_SLOT:
            raise InvalidSlot(location.name, target_slot, "a row and column are required")
        try:
            slot = SlotAddress.parse(target_slot)
        except (TypeError, ValueError) as e:
            raise InvalidSlot(location.name, target_slot, str(e))
        if not is_valid_slot_in(location, slot):
            if location.shape == LayoutShape.U_SHAPED and 0 <= slot.row < location.rows and 0 <= slot.col < location.columns:
                reason = "interior cells of a u-shaped layout are not slots"
            else:
                reason = f"layout is {location.rows}x{location.columns}"
            raise InvalidSlot(location.name, slot.display, reason)
        return slot

    def _move(self, boat: BoatRecord, target: Optional[LocationRecord], target_slot: Optional[SlotRef],
              moved_by: Optional[str], notes: Optional[str]) -> PlacementResult:
        staged: Dict[str, LocationRecord] = {}

        def stage(location: LocationRecord) -> LocationRecord:
            if location.id not in staged:
                staged[location.id] = location.model_copy(deep=True)
            return staged[location.id]

        # 1. clear the current entry
        if boat.location_name is not None:
            source = self.find_location_by_name(boat.location_name)
            if source is None:
                logger.warning(f"Boat '{boat.id}' names missing location '{boat.location_name}'; clearing the reference")
            else:
                _clear_boat(stage(source), boat.id)

        # 2. write the new entry against the already-cleared state
        staged_boat = boat.model_copy()
        if target is None:
            staged_boat.location_name = None
            staged_boat.display_slot = None
        else:
            destination = stage(target)
            if destination.is_pool:
                if boat.id not in destination.pool_boats:
                    destination.pool_boats.append(boat.id)
                staged_boat.display_slot = display_slot(destination, None)
            else:
                slot = self._checked_slot(destination, target_slot)
                occupant = occupant_of(destination, slot)
                if occupant is not None and occupant != boat.id:
                    logger.warning(f"Rejected placement of '{boat.id}': slot {slot.display} in '{destination.name}' holds '{occupant}'")
                    raise SlotOccupied(destination.name, slot.display, occupant)
                destination.boats[slot.key] = boat.id
                staged_boat.display_slot = display_slot(destination, slot)
            staged_boat.location_name = destination.name

        # 3. nothing to do when the boat already sits where it is sent
        originals = {loc.id: loc for loc in self.locations}
        unchanged = staged_boat == boat and all(loc == originals[loc_id] for loc_id, loc in staged.items())
        if unchanged:
            return PlacementResult(boat=boat, changed=False)

        event = MovementEvent(
            boat_id=boat.id,
            boat_type=boat.boat_type,
            from_location=boat.location_name,
            from_slot=boat.display_slot,
            to_location=staged_boat.location_name,
            to_slot=staged_boat.display_slot,
            moved_by=moved_by,
            notes=notes,
        )
        self._commit(list(staged.values()), [staged_boat])
        logger.info(
            f"Boat '{boat.id}' moved: {event.from_location}/{event.from_slot} -> "
            f"{event.to_location}/{event.to_slot}"
        )
        self._emit([event])
        return PlacementResult(boat=boat, changed=True, event=event)

    def _commit(self, locations: List[LocationRecord], boats: List[BoatRecord],
                removed_locations: Iterable[LocationRecord] = (),
                removed_boats: Iterable[BoatRecord] = ()) -> None:
        removed_locations = list(removed_locations)
        removed_boats = list(removed_boats)

        if self._persist is not None:
            kwargs = {}
            if removed_locations:
                kwargs["removed_locations"] = removed_locations
            if removed_boats:
                kwargs["removed_boats"] = removed_boats
            try:
                saved = self._persist(locations, boats, **kwargs)
            except Exception as e:
                logger.exception("Persistence collaborator raised while saving a placement change")
                raise PersistenceFailed(str(e)) from e
            if not saved:
                logger.error("Persistence collaborator reported failure; placement change discarded")
                raise PersistenceFailed()

        location_index = {loc.id: loc for loc in self.locations}
        for staged in locations:
            _overwrite(location_index[staged.id], staged)
        boat_index = {b.id: b for b in self.boats}
        for staged in boats:
            _overwrite(boat_index[staged.id], staged)

        removed_location_ids = {loc.id for loc in removed_locations}
        if removed_location_ids:
            self.locations = [loc for loc in self.locations if loc.id not in removed_location_ids]
        removed_boat_ids = {b.id for b in removed_boats}
        if removed_boat_ids:
            self.boats = [b for b in self.boats if b.id not in removed_boat_ids]

    def _emit(self, events: List[MovementEvent]) -> None:
        for event in events:
            for listener in self._listeners:
                try:
                    listener(event)
                except Exception:
                    # the change is already durable; a lost log line must not undo it
                    logger.exception(f"Movement listener failed for boat '{event.boat_id}'")
