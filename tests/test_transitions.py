import random
import threading
import pytest
from boatyard.placement.errors import (
    AssetAlreadyAssigned,
    AssetNotFound,
    InvalidSlot,
    LocationNameTaken,
    LocationNotFound,
    NoVacantSlot,
    PersistenceFailed,
    PlacementError,
    SlotOccupied,
    TransitionInFlight,
)
from boatyard.placement.occupancy import find_inconsistencies, occupant_of
from boatyard.placement.records import LayoutShape, LocationKind, SlotAddress
from boatyard.placement.transitions import PlacementEngine
from factories import RecordingPersistence, make_boat, make_location


def test_assign_then_move_between_locations(placement_engine, dock_a, dock_b, movements):
    result = placement_engine.assign("A1", "Dock A", (0, 0))
    assert result.changed
    assert result.boat.location_name == "Dock A"
    assert result.boat.display_slot == "1-1"
    assert dock_a.boats == {"0-0": "A1"}

    result = placement_engine.move("A1", "Dock B", (1, 0))
    assert occupant_of(dock_a, SlotAddress(0, 0)) is None
    assert occupant_of(dock_b, SlotAddress(1, 0)) == "A1"
    assert result.boat.display_slot == "2-1"
    assert result.boat.location_name == "Dock B"

    assert [(m.from_location, m.from_slot, m.to_location, m.to_slot) for m in movements] == [
        (None, None, "Dock A", "1-1"),
        ("Dock A", "1-1", "Dock B", "2-1"),
    ]


def test_locations_resolve_by_id_or_name(placement_engine):
    placement_engine.assign("A1", "dock-a", "1-1")
    assert placement_engine.get_boat("A1").display_slot == "2-2"


def test_occupied_slot_is_rejected(placement_engine, dock_a, persistence, movements):
    placement_engine.assign("A1", "Dock A", (0, 0))
    with pytest.raises(SlotOccupied) as exc_info:
        placement_engine.assign("A2", "Dock A", (0, 0))

    assert exc_info.value.occupant_id == "A1"
    assert dock_a.boats == {"0-0": "A1"}
    assert not placement_engine.get_boat("A2").is_assigned
    assert len(persistence.calls) == 1
    assert len(movements) == 1


def test_move_onto_occupied_slot_leaves_source_untouched(placement_engine, dock_a, dock_b):
    placement_engine.assign("A1", "Dock A", (0, 0))
    placement_engine.assign("A2", "Dock B", (0, 0))
    with pytest.raises(SlotOccupied):
        placement_engine.move("A1", "Dock B", (0, 0))
    assert dock_a.boats == {"0-0": "A1"}
    assert placement_engine.get_boat("A1").location_name == "Dock A"


def test_move_within_location(placement_engine, dock_a):
    placement_engine.assign("A1", "Dock A", (0, 0))
    result = placement_engine.move("A1", "Dock A", (1, 1))
    assert result.changed
    assert dock_a.boats == {"1-1": "A1"}
    assert result.boat.display_slot == "2-2"


def test_move_to_current_slot_is_a_no_op(placement_engine, persistence, movements):
    placement_engine.assign("A1", "Dock A", (0, 0))
    result = placement_engine.move("A1", "Dock A", (0, 0))
    assert not result.changed
    assert result.event is None
    assert len(persistence.calls) == 1
    assert len(movements) == 1


def test_remove_is_idempotent(placement_engine, dock_a, persistence):
    assert not placement_engine.remove("A1").changed

    placement_engine.assign("A1", "Dock A", (0, 0))
    result = placement_engine.remove("A1", moved_by="dockhand")
    assert result.changed
    assert result.event.moved_by == "dockhand"
    assert dock_a.boats == {}
    assert result.boat.location_name is None
    assert result.boat.display_slot is None

    assert not placement_engine.remove("A1").changed
    assert len(persistence.calls) == 2


def test_pool_membership_is_idempotent(placement_engine, overflow_pool):
    placement_engine.assign("A1", "Overflow")
    assert placement_engine.get_boat("A1").display_slot == "pool"

    assert not placement_engine.assign("A1", "Overflow").changed
    assert not placement_engine.move("A1", "Overflow").changed
    assert overflow_pool.pool_boats == ["A1"]

    placement_engine.assign("A2", "Overflow")
    placement_engine.assign("A3", "Overflow")
    ratio = placement_engine.occupancy("Overflow")
    assert (ratio.occupied, ratio.total, ratio.percent) == (3, "unbounded", 100)


def test_pool_to_grid_and_back(placement_engine, overflow_pool, dock_a):
    placement_engine.assign("A1", "Overflow")
    placement_engine.move("A1", "Dock A", (1, 0))
    assert overflow_pool.pool_boats == []
    assert dock_a.boats == {"1-0": "A1"}

    placement_engine.move("A1", "Overflow")
    assert overflow_pool.pool_boats == ["A1"]
    assert dock_a.boats == {}


def test_assign_placed_boat_elsewhere_is_rejected(placement_engine):
    placement_engine.assign("A1", "Dock A", (0, 0))
    assert not placement_engine.assign("A1", "Dock A", (0, 0)).changed
    with pytest.raises(AssetAlreadyAssigned):
        placement_engine.assign("A1", "Dock B", (0, 0))
    with pytest.raises(AssetAlreadyAssigned):
        placement_engine.assign("A1", "Dock A", (1, 1))


class TestSlotValidation:
    def test_u_shape_interior(self, placement_engine, u_rack):
        with pytest.raises(InvalidSlot) as exc_info:
            placement_engine.assign("A1", "U Rack", (1, 1))
        assert "interior" in exc_info.value.message
        assert u_rack.boats == {}

    def test_out_of_range(self, placement_engine):
        with pytest.raises(InvalidSlot):
            placement_engine.assign("A1", "Dock A", (2, 0))

    def test_grid_needs_a_slot(self, placement_engine):
        with pytest.raises(InvalidSlot):
            placement_engine.assign("A1", "Dock A")

    def test_malformed_slot(self, placement_engine):
        with pytest.raises(InvalidSlot):
            placement_engine.assign("A1", "Dock A", "first")

    def test_u_shape_perimeter_accepted(self, placement_engine, u_rack):
        placement_engine.assign("A1", "U Rack", (2, 1))
        assert u_rack.boats == {"2-1": "A1"}


def test_lookup_helpers(placement_engine):
    late = []
    placement_engine.add_listener(late.append)
    placement_engine.assign("A1", "Dock A", (0, 0))
    placement_engine.assign("A2", "Overflow")

    assert [b.id for b in placement_engine.boats_in("Dock A")] == ["A1"]
    assert [b.id for b in placement_engine.unassigned_boats()] == ["A3", "A4", "A5"]
    assert placement_engine.holder_of("A2").name == "Overflow"
    assert placement_engine.holder_of("A3") is None
    assert [e.boat_id for e in late] == ["A1", "A2"]


def test_unknown_references(placement_engine):
    with pytest.raises(LocationNotFound):
        placement_engine.assign("A1", "Nowhere", (0, 0))
    with pytest.raises(AssetNotFound):
        placement_engine.assign("Z9", "Dock A", (0, 0))


def test_missing_source_location_reference_is_cleared(dock_a):
    stray = make_boat("A1", location_name="Demolished", display_slot="3-3")
    engine = PlacementEngine([dock_a], [stray])

    result = engine.move("A1", "Dock A", (0, 0))
    assert result.event.from_location == "Demolished"
    assert stray.location_name == "Dock A"
    assert find_inconsistencies(engine.locations, engine.boats) == []


class TestPersistenceFailure:
    def test_failed_save_leaves_records_unchanged(self, placement_engine, dock_a, persistence, movements):
        placement_engine.assign("A1", "Dock A", (0, 0))
        persistence.succeed = False

        with pytest.raises(PersistenceFailed):
            placement_engine.move("A1", "Dock B", (0, 0))

        assert dock_a.boats == {"0-0": "A1"}
        boat = placement_engine.get_boat("A1")
        assert (boat.location_name, boat.display_slot) == ("Dock A", "1-1")
        assert len(movements) == 1

    def test_raising_collaborator_is_reported_as_failure(self, dock_a, boats):
        def broken(locations, boats, **removed):
            raise ConnectionError("database went away")

        engine = PlacementEngine([dock_a], boats, persist=broken)
        with pytest.raises(PersistenceFailed) as exc_info:
            engine.assign("A1", "Dock A", (0, 0))
        assert "database went away" in exc_info.value.message
        assert dock_a.boats == {}
        assert not engine.in_flight

    def test_collaborator_receives_staged_copies(self, placement_engine, persistence, dock_a):
        placement_engine.assign("A1", "Dock A", (0, 0))
        saved_locations, saved_boats, removed = persistence.calls[0]
        assert saved_locations[0] is not dock_a
        assert saved_locations[0].boats == {"0-0": "A1"}
        assert saved_boats[0].display_slot == "1-1"
        assert removed == {}


def test_submission_during_transition_is_rejected(dock_a, boats):
    gate = threading.Lock()
    engine = PlacementEngine([dock_a], boats, gate=gate)
    with gate:
        assert engine.in_flight
        with pytest.raises(TransitionInFlight):
            engine.assign("A1", "Dock A", (0, 0))
    assert not engine.in_flight
    assert engine.assign("A1", "Dock A", (0, 0)).changed


def test_save_in_progress_blocks_other_threads(dock_a, boats):
    saving = threading.Event()
    release = threading.Event()

    def slow_persist(locations, boats, **removed):
        saving.set()
        release.wait(timeout=5)
        return True

    engine = PlacementEngine([dock_a], boats, persist=slow_persist)
    worker = threading.Thread(target=engine.assign, args=("A1", "Dock A", (0, 0)))
    worker.start()
    try:
        assert saving.wait(timeout=5)
        with pytest.raises(TransitionInFlight):
            engine.assign("A2", "Dock A", (1, 1))
    finally:
        release.set()
        worker.join(timeout=5)
    assert dock_a.boats == {"0-0": "A1"}


def test_listener_failure_does_not_undo_the_move(dock_a, boats):
    def broken_listener(event):
        raise RuntimeError("log table locked")

    engine = PlacementEngine([dock_a], boats, listeners=[broken_listener])
    result = engine.assign("A1", "Dock A", (0, 0))
    assert result.changed
    assert dock_a.boats == {"0-0": "A1"}


class TestAutoPlace:
    def test_fills_perimeter_in_row_major_order(self, placement_engine, u_rack):
        placed = [placement_engine.auto_place(f"A{i}", "U Rack").boat.display_slot for i in range(1, 4)]
        assert placed == ["1-1", "1-4", "2-1"]
        assert set(u_rack.boats) == {"0-0", "0-3", "1-0"}

    def test_full_location(self, placement_engine):
        for i, slot in enumerate([(0, 0), (0, 1), (1, 0), (1, 1)], start=1):
            placement_engine.assign(f"A{i}", "Dock A", slot)
        with pytest.raises(NoVacantSlot):
            placement_engine.auto_place("A5", "Dock A")

    def test_pool(self, placement_engine, overflow_pool):
        placement_engine.auto_place("A1", "Overflow")
        assert overflow_pool.pool_boats == ["A1"]


def test_delete_location_unassigns_its_boats(placement_engine, persistence, movements):
    placement_engine.assign("A1", "Dock A", (0, 0))
    placement_engine.assign("A2", "Dock A", (1, 1))
    placement_engine.assign("A3", "Dock B", (0, 0))
    del movements[:]

    affected = placement_engine.delete_location("Dock A", moved_by="yard manager")

    assert sorted(b.id for b in affected) == ["A1", "A2"]
    assert placement_engine.find_location_by_name("Dock A") is None
    assert not placement_engine.get_boat("A1").is_assigned
    assert placement_engine.get_boat("A3").location_name == "Dock B"
    assert [m.notes for m in movements] == ["Location 'Dock A' deleted"] * 2
    assert all(m.to_location is None for m in movements)
    assert [loc.name for loc in persistence.calls[-1][2]["removed_locations"]] == ["Dock A"]
    assert find_inconsistencies(placement_engine.locations, placement_engine.boats) == []


def test_drop_boat_releases_its_slot(placement_engine, overflow_pool, persistence):
    placement_engine.assign("A1", "Overflow")
    placement_engine.drop_boat("A1")

    assert overflow_pool.pool_boats == []
    assert "A1" not in {b.id for b in placement_engine.boats}
    assert [b.id for b in persistence.calls[-1][2]["removed_boats"]] == ["A1"]
    with pytest.raises(AssetNotFound):
        placement_engine.get_boat("A1")


def test_rename_location_rewrites_back_references(placement_engine, dock_a):
    placement_engine.assign("A1", "Dock A", (0, 1))
    placement_engine.rename_location("Dock A", "North Dock")

    assert dock_a.name == "North Dock"
    assert placement_engine.get_boat("A1").location_name == "North Dock"
    with pytest.raises(LocationNameTaken):
        placement_engine.rename_location("North Dock", "Dock B")
    assert find_inconsistencies(placement_engine.locations, placement_engine.boats) == []


class TestReshapeLocation:
    def test_occupied_slots_must_survive(self, placement_engine, dock_a):
        placement_engine.assign("A1", "Dock A", (1, 1))
        with pytest.raises(InvalidSlot):
            placement_engine.reshape_location("Dock A", LayoutShape.GRID, 1, 1)
        assert (dock_a.rows, dock_a.columns) == (2, 2)

    def test_reshape_keeping_occupants_valid(self, placement_engine, dock_a):
        placement_engine.assign("A1", "Dock A", (1, 1))
        placement_engine.reshape_location("Dock A", LayoutShape.U_SHAPED, 3, 2)
        assert (dock_a.shape, dock_a.rows, dock_a.columns) == (LayoutShape.U_SHAPED, 3, 2)

    def test_pool_has_no_layout(self, placement_engine):
        with pytest.raises(InvalidSlot):
            placement_engine.reshape_location("Overflow", LayoutShape.GRID, 2, 2)


class TestUpdateLocation:
    def test_rename_reshape_and_site_in_one_commit(self, placement_engine, dock_a, persistence):
        placement_engine.assign("A1", "Dock A", (1, 1))
        saves = len(persistence.calls)

        placement_engine.update_location("Dock A", name="North Dock", rows=3, site_id="north-yard")

        assert (dock_a.name, dock_a.rows, dock_a.columns, dock_a.site_id) == ("North Dock", 3, 2, "north-yard")
        assert placement_engine.get_boat("A1").location_name == "North Dock"
        assert len(persistence.calls) == saves + 1

    def test_rejected_reshape_keeps_the_old_name(self, placement_engine, dock_a, persistence):
        placement_engine.assign("A1", "Dock A", (1, 1))
        saves = len(persistence.calls)

        with pytest.raises(InvalidSlot):
            placement_engine.update_location("Dock A", name="North Dock", rows=1, site_id="north-yard")

        assert (dock_a.name, dock_a.rows, dock_a.site_id) == ("Dock A", 2, None)
        assert placement_engine.get_boat("A1").location_name == "Dock A"
        assert len(persistence.calls) == saves

    def test_name_collision_keeps_the_old_layout(self, placement_engine, dock_a):
        with pytest.raises(LocationNameTaken):
            placement_engine.update_location("Dock A", name="Dock B", rows=3)
        assert (dock_a.name, dock_a.rows) == ("Dock A", 2)

    def test_no_change_does_not_save(self, placement_engine, persistence):
        placement_engine.update_location("Dock A", name="Dock A")
        assert persistence.calls == []

    def test_clearing_the_site(self, placement_engine, dock_a):
        placement_engine.update_location("Dock A", site_id="north-yard")
        placement_engine.update_location("Dock A", site_id=None)
        assert dock_a.site_id is None


@pytest.mark.parametrize("seed", range(5))
def test_random_operation_sequences_keep_records_consistent(seed):
    rng = random.Random(seed)
    locations = [
        make_location("Dock A"),
        make_location("Rack U", shape=LayoutShape.U_SHAPED, rows=3, columns=4),
        make_location("Lot", rows=3, columns=3),
        make_location("Overflow", kind=LocationKind.POOL),
    ]
    boats = [make_boat(f"B{i}") for i in range(12)]
    persistence = RecordingPersistence()
    engine = PlacementEngine(locations, boats, persist=persistence)

    for _ in range(200):
        boat_id = rng.choice(boats).id
        target = rng.choice(locations)
        slot = (rng.randrange(-1, 4), rng.randrange(-1, 5))
        op = rng.choice(["assign", "move", "remove", "auto_place", "fail"])
        persistence.succeed = op != "fail"
        try:
            if op == "assign":
                engine.assign(boat_id, target.name, slot)
            elif op == "remove":
                engine.remove(boat_id)
            elif op == "auto_place":
                engine.auto_place(boat_id, target.name)
            else:
                engine.move(boat_id, target.name, slot)
        except PlacementError:
            pass
        assert find_inconsistencies(engine.locations, engine.boats) == []
