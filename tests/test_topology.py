import pytest
from boatyard.placement.records import LayoutShape, LocationKind, SlotAddress, UNBOUNDED
from boatyard.placement.topology import (
    capacity,
    display_slot,
    find_first_vacant_slot,
    is_valid_slot,
    iter_slots,
    occupancy_ratio,
)
from factories import make_location


class TestIsValidSlot:
    def test_grid_accepts_every_in_range_cell(self):
        cells = [(r, c) for r in range(2) for c in range(3)]
        assert all(is_valid_slot(LayoutShape.GRID, 2, 3, r, c) for r, c in cells)

    @pytest.mark.parametrize("row,col", [(-1, 0), (0, -1), (2, 0), (0, 3)])
    def test_out_of_range_is_invalid(self, row, col):
        assert not is_valid_slot(LayoutShape.GRID, 2, 3, row, col)
        assert not is_valid_slot(LayoutShape.U_SHAPED, 2, 3, row, col)

    def test_u_shape_is_an_open_topped_perimeter(self):
        valid = {
            (r, c) for r in range(3) for c in range(4)
            if is_valid_slot(LayoutShape.U_SHAPED, 3, 4, r, c)
        }
        assert len(valid) == 8
        assert valid == {(0, 0), (1, 0), (2, 0), (0, 3), (1, 3), (2, 3), (2, 1), (2, 2)}

    @pytest.mark.parametrize("row,col", [(1, 1), (1, 2), (0, 1), (0, 2)])
    def test_u_shape_interior_and_open_top_are_invalid(self, row, col):
        assert not is_valid_slot(LayoutShape.U_SHAPED, 3, 4, row, col)

    def test_missing_shape_behaves_as_grid(self):
        assert is_valid_slot(None, 3, 4, 1, 1)
        assert is_valid_slot("u-shaped", 3, 4, 1, 0)


class TestCapacity:
    def test_grid(self):
        assert capacity(make_location("G", rows=2, columns=2)) == 4

    def test_u_shape_uses_rows_twice_plus_columns(self, u_rack):
        assert capacity(u_rack) == 10

    def test_pool_is_unbounded(self, overflow_pool):
        assert capacity(overflow_pool) == UNBOUNDED


class TestOccupancyRatio:
    def test_rounds_half_up(self):
        location = make_location("G", rows=2, columns=4)
        location.boats = {"0-0": "A1"}
        ratio = occupancy_ratio(location)
        assert (ratio.occupied, ratio.total, ratio.percent) == (1, 8, 13)

    def test_explicit_count_overrides_record(self):
        ratio = occupancy_ratio(make_location("G", rows=2, columns=2), occupied=3)
        assert ratio.percent == 75

    def test_empty_grid(self, dock_a):
        ratio = occupancy_ratio(dock_a)
        assert (ratio.occupied, ratio.total, ratio.percent) == (0, 4, 0)

    def test_pool_reports_saturated(self, overflow_pool):
        overflow_pool.pool_boats = ["A1", "A2", "A3"]
        ratio = occupancy_ratio(overflow_pool)
        assert ratio.occupied == 3
        assert ratio.total == "unbounded"
        assert ratio.percent == 100


class TestFirstVacantSlot:
    def test_row_major_order(self, dock_a):
        dock_a.boats = {"0-0": "A1"}
        assert find_first_vacant_slot(dock_a) == SlotAddress(0, 1)

    def test_skips_u_shape_interior(self, u_rack):
        u_rack.boats = {"0-0": "A1"}
        # (0,1) and (0,2) are not slots
        assert find_first_vacant_slot(u_rack) == SlotAddress(0, 3)

    def test_full_location(self, dock_a):
        dock_a.boats = {"0-0": "A1", "0-1": "A2", "1-0": "A3", "1-1": "A4"}
        assert find_first_vacant_slot(dock_a) is None

    def test_iter_slots_matches_validity(self, u_rack):
        assert len(list(iter_slots(u_rack))) == 8


def test_display_slot_is_one_indexed(dock_a, overflow_pool):
    assert display_slot(dock_a, SlotAddress(1, 0)) == "2-1"
    assert display_slot(overflow_pool, None) == "pool"


class TestSlotAddress:
    def test_parse_forms(self):
        assert SlotAddress.parse("1-2") == SlotAddress(1, 2)
        assert SlotAddress.parse((1, 2)) == SlotAddress(1, 2)
        assert SlotAddress.parse([0, 0]).key == "0-0"

    @pytest.mark.parametrize("value", ["1", "a-b", "1-2-3", (1,), 5])
    def test_parse_rejects(self, value):
        with pytest.raises(ValueError):
            SlotAddress.parse(value)

    def test_pool_kind_has_no_slots(self):
        pool = make_location("P", kind=LocationKind.POOL)
        assert list(iter_slots(pool)) == []
