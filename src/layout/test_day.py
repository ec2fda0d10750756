"""Unit tests for day column packing."""

from datetime import date, datetime
from itertools import combinations

import pytest

from errors import ValidationError
from layout import (
    ROW_HEIGHT,
    PositionedItem,
    combine_day,
    day_bounds,
    default_slot,
    grid_height,
    hour_at_offset,
    layout_day,
    parse_day_items,
    parse_hhmm,
)
from models import ItineraryItem

DAY = date(2024, 1, 2)


def make_item(item_id: str, start: str, end: str, day: date = DAY) -> ItineraryItem:
    return ItineraryItem(
        id=item_id,
        name=item_id,
        start_time=combine_day(day, start),
        end_time=combine_day(day, end),
    )


def by_id(positioned: list[PositionedItem]) -> dict[str, PositionedItem]:
    return {p.item.id: p for p in positioned}


class TestColumnPacking:
    def test_overlap_scenario(self):
        """A 10-11 and B 10:30-11:30 share a cluster; C 12-13 stands alone."""
        result = by_id(
            layout_day(
                [
                    make_item("A", "10:00", "11:00"),
                    make_item("B", "10:30", "11:30"),
                    make_item("C", "12:00", "13:00"),
                ]
            )
        )

        assert (result["A"].column, result["A"].total_columns) == (0, 2)
        assert (result["B"].column, result["B"].total_columns) == (1, 2)
        assert (result["C"].column, result["C"].total_columns) == (0, 1)

    def test_touching_items_do_not_overlap(self):
        result = by_id(
            layout_day([make_item("A", "09:00", "10:00"), make_item("B", "10:00", "11:00")])
        )

        for item_id in ("A", "B"):
            assert result[item_id].column == 0
            assert result[item_id].total_columns == 1

    def test_no_overlapping_items_share_a_column(self):
        items = [
            make_item("a", "08:00", "12:00"),
            make_item("b", "08:30", "09:30"),
            make_item("c", "09:00", "10:00"),
            make_item("d", "09:45", "11:00"),
            make_item("e", "10:30", "13:00"),
            make_item("f", "14:00", "15:00"),
            make_item("g", "14:30", "14:45"),
        ]
        result = layout_day(items)

        for first, second in combinations(result, 2):
            if first.overlaps(second.start_minute, second.end_minute):
                assert first.column != second.column

    def test_cluster_shares_total_columns(self):
        """Chained overlaps form one cluster even when the ends do not overlap each other."""
        result = by_id(
            layout_day(
                [
                    make_item("a", "08:00", "09:00"),
                    make_item("b", "08:30", "10:00"),
                    make_item("c", "09:30", "11:00"),
                    make_item("d", "11:00", "12:00"),
                ]
            )
        )

        assert {result[k].total_columns for k in ("a", "b", "c")} == {2}
        assert result["c"].column == 0
        assert result["d"].total_columns == 1

    def test_first_fit_reuses_freed_column(self):
        result = by_id(
            layout_day(
                [
                    make_item("long", "08:00", "12:00"),
                    make_item("early", "08:00", "09:00"),
                    make_item("late", "10:00", "11:00"),
                ]
            )
        )

        assert result["long"].column == 0
        assert result["early"].column == 1
        assert result["late"].column == 1
        assert result["late"].total_columns == 2

    def test_ties_keep_input_order(self):
        result = layout_day([make_item("second", "10:00", "11:00"), make_item("first", "10:00", "10:30")])

        assert [p.item.id for p in result] == ["second", "first"]
        assert by_id(result)["second"].column == 0

    def test_width_and_left_offset(self):
        result = by_id(layout_day([make_item("A", "10:00", "11:00"), make_item("B", "10:30", "11:30")]))

        assert result["A"].width_percent == pytest.approx(50.0)
        assert result["B"].left_percent == pytest.approx(50.0)


class TestGeometry:
    def test_top_and_height_from_row_height(self):
        (p,) = layout_day([make_item("A", "10:30", "12:00")], row_height=96)

        assert p.top == pytest.approx(10.5 * 96)
        assert p.height == pytest.approx(1.5 * 96)

    def test_zero_duration_gets_minimum_height(self):
        (p,) = layout_day([make_item("A", "10:00", "10:00")], min_height=20)

        assert p.height == 20
        assert p.total_columns == 1

    def test_cross_midnight_is_truncated_to_bucket_day(self):
        item = ItineraryItem(
            id="night",
            name="Night train",
            start_time=datetime(2024, 1, 2, 22, 0),
            end_time=datetime(2024, 1, 3, 6, 0),
        )

        (p,) = layout_day([item], day=DAY, row_height=60)

        assert p.end_minute == 24 * 60
        assert p.height == pytest.approx(2 * 60)

    def test_end_before_start_is_rejected(self):
        with pytest.raises(ValidationError):
            layout_day([make_item("A", "11:00", "10:00")])

    def test_end_on_earlier_date_is_rejected(self):
        item = ItineraryItem(
            id="back",
            name="Backwards",
            start_time=datetime(2024, 1, 2, 10, 0),
            end_time=datetime(2024, 1, 1, 11, 0),
        )

        with pytest.raises(ValidationError):
            layout_day([item], day=DAY)

    def test_empty_day(self):
        assert layout_day([]) == []


class TestParsing:
    def test_parse_day_items_from_snapshot(self):
        raw = {
            "x1": {
                "name": "Lunch",
                "startTime": "2024-01-02T12:00:00.000Z",
                "endTime": "2024-01-02T13:00:00.000Z",
                "attachments": None,
                "category": "Food",
            }
        }

        (item,) = parse_day_items(raw)

        assert item.id == "x1"
        assert item.start_time == datetime(2024, 1, 2, 12, 0)
        assert item.start_time.tzinfo is None
        assert item.attachments == []

    def test_malformed_time_is_a_validation_error(self):
        raw = {"x1": {"name": "Lunch", "startTime": "noon", "endTime": "2024-01-02T13:00:00.000Z"}}

        with pytest.raises(ValidationError):
            parse_day_items(raw)

    def test_parse_hhmm(self):
        assert parse_hhmm("07:05").hour == 7
        with pytest.raises(ValidationError):
            parse_hhmm("25:00")

    def test_default_slot_and_offset(self):
        assert hour_at_offset(96 * 14 + 10, 96) == 14
        start, end = default_slot(DAY, 23)
        assert start.hour == 23
        assert end.date() == DAY

    def test_day_bounds_cover_full_grid(self):
        start, end = day_bounds(DAY)
        assert (end - start).total_seconds() / 3600 * ROW_HEIGHT == grid_height(ROW_HEIGHT)
