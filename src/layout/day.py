"""Column packing for one day of the itinerary grid."""

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Iterable, Mapping, Optional, Sequence

import pydantic

from errors import ValidationError
from models import ItineraryItem
from .timegrid import span_minutes

logger = logging.getLogger(__name__)

ROW_HEIGHT = 96.0
MIN_ITEM_HEIGHT = 24.0


@dataclass(frozen=True)
class PositionedItem:
    """An item with its geometry for a single render pass. Never persisted."""

    item: ItineraryItem
    top: float
    height: float
    column: int
    total_columns: int
    start_minute: int
    end_minute: int

    @property
    def width_percent(self) -> float:
        return 100.0 / self.total_columns

    @property
    def left_percent(self) -> float:
        return self.column * self.width_percent

    def overlaps(self, start_minute: int, end_minute: int) -> bool:
        # Touching endpoints do not overlap
        return not (end_minute <= self.start_minute or start_minute >= self.end_minute)


def parse_day_items(raw_items: Optional[Mapping[str, Any]]) -> list[ItineraryItem]:
    """
    Parse a raw day bucket (item id -> JSON dict) from a store snapshot.

    Raises:
        ValidationError: If any item has malformed fields or times.
    """
    if not raw_items:
        return []
    items = []
    for item_id, raw in raw_items.items():
        if not isinstance(raw, Mapping):
            raise ValidationError(f"Item {item_id} is not an object")
        try:
            items.append(ItineraryItem.model_validate({"id": item_id, **raw}))
        except pydantic.ValidationError as e:
            raise ValidationError(f"Malformed itinerary item {item_id}: {e}") from e
    return items


def layout_day(
    items: Iterable[ItineraryItem],
    day: Optional[date] = None,
    row_height: float = ROW_HEIGHT,
    min_height: float = MIN_ITEM_HEIGHT,
) -> list[PositionedItem]:
    """
    Assign every item of a day to a visual column.

    Items are packed first-fit in start-time order (stable, so ties keep
    their input order). Every item of a maximal cluster of overlapping items
    reports the same ``total_columns``.

    Args:
        items: The items filed under one day bucket
        day: The bucket date; defaults to each item's own start date
        row_height: Pixels per hour
        min_height: Smallest height drawn, so zero-length items stay visible

    Returns:
        PositionedItem list in packing order
    """
    if row_height <= 0:
        raise ValidationError("row_height must be positive")

    spans: list[tuple[ItineraryItem, int, int]] = []
    for item in items:
        if not isinstance(item, ItineraryItem):
            raise ValidationError(f"Expected ItineraryItem, got {type(item).__name__}")
        start_min, end_min = span_minutes(
            item.start_time, item.end_time, day or item.start_time.date()
        )
        spans.append((item, start_min, end_min))

    spans.sort(key=lambda s: s[1])

    placed: list[PositionedItem] = []
    for item, start_min, end_min in spans:
        taken = {p.column for p in placed if p.overlaps(start_min, end_min)}
        column = 0
        while column in taken:
            column += 1
        placed.append(
            PositionedItem(
                item=item,
                top=start_min / 60 * row_height,
                height=max((end_min - start_min) / 60 * row_height, min_height),
                column=column,
                total_columns=1,
                start_minute=start_min,
                end_minute=end_min,
            )
        )

    return _spread_cluster_widths(placed)


def _spread_cluster_widths(placed: Sequence[PositionedItem]) -> list[PositionedItem]:
    # ``placed`` is sorted by start, so a cluster ends once the next item starts
    # at or after the latest end seen so far.
    result: list[PositionedItem] = []
    cluster: list[PositionedItem] = []
    cluster_end = -1

    def flush() -> None:
        total = max(p.column for p in cluster) + 1
        result.extend(replace(p, total_columns=total) for p in cluster)

    for p in placed:
        if cluster and p.start_minute >= cluster_end:
            flush()
            cluster = []
            cluster_end = -1
        cluster.append(p)
        cluster_end = max(cluster_end, p.end_minute)

    if cluster:
        flush()

    logger.debug(f"Laid out {len(result)} items")
    return result
