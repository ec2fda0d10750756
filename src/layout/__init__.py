from .day import MIN_ITEM_HEIGHT, ROW_HEIGHT, PositionedItem, layout_day, parse_day_items
from .timegrid import (
    combine_day,
    day_bounds,
    default_slot,
    grid_height,
    hour_at_offset,
    minutes_since_midnight,
    parse_hhmm,
    span_minutes,
)

__all__ = [
    "MIN_ITEM_HEIGHT",
    "ROW_HEIGHT",
    "PositionedItem",
    "combine_day",
    "day_bounds",
    "default_slot",
    "grid_height",
    "hour_at_offset",
    "layout_day",
    "minutes_since_midnight",
    "parse_day_items",
    "parse_hhmm",
    "span_minutes",
]
