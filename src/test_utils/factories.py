from datetime import datetime
from typing import Optional

from models import Category, ItineraryItem, UserRef


def make_item(
    item_id: str,
    start: str,
    end: str,
    day: str = "2024-01-02",
    name: Optional[str] = None,
    created_by: Optional[UserRef] = None,
) -> ItineraryItem:
    """Item on ``day`` from "HH:MM" start and end times."""
    return ItineraryItem(
        id=item_id,
        name=name or item_id,
        start_time=datetime.fromisoformat(f"{day}T{start}"),
        end_time=datetime.fromisoformat(f"{day}T{end}"),
        category=Category.activity,
        created_by=created_by,
    )
