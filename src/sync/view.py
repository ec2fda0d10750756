"""Client-side view of one trip, rebuilt from every remote snapshot."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional

import pydantic

from config import Settings, get_settings
from errors import ValidationError
from layout import PositionedItem, layout_day
from models import (
    Activity,
    AdminGrant,
    ItineraryItem,
    Rsvp,
    RsvpStatus,
    Task,
    Trip,
    UserRef,
    activity_adapter,
)
from store import Subscription, TreeStore, TripPaths, apply_batch, split_path

logger = logging.getLogger(__name__)


@dataclass
class TaskLists:
    mine: list[Task] = field(default_factory=list)
    open: list[Task] = field(default_factory=list)
    completed: list[Task] = field(default_factory=list)


@dataclass
class RsvpSummary:
    counts: dict[RsvpStatus, int]
    entries: list[Rsvp]

    @property
    def responded(self) -> int:
        return len(self.entries)


_ENTITY_PARSERS: dict[str, Callable[[Any], Any]] = {
    "admins": AdminGrant.model_validate,
    "tasks": Task.model_validate,
    "rsvps": Rsvp.model_validate,
    "activities": activity_adapter.validate_python,
}


def _parse_entities(children: Any, parse: Callable[[Any], Any], where: str) -> dict[str, Any]:
    """
    Parse each child of a collection on its own, filling ids from their keys.

    A partial record left behind by a write racing a delete is skipped, so
    one bad child never hides the rest of the trip.
    """
    if not isinstance(children, Mapping):
        if children is not None:
            logger.warning(f"Ignoring non-object {where}")
        return {}
    parsed = {}
    for key, value in children.items():
        if not isinstance(value, Mapping):
            logger.warning(f"Skipping malformed {where}/{key}: not an object")
            continue
        try:
            parsed[key] = parse({"id": key, **value})
        except pydantic.ValidationError as e:
            logger.warning(f"Skipping malformed {where}/{key}: {e.error_count()} validation errors")
    return parsed


def _parse_trip(raw: Mapping[str, Any], trip_id: str) -> Trip:
    data = {k: v for k, v in raw.items() if k != "itinerary" and k not in _ENTITY_PARSERS}
    data["id"] = trip_id
    for collection, parse in _ENTITY_PARSERS.items():
        data[collection] = _parse_entities(raw.get(collection), parse, f"trips/{trip_id}/{collection}")

    itinerary = raw.get("itinerary")
    data["itinerary"] = {
        day: _parse_entities(items, ItineraryItem.model_validate, f"trips/{trip_id}/itinerary/{day}")
        for day, items in (itinerary.items() if isinstance(itinerary, Mapping) else [])
    }
    return Trip.model_validate(data)


class TripView:
    """
    Holds the last remote snapshot of ``trips/<id>`` and an optional
    optimistic overlay on top of it.

    Every inbound snapshot replaces both. Use as an async context manager so
    the subscription is released on every exit path.
    """

    def __init__(
        self,
        store: TreeStore,
        trip_id: str,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.paths = TripPaths(trip_id)
        self.settings = settings or get_settings()
        self._remote: Any = None
        self._overlay: Any = None
        self._has_overlay = False
        self._trip: Optional[Trip] = None
        self._subscription: Optional[Subscription] = None
        self._listeners: list[Callable[["TripView"], None]] = []

    @property
    def trip_id(self) -> str:
        return self.paths.trip_id

    async def open(self) -> "TripView":
        if self._subscription is None:
            self._subscription = await self.store.subscribe(self.paths.root, self._on_snapshot)
        return self

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def __aenter__(self) -> "TripView":
        return await self.open()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def on_change(self, listener: Callable[["TripView"], None]) -> None:
        self._listeners.append(listener)

    def _on_snapshot(self, value: Any) -> None:
        self._remote = value
        self._overlay = None
        self._has_overlay = False
        self._changed()

    def _changed(self) -> None:
        self._trip = None
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"TripView listener failed for trip {self.trip_id}: {e}")

    @property
    def raw(self) -> Any:
        return self._overlay if self._has_overlay else self._remote

    @property
    def has_pending_changes(self) -> bool:
        return self._has_overlay

    def apply_optimistic(self, updates: Mapping[str, Any]) -> None:
        """Show a batch locally before the store confirms it."""
        root = split_path(self.paths.root)
        relative = []
        for path, value in updates.items():
            parts = split_path(path)
            if parts[: len(root)] != root:
                raise ValidationError(f"Path '{path}' is outside trip {self.trip_id}")
            relative.append((parts[len(root) :], value))
        self._overlay = apply_batch(self.raw, relative)
        self._has_overlay = True
        self._changed()

    def rollback(self) -> None:
        """Drop optimistic state and show the last known-good snapshot."""
        if self._has_overlay:
            logger.info(f"Rolling back optimistic changes on trip {self.trip_id}")
            self._overlay = None
            self._has_overlay = False
            self._changed()

    @property
    def trip(self) -> Optional[Trip]:
        """
        The current trip, or None if it does not exist (yet).

        Raises:
            ValidationError: If the trip fields themselves cannot be parsed;
                malformed items, tasks, RSVPs, admins and activities are skipped
        """
        raw = self.raw
        if not isinstance(raw, Mapping):
            return None
        if self._trip is None:
            try:
                self._trip = _parse_trip(raw, self.trip_id)
            except pydantic.ValidationError as e:
                raise ValidationError(f"Malformed snapshot for trip {self.trip_id}: {e}") from e
        return self._trip

    def is_admin(self, actor: Optional[UserRef]) -> bool:
        trip = self.trip
        return trip is not None and actor is not None and trip.is_admin(actor.phone_number)

    def layout(self, day: date) -> list[PositionedItem]:
        trip = self.trip
        if trip is None:
            return []
        return layout_day(
            trip.items_on(day.isoformat()),
            day=day,
            row_height=self.settings.row_height,
            min_height=self.settings.min_item_height,
        )

    def days(self) -> list[str]:
        trip = self.trip
        return sorted(trip.itinerary) if trip else []

    def task_lists(self, actor: Optional[UserRef]) -> TaskLists:
        trip = self.trip
        lists = TaskLists()
        if trip is None:
            return lists
        phone = actor.phone_number if actor else None
        for task in sorted(trip.tasks.values(), key=lambda t: (t.due_date or date.max, _sort_key(t.created_at))):
            if task.completed:
                lists.completed.append(task)
                continue
            lists.open.append(task)
            if phone and task.is_assigned_to(phone):
                lists.mine.append(task)
        return lists

    def rsvp_summary(self) -> RsvpSummary:
        trip = self.trip
        counts = {status: 0 for status in RsvpStatus}
        entries = sorted(trip.rsvps.values(), key=lambda r: _sort_key(r.updated_at), reverse=True) if trip else []
        for rsvp in entries:
            counts[rsvp.status] += 1
        return RsvpSummary(counts=counts, entries=entries)

    def activity_feed(self, limit: Optional[int] = None) -> list[Activity]:
        trip = self.trip
        if trip is None:
            return []
        feed = sorted(trip.activities.values(), key=lambda a: _sort_key(a.timestamp), reverse=True)
        return feed[:limit] if limit is not None else feed


def _sort_key(value: datetime) -> float:
    # Mixes naive and aware timestamps written by different clients
    return value.timestamp()
