"""Path building and validation for the trip tree."""

import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from errors import ValidationError

FORBIDDEN_KEY_CHARS = set(".#$[]/")
_ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def validate_key(key: str) -> str:
    if not isinstance(key, str) or not key:
        raise ValidationError("Store keys must be non-empty strings")
    bad = FORBIDDEN_KEY_CHARS.intersection(key)
    if bad:
        raise ValidationError(f"Store key '{key}' contains forbidden characters: {''.join(sorted(bad))}")
    return key


def split_path(path: str) -> list[str]:
    """Split a slash-separated path into validated segments. "" is the root."""
    stripped = path.strip("/")
    if not stripped:
        return []
    return [validate_key(part) for part in stripped.split("/")]


def join_path(*parts: str) -> str:
    return "/".join(validate_key(p) for p in parts)


def is_ancestor(parent: list[str], child: list[str]) -> bool:
    """True if ``parent`` is a (non-strict) prefix of ``child``."""
    return len(parent) <= len(child) and child[: len(parent)] == parent


def check_disjoint(paths: Iterable[str]) -> list[list[str]]:
    """
    Split and validate the paths of one batch.

    Raises:
        ValidationError: If one path is the ancestor of another in the same batch.
    """
    split = [split_path(p) for p in paths]
    for i, first in enumerate(split):
        for second in split[i + 1 :]:
            if is_ancestor(first, second) or is_ancestor(second, first):
                raise ValidationError(
                    f"Batch paths overlap: '{'/'.join(first)}' and '{'/'.join(second)}'"
                )
    return split


def parse_iso_day(value: str) -> date:
    if not isinstance(value, str) or not _ISO_DAY.match(value):
        raise ValidationError(f"Invalid day key '{value}', expected YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"Invalid day key '{value}': {e}") from e


@dataclass(frozen=True)
class DayKey:
    """A day bucket: the pair (trip, calendar date)."""

    trip_id: str
    day: date

    @classmethod
    def parse(cls, trip_id: str, iso_day: str) -> "DayKey":
        return cls(validate_key(trip_id), parse_iso_day(iso_day))

    @property
    def iso(self) -> str:
        return self.day.isoformat()

    @property
    def path(self) -> str:
        return TripPaths(self.trip_id).day(self.day)


class TripPaths:
    """Every path the sync layer writes under ``trips/<trip_id>``."""

    ROOT = "trips"

    def __init__(self, trip_id: str):
        self.trip_id = validate_key(trip_id)

    @property
    def root(self) -> str:
        return join_path(self.ROOT, self.trip_id)

    def field(self, name: str) -> str:
        return join_path(self.ROOT, self.trip_id, name)

    def day(self, day: date) -> str:
        return join_path(self.ROOT, self.trip_id, "itinerary", day.isoformat())

    def item(self, day: date, item_id: str) -> str:
        return join_path(self.ROOT, self.trip_id, "itinerary", day.isoformat(), item_id)

    def votes(self, day: date, item_id: str) -> str:
        return join_path(self.ROOT, self.trip_id, "itinerary", day.isoformat(), item_id, "votes")

    def task(self, task_id: str) -> str:
        return join_path(self.ROOT, self.trip_id, "tasks", task_id)

    def task_completed(self, task_id: str) -> str:
        return join_path(self.ROOT, self.trip_id, "tasks", task_id, "completed")

    def rsvp(self, phone_number: str) -> str:
        return join_path(self.ROOT, self.trip_id, "rsvps", phone_number)

    def admins(self) -> str:
        return join_path(self.ROOT, self.trip_id, "admins")

    def admin(self, phone_number: str) -> str:
        return join_path(self.ROOT, self.trip_id, "admins", phone_number)

    def activity(self, activity_id: str) -> str:
        return join_path(self.ROOT, self.trip_id, "activities", activity_id)
