"""Trip aggregate: tasks, RSVPs, admin grants and the itinerary buckets."""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator

from .activity import Activity
from .base import WireModel
from .itinerary import ItineraryItem
from .user import UserRef


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RsvpStatus(str, Enum):
    going = "going"
    maybe = "maybe"
    not_going = "not_going"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class Task(WireModel):
    id: str
    title: str
    due_date: Optional[date] = None
    assignee: Optional[UserRef] = None
    completed: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    created_by: UserRef

    @field_validator("due_date", mode="before")
    @classmethod
    def date_only(cls, value: Any) -> Any:
        # Due dates were historically written as full ISO timestamps
        if isinstance(value, str) and "T" in value:
            return value.split("T", 1)[0]
        return value or None

    def is_assigned_to(self, phone_number: str) -> bool:
        return self.assignee is not None and self.assignee.phone_number == phone_number


class Rsvp(WireModel):
    phone_number: str
    name: Optional[str] = None
    status: RsvpStatus
    updated_at: datetime = Field(default_factory=utc_now)


class AdminGrant(WireModel):
    name: Optional[str] = None
    added_at: datetime = Field(default_factory=utc_now)
    added_by: UserRef


class Trip(WireModel):
    """Snapshot of everything stored under ``trips/<id>``."""

    id: str
    name: str = ""
    location: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by: Optional[UserRef] = None
    share_code: Optional[str] = None
    admins: dict[str, AdminGrant] = Field(default_factory=dict)
    # ISO date -> item id -> item
    itinerary: dict[str, dict[str, ItineraryItem]] = Field(default_factory=dict)
    tasks: dict[str, Task] = Field(default_factory=dict)
    rsvps: dict[str, Rsvp] = Field(default_factory=dict)
    activities: dict[str, Activity] = Field(default_factory=dict)

    def is_admin(self, phone_number: Optional[str]) -> bool:
        return bool(phone_number) and phone_number in self.admins

    def items_on(self, iso_day: str) -> list[ItineraryItem]:
        return list(self.itinerary.get(iso_day, {}).values())
