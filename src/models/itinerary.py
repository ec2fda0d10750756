"""Itinerary item model for trip planning."""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_serializer, field_validator

from errors import ValidationError
from .base import WireModel
from .user import UserRef

# Times are wall-clock times on the trip calendar. They are stored with a
# trailing "Z" but never converted between zones.
STORE_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.000Z"


class Category(str, Enum):
    none = "None"
    food = "Food"
    activity = "Activity"
    transportation = "Transportation"
    accommodation = "Accommodation"

    @classmethod
    def from_label(cls, label: Optional[str]) -> "Category":
        """Map an extractor label ("Travel", "Food", ...) onto a category."""
        if not label:
            return cls.none
        if label.strip().lower() == "travel":
            return cls.transportation
        for category in cls:
            if category.value.lower() == label.strip().lower():
                return category
        return cls.none


class Attachment(WireModel):
    url: str
    type: str
    name: str
    size: Optional[int] = None
    path: Optional[str] = None


class ItineraryItem(WireModel):
    """An entry on one day of the trip itinerary."""

    id: str
    name: str
    start_time: datetime
    end_time: datetime
    description: str = ""
    category: Category = Category.none
    attachments: list[Attachment] = Field(default_factory=list)
    created_by: Optional[UserRef] = None
    # voter phone number -> True; absence means no vote
    votes: dict[str, bool] = Field(default_factory=dict)
    order: float = 0

    @field_validator("start_time", "end_time", mode="after")
    @classmethod
    def as_wall_clock(cls, value: datetime) -> datetime:
        return value.replace(tzinfo=None)

    @field_validator("description", mode="before")
    @classmethod
    def empty_description(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("attachments", mode="before")
    @classmethod
    def empty_attachments(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("category", mode="before")
    @classmethod
    def known_category(cls, value: Any) -> Any:
        if isinstance(value, Category):
            return value
        return Category.from_label(value)

    @field_serializer("start_time", "end_time")
    def serialize_time(self, value: datetime) -> str:
        return value.strftime(STORE_TIME_FORMAT)

    @property
    def day(self) -> date:
        """The calendar day the item is filed under."""
        return self.start_time.date()

    @property
    def vote_count(self) -> int:
        return sum(1 for voted in self.votes.values() if voted)

    def has_voted(self, phone_number: str) -> bool:
        return bool(self.votes.get(phone_number))

    def check_time_range(self) -> None:
        """Reject items whose end is not after their start."""
        if not self.name.strip():
            raise ValidationError("Itinerary item needs a name")
        if self.start_time >= self.end_time:
            raise ValidationError(
                f"Item '{self.name}' must end after it starts "
                f"({self.start_time:%H:%M} - {self.end_time:%H:%M})"
            )
