"""Append-only activity trail records.

Each record type carries only the details relevant to it; the ``type`` field
discriminates the union when a snapshot is parsed.
"""

from datetime import date, datetime
from typing import Annotated, Literal, Optional, Union, assert_never

from pydantic import Field, TypeAdapter

from .base import WireModel

RsvpStatusValue = Literal["going", "maybe", "not_going"]
TripField = Literal["name", "location", "startDate", "endDate"]


class ItineraryAddDetails(WireModel):
    item_name: str
    item_date: date


class RsvpChangeDetails(WireModel):
    old_status: Optional[RsvpStatusValue] = None
    new_status: RsvpStatusValue


class ItineraryVoteDetails(WireModel):
    item_id: str
    item_name: str
    voted: bool


class TripUpdateDetails(WireModel):
    field: TripField
    old_value: Optional[str] = None
    new_value: Optional[str] = None


class TaskCreateDetails(WireModel):
    task_name: str


class TaskCompleteDetails(WireModel):
    task_name: str
    completed: bool


ActivityDetails = Union[
    ItineraryAddDetails,
    RsvpChangeDetails,
    ItineraryVoteDetails,
    TripUpdateDetails,
    TaskCreateDetails,
    TaskCompleteDetails,
]


class _ActivityBase(WireModel):
    id: str
    timestamp: datetime
    user_id: str
    user_name: Optional[str] = None


class ItineraryAddActivity(_ActivityBase):
    type: Literal["ITINERARY_ADD"] = "ITINERARY_ADD"
    details: ItineraryAddDetails


class RsvpChangeActivity(_ActivityBase):
    type: Literal["RSVP_CHANGE"] = "RSVP_CHANGE"
    details: RsvpChangeDetails


class ItineraryVoteActivity(_ActivityBase):
    type: Literal["ITINERARY_VOTE"] = "ITINERARY_VOTE"
    details: ItineraryVoteDetails


class TripUpdateActivity(_ActivityBase):
    type: Literal["TRIP_UPDATE"] = "TRIP_UPDATE"
    details: TripUpdateDetails


class TaskCreateActivity(_ActivityBase):
    type: Literal["TASK_CREATE"] = "TASK_CREATE"
    details: TaskCreateDetails


class TaskCompleteActivity(_ActivityBase):
    type: Literal["TASK_COMPLETE"] = "TASK_COMPLETE"
    details: TaskCompleteDetails


Activity = Annotated[
    Union[
        ItineraryAddActivity,
        RsvpChangeActivity,
        ItineraryVoteActivity,
        TripUpdateActivity,
        TaskCreateActivity,
        TaskCompleteActivity,
    ],
    Field(discriminator="type"),
]

activity_adapter: TypeAdapter[Activity] = TypeAdapter(Activity)

ACTIVITY_FOR_DETAILS: dict[type, type] = {
    ItineraryAddDetails: ItineraryAddActivity,
    RsvpChangeDetails: RsvpChangeActivity,
    ItineraryVoteDetails: ItineraryVoteActivity,
    TripUpdateDetails: TripUpdateActivity,
    TaskCreateDetails: TaskCreateActivity,
    TaskCompleteDetails: TaskCompleteActivity,
}

_TRIP_FIELD_LABELS = {
    "name": "trip name",
    "location": "trip location",
    "startDate": "start date",
    "endDate": "end date",
}


def _status_label(status: Optional[str]) -> str:
    if status is None:
        return "No response"
    return status.replace("_", " ").title()


def describe_activity(activity: Activity) -> str:
    """One-line feed message for an activity record."""
    who = activity.user_name or "Someone"
    match activity:
        case ItineraryAddActivity(details=d):
            return f'{who} added "{d.item_name}" on {d.item_date:%b} {d.item_date.day}'
        case RsvpChangeActivity(details=d):
            return (
                f"{who} changed RSVP from {_status_label(d.old_status)} "
                f"to {_status_label(d.new_status)}"
            )
        case ItineraryVoteActivity(details=d):
            verb = "added" if d.voted else "removed"
            return f'{who} {verb} a thumbs up to "{d.item_name}"'
        case TripUpdateActivity(details=d):
            return f'{who} changed {_TRIP_FIELD_LABELS[d.field]} to "{d.new_value or ""}"'
        case TaskCreateActivity(details=d):
            return f"{who} created task: {d.task_name}"
        case TaskCompleteActivity(details=d):
            verb = "completed" if d.completed else "uncompleted"
            return f"{who} {verb} task: {d.task_name}"
        case _:
            assert_never(activity)
