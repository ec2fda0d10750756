"""Unit tests for activity records and their feed messages."""

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from models import (
    ItineraryAddActivity,
    ItineraryAddDetails,
    ItineraryItem,
    TaskCompleteActivity,
    activity_adapter,
    describe_activity,
)


def test_parses_by_type():
    activity = activity_adapter.validate_python(
        {
            "id": "x1",
            "type": "TASK_COMPLETE",
            "timestamp": "2024-01-01T10:00:00Z",
            "userId": "+1",
            "userName": "Dana",
            "details": {"taskName": "Pack", "completed": True},
        }
    )

    assert isinstance(activity, TaskCompleteActivity)
    assert describe_activity(activity) == "Dana completed task: Pack"


def test_unknown_type_is_rejected():
    with pytest.raises(ValidationError):
        activity_adapter.validate_python(
            {"id": "x", "type": "SOMETHING", "timestamp": "2024-01-01T00:00:00Z", "userId": "+1", "details": {}}
        )


def test_details_must_match_type():
    with pytest.raises(ValidationError):
        activity_adapter.validate_python(
            {
                "id": "x",
                "type": "ITINERARY_VOTE",
                "timestamp": "2024-01-01T00:00:00Z",
                "userId": "+1",
                "details": {"taskName": "Pack"},
            }
        )


@pytest.mark.parametrize(
    "raw, message",
    [
        ({"type": "ITINERARY_ADD", "details": {"itemName": "Museum", "itemDate": "2024-03-05"}},
         'Dana added "Museum" on Mar 5'),
        ({"type": "RSVP_CHANGE", "details": {"newStatus": "not_going"}},
         "Dana changed RSVP from No response to Not Going"),
        ({"type": "ITINERARY_VOTE", "details": {"itemId": "a", "itemName": "Museum", "voted": False}},
         'Dana removed a thumbs up to "Museum"'),
        ({"type": "TRIP_UPDATE", "details": {"field": "startDate", "oldValue": "2024-01-01", "newValue": "2024-01-02"}},
         'Dana changed start date to "2024-01-02"'),
        ({"type": "TASK_CREATE", "details": {"taskName": "Pack"}},
         "Dana created task: Pack"),
    ],
)
def test_feed_messages(raw, message):
    activity = activity_adapter.validate_python(
        {"id": "x", "timestamp": "2024-01-01T00:00:00Z", "userId": "+1", "userName": "Dana", **raw}
    )
    assert describe_activity(activity) == message


def test_round_trip_uses_wire_names():
    activity = ItineraryAddActivity(
        id="x1",
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        user_id="+1",
        details=ItineraryAddDetails(item_name="Museum", item_date=date(2024, 1, 2)),
    )

    stored = activity.to_store()

    assert stored["userId"] == "+1"
    assert "userName" not in stored
    assert stored["details"] == {"itemName": "Museum", "itemDate": "2024-01-02"}
    assert describe_activity(activity).startswith("Someone added")


def test_item_times_are_wall_clock():
    item = ItineraryItem.model_validate(
        {
            "id": "a",
            "name": "Dinner",
            "startTime": "2024-01-02T20:00:00.000Z",
            "endTime": "2024-01-02T21:30:00.000Z",
            "category": "Travel",
            "description": None,
            "attachments": None,
        }
    )

    assert item.start_time == datetime(2024, 1, 2, 20, 0)
    assert item.to_store()["endTime"] == "2024-01-02T21:30:00.000Z"
    assert item.category.value == "Transportation"
    assert item.description == ""
    assert item.attachments == []
