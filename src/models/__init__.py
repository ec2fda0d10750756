from .activity import (
    ACTIVITY_FOR_DETAILS,
    Activity,
    ActivityDetails,
    ItineraryAddActivity,
    ItineraryAddDetails,
    ItineraryVoteActivity,
    ItineraryVoteDetails,
    RsvpChangeActivity,
    RsvpChangeDetails,
    TaskCompleteActivity,
    TaskCompleteDetails,
    TaskCreateActivity,
    TaskCreateDetails,
    TripUpdateActivity,
    TripUpdateDetails,
    activity_adapter,
    describe_activity,
)
from .itinerary import Attachment, Category, ItineraryItem
from .tree_node import TreeNode
from .trip import AdminGrant, Rsvp, RsvpStatus, Task, Trip, utc_now
from .user import UserRef

__all__ = [
    "ACTIVITY_FOR_DETAILS",
    "Activity",
    "ActivityDetails",
    "AdminGrant",
    "Attachment",
    "Category",
    "ItineraryAddActivity",
    "ItineraryAddDetails",
    "ItineraryItem",
    "ItineraryVoteActivity",
    "ItineraryVoteDetails",
    "Rsvp",
    "RsvpChangeActivity",
    "RsvpChangeDetails",
    "RsvpStatus",
    "Task",
    "TaskCompleteActivity",
    "TaskCompleteDetails",
    "TaskCreateActivity",
    "TaskCreateDetails",
    "TreeNode",
    "Trip",
    "TripUpdateActivity",
    "TripUpdateDetails",
    "UserRef",
    "activity_adapter",
    "describe_activity",
    "utc_now",
]
