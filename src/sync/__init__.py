from .activity import ActivityRecorder
from .coordinator import TRIP_FIELDS, TripCoordinator, new_id
from .share_code import generate_share_code, slugify
from .view import RsvpSummary, TaskLists, TripView

__all__ = [
    "ActivityRecorder",
    "RsvpSummary",
    "TRIP_FIELDS",
    "TaskLists",
    "TripCoordinator",
    "TripView",
    "generate_share_code",
    "new_id",
    "slugify",
]
