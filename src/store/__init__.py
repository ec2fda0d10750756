from .base import SnapshotCallback, SubscriberRegistry, Subscription, TreeStore
from .memory import MemoryTreeStore
from .paths import DayKey, TripPaths, check_disjoint, join_path, parse_iso_day, split_path, validate_key
from .sql import SqlTreeStore
from .tree import apply_batch, get_at, normalize, set_at

__all__ = [
    "DayKey",
    "MemoryTreeStore",
    "SnapshotCallback",
    "SqlTreeStore",
    "SubscriberRegistry",
    "Subscription",
    "TreeStore",
    "TripPaths",
    "apply_batch",
    "check_disjoint",
    "get_at",
    "join_path",
    "normalize",
    "parse_iso_day",
    "set_at",
    "split_path",
    "validate_key",
]
