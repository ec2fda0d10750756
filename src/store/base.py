import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol

from .paths import is_ancestor, split_path

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[Any], None]


class Subscription:
    """
    Handle returned by ``TreeStore.subscribe``.

    ``unsubscribe`` is idempotent. Use the handle as a (async) context manager
    to guarantee release on every exit path.
    """

    def __init__(self, path: str, release: Callable[["Subscription"], None]):
        self.path = path
        self._release: Optional[Callable[["Subscription"], None]] = release

    @property
    def active(self) -> bool:
        return self._release is not None

    def unsubscribe(self) -> None:
        release, self._release = self._release, None
        if release is not None:
            release(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.unsubscribe()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.unsubscribe()


class TreeStore(Protocol):
    """A shared keyed tree with multi-path batch writes and whole-value subscriptions."""

    async def read(self, path: str) -> Any: ...

    async def subscribe(self, path: str, on_snapshot: SnapshotCallback) -> Subscription: ...

    async def write_batch(self, updates: Mapping[str, Any]) -> None: ...


class SubscriberRegistry:
    """In-process fan-out of snapshots to subscribers after a committed batch."""

    def __init__(self) -> None:
        self._subscribers: dict[Subscription, tuple[list[str], SnapshotCallback]] = {}

    def __len__(self) -> int:
        return len(self._subscribers)

    def add(self, path: str, callback: SnapshotCallback) -> Subscription:
        subscription = Subscription(path, self._remove)
        self._subscribers[subscription] = (split_path(path), callback)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        self._subscribers.pop(subscription, None)

    async def notify(
        self,
        written: list[list[str]],
        read_parts: Callable[[list[str]], Awaitable[Any]],
    ) -> None:
        for subscription, (parts, callback) in list(self._subscribers.items()):
            if not any(is_ancestor(parts, w) or is_ancestor(w, parts) for w in written):
                continue
            value = await read_parts(parts)
            # Unsubscribed while we were reading
            if not subscription.active:
                continue
            deliver(subscription.path, callback, value)


def deliver(path: str, callback: SnapshotCallback, value: Any) -> None:
    try:
        callback(value)
    except Exception as e:
        logger.error(f"Snapshot subscriber for '{path}' failed: {e}")
