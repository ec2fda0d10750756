import copy
import logging
from typing import Any, Mapping, Optional

from .base import SnapshotCallback, SubscriberRegistry, Subscription, deliver
from .paths import check_disjoint, split_path
from .tree import apply_batch, get_at, normalize

logger = logging.getLogger(__name__)


class MemoryTreeStore:
    """
    Reference ``TreeStore`` kept in process memory.

    A batch is computed on a copy and swapped in whole, so subscribers never
    observe a partially applied batch.
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        self._tree: Any = normalize(copy.deepcopy(dict(initial))) if initial else None
        self._subscribers = SubscriberRegistry()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def read(self, path: str) -> Any:
        return get_at(self._tree, split_path(path))

    async def _read_parts(self, parts: list[str]) -> Any:
        return get_at(self._tree, parts)

    async def subscribe(self, path: str, on_snapshot: SnapshotCallback) -> Subscription:
        subscription = self._subscribers.add(path, on_snapshot)
        deliver(path, on_snapshot, await self.read(path))
        return subscription

    async def write_batch(self, updates: Mapping[str, Any]) -> None:
        if not updates:
            return
        written = check_disjoint(updates.keys())
        self._tree = apply_batch(self._tree, list(zip(written, updates.values())))
        logger.debug(f"Applied batch of {len(updates)} paths")
        await self._subscribers.notify(written, self._read_parts)
