from typing import Any, Callable, Mapping, Optional

from errors import TransientIOError
from store import MemoryTreeStore


class FlakyStore(MemoryTreeStore):
    """MemoryTreeStore whose batch writes fail while ``fail_when`` matches."""

    def __init__(
        self,
        fail_when: Callable[[Mapping[str, Any]], bool] = lambda _updates: False,
        initial: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(initial)
        self.fail_when = fail_when
        self.failed_batches: list[dict[str, Any]] = []

    async def write_batch(self, updates: Mapping[str, Any]) -> None:
        if self.fail_when(updates):
            self.failed_batches.append(dict(updates))
            raise TransientIOError("store unavailable")
        await super().write_batch(updates)


def touches(segment: str) -> Callable[[Mapping[str, Any]], bool]:
    """Predicate matching batches that write under a path segment, e.g. "activities"."""
    return lambda updates: any(f"/{segment}/" in f"/{path}/" for path in updates)
