"""Debounced, cancelable extraction for a single input field."""

import asyncio
import logging
from contextlib import suppress
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K")
R = TypeVar("R")


class ExtractionState(str, Enum):
    idle = "idle"
    pending = "pending"
    in_flight = "in_flight"
    applied = "applied"


class DebouncedExtractor(Generic[K, R]):
    """
    Runs ``extract`` for the latest settled input and applies only its result.

    Every new input cancels the pending timer and any in-flight request.
    A result is applied only while its input is still the current one, so a
    superseded request that resolves late is discarded. Cancellation is never
    reported to ``on_error``.

    Args:
        extract: Coroutine producing a result for an input
        apply: Called with (input, result) for the winning request
        delay: Seconds the input must stay unchanged before extracting
        accept: Inputs failing this predicate never trigger a request
        on_error: Called with (input, error) when extraction fails
    """

    def __init__(
        self,
        extract: Callable[[K], Awaitable[R]],
        apply: Callable[[K, R], None],
        delay: float,
        accept: Optional[Callable[[K], bool]] = None,
        on_error: Optional[Callable[[K, Exception], None]] = None,
    ):
        self._extract = extract
        self._apply = apply
        self.delay = delay
        self._accept = accept or (lambda _value: True)
        self._on_error = on_error

        self.state = ExtractionState.idle
        self._current: Optional[K] = None
        self._last_processed: Optional[K] = None
        self._active: Optional[asyncio.Task] = None
        # (input, marker before it) for the active request once it is in flight
        self._in_flight: Optional[tuple[K, Optional[K]]] = None
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def current(self) -> Optional[K]:
        return self._current

    @property
    def last_processed(self) -> Optional[K]:
        return self._last_processed

    def feed(self, value: K) -> None:
        """Record a new input value; must be called from a running event loop."""
        if self._closed:
            logger.debug("Ignoring input after close")
            return

        self._current = value
        self.cancel()

        if not self._accept(value) or value == self._last_processed:
            return

        self.state = ExtractionState.pending
        task = asyncio.get_running_loop().create_task(self._run(value))
        self._active = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def cancel(self) -> None:
        """Cancel the pending timer and any in-flight request."""
        if self._active is not None and not self._active.done():
            self._active.cancel()
        if self._in_flight is not None:
            self._rollback(*self._in_flight)
            self._in_flight = None
        self._active = None
        if self.state in (ExtractionState.pending, ExtractionState.in_flight):
            self.state = ExtractionState.idle

    def refresh(self) -> None:
        """Extract the current input again, even if it was already processed."""
        if self._current is None:
            return
        self.cancel()
        self._last_processed = None
        self.feed(self._current)

    async def _run(self, value: K) -> None:
        if self.delay > 0:
            await asyncio.sleep(self.delay)

        previous = self._last_processed
        self._last_processed = value
        self._in_flight = (value, previous)
        self.state = ExtractionState.in_flight
        try:
            result = await self._extract(value)
        except Exception as e:
            # A superseded request was already rolled back by cancel()
            if self._is_active():
                self._in_flight = None
                self._rollback(value, previous)
                self.state = ExtractionState.idle
                logger.warning(f"Extraction for {value!r} failed: {e}")
                if self._on_error is not None:
                    self._on_error(value, e)
            return

        # The request may have ignored cancellation and finished anyway
        if not self._is_active() or value != self._current:
            logger.debug(f"Discarding stale result for {value!r}")
            return

        self._active = None
        self._in_flight = None
        try:
            self._apply(value, result)
        except Exception as e:
            self.state = ExtractionState.idle
            logger.error(f"Applying result for {value!r} failed: {e}")
            return
        self.state = ExtractionState.applied

    def _is_active(self) -> bool:
        return asyncio.current_task() is self._active

    def _rollback(self, value: K, previous: Optional[K]) -> None:
        # Re-entering the same input must trigger a fresh request
        if self._last_processed == value:
            self._last_processed = previous

    async def wait_idle(self) -> None:
        """Wait for every outstanding request, including superseded ones."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        self._closed = True
        for task in list(self._tasks):
            task.cancel()
        with suppress(asyncio.CancelledError):
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._active = None
        self._in_flight = None
        self.state = ExtractionState.idle

    async def __aenter__(self) -> "DebouncedExtractor[K, R]":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
