"""Best-effort writer for the append-only activity trail."""

import logging
from typing import Any, Optional
from uuid import uuid4

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)
from tenacity.wait import wait_base

from errors import TransientIOError
from models import ACTIVITY_FOR_DETAILS, Activity, ActivityDetails, UserRef, utc_now
from store import TreeStore, TripPaths

logger = logging.getLogger(__name__)


class ActivityRecorder:
    """
    Appends activity records under ``trips/<id>/activities/<uuid>``.

    Recording never raises: a record that cannot be written after retrying is
    logged and kept for ``flush_pending``. The mutation it describes has
    already been committed and is never rolled back because of it.
    """

    def __init__(
        self,
        store: TreeStore,
        attempts: int = 3,
        wait: Optional[wait_base] = None,
    ):
        self.store = store
        self.attempts = attempts
        self.wait = wait or wait_random_exponential(min=0.5, max=10)
        self.pending: list[tuple[str, dict[str, Any]]] = []

    async def _write(self, path: str, payload: dict[str, Any]) -> None:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(TransientIOError),
            wait=self.wait,
            stop=stop_after_attempt(self.attempts),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
            reraise=True,
        ):
            with attempt:
                await self.store.write_batch({path: payload})

    async def record(
        self, trip_id: str, actor: UserRef, details: ActivityDetails
    ) -> Activity:
        activity_type = ACTIVITY_FOR_DETAILS[type(details)]
        activity = activity_type(
            id=str(uuid4()),
            timestamp=utc_now(),
            user_id=actor.phone_number,
            user_name=actor.name,
            details=details,
        )
        path = TripPaths(trip_id).activity(activity.id)
        payload = activity.to_store()
        try:
            await self._write(path, payload)
        except Exception as e:
            logger.error(f"Failed to record {activity.type} activity for trip {trip_id}: {e}")
            self.pending.append((path, payload))
        else:
            logger.debug(f"Recorded {activity.type} activity {activity.id}")
        return activity

    async def flush_pending(self) -> int:
        """Retry queued records. Returns how many were written."""
        queued, self.pending = self.pending, []
        written = 0
        for path, payload in queued:
            try:
                await self._write(path, payload)
            except Exception as e:
                logger.error(f"Activity at {path} still failing: {e}")
                self.pending.append((path, payload))
            else:
                written += 1
        if written:
            logger.info(f"Flushed {written} queued activity records")
        return written
