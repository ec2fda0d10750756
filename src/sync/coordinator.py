"""Optimistic, permission-checked mutations of a shared trip."""

import logging
from datetime import date
from typing import Any, Mapping, Optional, get_args
from uuid import uuid4

from attachments import AttachmentStoreClient, UploadedAttachment
from errors import (
    ItineraryError,
    LastAdminError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from identity import Actor
from models import (
    ActivityDetails,
    AdminGrant,
    ItineraryAddDetails,
    ItineraryItem,
    ItineraryVoteDetails,
    Rsvp,
    RsvpChangeDetails,
    RsvpStatus,
    Task,
    TaskCompleteDetails,
    TaskCreateDetails,
    TripUpdateDetails,
    UserRef,
    utc_now,
)
from models.activity import TripField
from store import TreeStore, TripPaths, parse_iso_day
from .activity import ActivityRecorder
from .share_code import generate_share_code
from .view import TripView

logger = logging.getLogger(__name__)

TRIP_FIELDS = get_args(TripField)


def new_id() -> str:
    return str(uuid4())


class TripCoordinator:
    """
    Applies one actor's edits to ``trips/<trip_id>``.

    Each operation checks permissions against the store, shows its batch on
    ``view`` (if given) before writing, and rolls the view back when the write
    fails. Activity records are written after the mutation commits and never
    cause it to fail.
    """

    def __init__(
        self,
        store: TreeStore,
        trip_id: str,
        actor: Actor,
        recorder: Optional[ActivityRecorder] = None,
        view: Optional[TripView] = None,
        attachments: Optional[AttachmentStoreClient] = None,
    ):
        self.store = store
        self.paths = TripPaths(trip_id)
        self.actor = actor
        self.recorder = recorder or ActivityRecorder(store)
        self.view = view
        self.attachments = attachments

    @property
    def trip_id(self) -> str:
        return self.paths.trip_id

    @classmethod
    async def create_trip(
        cls,
        store: TreeStore,
        actor: Actor,
        name: str,
        location: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        description: Optional[str] = None,
        **kwargs,
    ) -> "TripCoordinator":
        """Create a trip with ``actor`` as its first admin and return its coordinator."""
        if not name or not name.strip():
            raise ValidationError("Trip name is required")
        _check_date_range(start_date, end_date)

        trip_id = await generate_share_code(store, name)
        now = utc_now()
        payload = {
            "name": name.strip(),
            "location": location,
            "startDate": start_date,
            "endDate": end_date,
            "description": description,
            "createdAt": now.isoformat(),
            "createdBy": actor.to_store(),
            "shareCode": trip_id,
            "admins": {
                actor.phone_number: AdminGrant(name=actor.name, added_at=now, added_by=actor).to_store()
            },
        }
        await store.write_batch({TripPaths(trip_id).root: payload})
        logger.info(f"{actor.phone_number} created trip {trip_id}")
        return cls(store, trip_id, actor, **kwargs)

    # -- helpers ---------------------------------------------------------

    async def _admins(self) -> dict[str, Any]:
        admins = await self.store.read(self.paths.admins())
        return admins if isinstance(admins, Mapping) else {}

    async def is_admin(self) -> bool:
        return self.actor.phone_number in await self._admins()

    async def _require_admin(self, action: str) -> None:
        if not await self.is_admin():
            logger.warning(f"{self.actor.phone_number} tried to {action} on trip {self.trip_id}")
            raise PermissionDenied(f"Only trip admins can {action}", action=action)

    async def _read_existing(self, path: str, what: str) -> Any:
        value = await self.store.read(path)
        if value is None:
            raise NotFoundError(f"{what} not found", path=path)
        return value

    async def _commit(self, updates: Mapping[str, Any]) -> None:
        if self.view is not None:
            self.view.apply_optimistic(updates)
        try:
            await self.store.write_batch(updates)
        except Exception as e:
            if self.view is not None:
                self.view.rollback()
            logger.error(f"Write to trip {self.trip_id} failed: {e}")
            raise

    async def _record(self, details: ActivityDetails) -> None:
        await self.recorder.record(self.trip_id, self.actor, details)

    # -- itinerary -------------------------------------------------------

    async def add_item(self, item: ItineraryItem) -> ItineraryItem:
        item.check_time_range()
        if item.created_by is None:
            item = item.model_copy(update={"created_by": self.actor})
        await self._commit({self.paths.item(item.day, item.id): item.to_store()})
        logger.info(f"Added item {item.id} on {item.day} to trip {self.trip_id}")
        await self._record(ItineraryAddDetails(item_name=item.name, item_date=item.day))
        return item

    async def update_item(self, old_day: date, item: ItineraryItem) -> ItineraryItem:
        """
        Save an edited item, moving it to another day bucket if its start date changed.

        Votes are taken from the stored item so concurrent votes survive the edit.
        """
        item.check_time_range()
        old_path = self.paths.item(old_day, item.id)
        existing = await self._read_existing(old_path, f"Item {item.id}")

        payload = item.to_store()
        payload["votes"] = existing.get("votes")
        updates: dict[str, Any] = {self.paths.item(item.day, item.id): payload}
        if item.day != old_day:
            updates[old_path] = None
            logger.info(f"Moving item {item.id} from {old_day} to {item.day}")
        await self._commit(updates)
        return item

    async def delete_item(self, day: date, item_id: str) -> None:
        await self._require_admin("delete itinerary items")
        path = self.paths.item(day, item_id)
        existing = await self._read_existing(path, f"Item {item_id}")
        await self._commit({path: None})
        logger.info(f"Deleted item {item_id} from trip {self.trip_id}")

        if self.attachments is None:
            return
        for attachment in existing.get("attachments") or []:
            target = attachment.get("path") or attachment.get("url")
            if not target:
                continue
            try:
                await self.attachments.delete(target)
            except ItineraryError as e:
                logger.warning(f"Could not delete attachment {target}: {e}")

    async def toggle_vote(self, day: date, item_id: str) -> bool:
        """
        Flip the actor's vote on an item. Returns True if the actor now votes for it.

        Reads the whole vote map and writes it back; two rapid toggles by the
        same user on different devices can lose one of them.
        """
        item_path = self.paths.item(day, item_id)
        existing = await self._read_existing(item_path, f"Item {item_id}")

        votes = dict(existing.get("votes") or {})
        voted = not votes.get(self.actor.phone_number)
        if voted:
            votes[self.actor.phone_number] = True
        else:
            votes.pop(self.actor.phone_number, None)

        await self._commit({self.paths.votes(day, item_id): votes or None})
        await self._record(
            ItineraryVoteDetails(item_id=item_id, item_name=existing.get("name", ""), voted=voted)
        )
        return voted

    async def upload_attachment(
        self, data: bytes, filename: str, mime_type: str, item_id: Optional[str] = None
    ) -> UploadedAttachment:
        if self.attachments is None:
            raise ItineraryError("No attachment store configured")
        return await self.attachments.upload(data, filename, mime_type, self.trip_id, item_id)

    # -- tasks -----------------------------------------------------------

    async def create_task(
        self,
        title: str,
        due_date: Optional[date] = None,
        assignee: Optional[UserRef] = None,
    ) -> Task:
        if not title or not title.strip():
            raise ValidationError("Task title is required")
        task = Task(
            id=new_id(),
            title=title.strip(),
            due_date=due_date,
            assignee=assignee,
            created_by=self.actor,
        )
        await self._commit({self.paths.task(task.id): task.to_store()})
        await self._record(TaskCreateDetails(task_name=task.title))
        return task

    async def toggle_task(self, task_id: str) -> bool:
        """Flip completion. Allowed for the assignee and for admins."""
        raw = await self._read_existing(self.paths.task(task_id), f"Task {task_id}")
        task = Task.model_validate({**raw, "id": task_id})
        if not task.is_assigned_to(self.actor.phone_number) and not await self.is_admin():
            raise PermissionDenied(
                "Only the assignee or an admin can complete this task", action="toggle_task"
            )

        completed = not task.completed
        await self._commit({self.paths.task_completed(task_id): completed})
        await self._record(TaskCompleteDetails(task_name=task.title, completed=completed))
        return completed

    async def delete_task(self, task_id: str) -> None:
        await self._require_admin("delete tasks")
        path = self.paths.task(task_id)
        await self._read_existing(path, f"Task {task_id}")
        await self._commit({path: None})

    # -- members ---------------------------------------------------------

    async def set_rsvp(self, status: RsvpStatus) -> Rsvp:
        path = self.paths.rsvp(self.actor.phone_number)
        previous = await self.store.read(path)
        old_status = previous.get("status") if isinstance(previous, Mapping) else None

        rsvp = Rsvp(phone_number=self.actor.phone_number, name=self.actor.name, status=status)
        await self._commit({path: rsvp.to_store()})
        if old_status != status.value:
            await self._record(RsvpChangeDetails(old_status=old_status, new_status=status.value))
        return rsvp

    async def grant_admin(self, user: UserRef) -> AdminGrant:
        await self._require_admin("add admins")
        grant = AdminGrant(name=user.name, added_by=self.actor)
        await self._commit({self.paths.admin(user.phone_number): grant.to_store()})
        logger.info(f"{self.actor.phone_number} made {user.phone_number} an admin of {self.trip_id}")
        return grant

    async def revoke_admin(self, phone_number: str) -> None:
        """
        Remove an admin grant.

        Raises:
            LastAdminError: If it is the trip's only admin.
        """
        await self._require_admin("remove admins")
        admins = await self._admins()
        if phone_number not in admins:
            raise NotFoundError(f"{phone_number} is not an admin", path=self.paths.admin(phone_number))
        if len(admins) <= 1:
            raise LastAdminError("A trip must keep at least one admin", action="revoke_admin")
        await self._commit({self.paths.admin(phone_number): None})
        logger.info(f"{self.actor.phone_number} removed admin {phone_number} from {self.trip_id}")

    # -- trip ------------------------------------------------------------

    async def update_trip(self, field: str, value: Optional[str]) -> None:
        """Edit ``name``, ``location``, ``startDate`` or ``endDate``."""
        if field not in TRIP_FIELDS:
            raise ValidationError(f"Unknown trip field: {field}")
        await self._require_admin("edit the trip")

        value = value.strip() if isinstance(value, str) else value
        if field == "name" and not value:
            raise ValidationError("Trip name is required")
        if field in ("startDate", "endDate") and value:
            other_field = "endDate" if field == "startDate" else "startDate"
            other = await self.store.read(self.paths.field(other_field))
            if field == "startDate":
                _check_date_range(value, other)
            else:
                _check_date_range(other, value)

        path = self.paths.field(field)
        old_value = await self.store.read(path)
        await self._commit({path: value or None})
        await self._record(TripUpdateDetails(field=field, old_value=old_value, new_value=value or None))

    async def delete_trip(self) -> None:
        await self._require_admin("delete the trip")
        await self._commit({self.paths.root: None})
        logger.info(f"{self.actor.phone_number} deleted trip {self.trip_id}")


def _check_date_range(start: Optional[str], end: Optional[str]) -> None:
    start_day = parse_iso_day(start) if start else None
    end_day = parse_iso_day(end) if end else None
    if start_day and end_day and end_day < start_day:
        raise ValidationError(f"Trip ends ({end}) before it starts ({start})")
