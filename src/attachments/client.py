"""Async client for the attachment blob store."""

import logging
import re
import time
from typing import Optional

import httpx

from config import Settings
from errors import NotFoundError, TransientIOError, ValidationError
from models import Attachment
from store import validate_key

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^\w\-]+")


class UploadedAttachment(Attachment):
    """An attachment that has been stored; ``size`` and ``path`` are always known."""

    size: int
    path: str


def storage_name(filename: str, now_ms: Optional[int] = None) -> str:
    """Timestamped object name, e.g. ``1704190000000-ticket.png``."""
    stem, dot, ext = filename.rpartition(".")
    if not dot:
        stem, ext = filename, ""
    stem = _UNSAFE_NAME_CHARS.sub("_", stem).strip("_") or "file"
    ext = _UNSAFE_NAME_CHARS.sub("", ext)
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{now_ms}-{stem}" + (f".{ext}" if ext else "")


class AttachmentStoreClient:
    """Uploads and deletes item attachments under ``trips/<id>/attachments``."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Provides the store base URL, token and size limit.
            transport: Optional transport override, used by tests.
        """
        self.base_url = settings.attachment_base_url.rstrip("/")
        self.max_bytes = settings.max_attachment_bytes
        self._token = settings.attachment_token
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the HTTP client."""
        if self._client is None:
            headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
            self._client = httpx.AsyncClient(
                headers=headers,
                timeout=httpx.Timeout(120.0),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "AttachmentStoreClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _url(self, path_or_url: str) -> str:
        if path_or_url.startswith(("http://", "https://")):
            return path_or_url
        return f"{self.base_url}/{path_or_url.lstrip('/')}"

    async def upload(
        self,
        data: bytes,
        filename: str,
        mime_type: str,
        trip_id: str,
        item_id: Optional[str] = None,
    ) -> UploadedAttachment:
        """
        Store a file for an itinerary item.

        Args:
            data: Raw file bytes.
            filename: Original file name, kept as the display name.
            mime_type: MIME type of the file.
            trip_id: Trip the file belongs to.
            item_id: Item the file is attached to, if it exists yet.

        Returns:
            The stored attachment with its download URL and storage path.

        Raises:
            ValidationError: If the file is empty or larger than the limit.
            TransientIOError: If the store rejects or drops the upload.
        """
        if not data:
            raise ValidationError(f"'{filename}' is empty")
        if len(data) > self.max_bytes:
            raise ValidationError(
                f"'{filename}' is {len(data)} bytes; the limit is {self.max_bytes} bytes"
            )

        path = f"trips/{validate_key(trip_id)}/attachments/{storage_name(filename)}"
        params = {"itemId": item_id} if item_id else None
        logger.info(f"Uploading {filename} ({len(data)} bytes) to {path}")
        try:
            response = await self.client.put(
                self._url(path),
                content=data,
                headers={"Content-Type": mime_type},
                params=params,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Upload of {filename} failed: {e}")
            raise TransientIOError(f"Upload of '{filename}' failed: {e}") from e

        body = response.json() if response.content else {}
        return UploadedAttachment(
            url=body.get("url") or self._url(path),
            name=filename,
            type=mime_type,
            size=len(data),
            path=path,
        )

    async def delete(self, path_or_url: str) -> None:
        """
        Delete a stored file by storage path or download URL.

        Raises:
            NotFoundError: If the file does not exist.
            TransientIOError: If the store cannot be reached.
        """
        try:
            response = await self.client.delete(self._url(path_or_url))
        except httpx.HTTPError as e:
            raise TransientIOError(f"Delete of '{path_or_url}' failed: {e}") from e
        if response.status_code == 404:
            raise NotFoundError(f"Attachment '{path_or_url}' not found", path=path_or_url)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransientIOError(f"Delete of '{path_or_url}' failed: {e}") from e
        logger.info(f"Deleted attachment {path_or_url}")
