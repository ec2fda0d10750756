"""Unit tests for AttachmentStoreClient."""

import httpx
import pytest

from attachments import AttachmentStoreClient, storage_name
from config import Settings
from errors import NotFoundError, TransientIOError, ValidationError


def make_client(settings: Settings, handler) -> AttachmentStoreClient:
    return AttachmentStoreClient(settings, transport=httpx.MockTransport(handler))


class TestUpload:
    @pytest.mark.asyncio
    async def test_upload_returns_stored_attachment(self, test_settings: Settings):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"url": "https://cdn.test/ticket.png"})

        async with make_client(test_settings, handler) as client:
            uploaded = await client.upload(b"\x89PNG", "ticket.png", "image/png", "t1", item_id="i1")

        assert uploaded.url == "https://cdn.test/ticket.png"
        assert uploaded.name == "ticket.png"
        assert uploaded.size == 4
        assert uploaded.path.startswith("trips/t1/attachments/")
        assert uploaded.path.endswith("-ticket.png")

        [request] = requests
        assert request.method == "PUT"
        assert request.headers["Authorization"] == "Bearer test-token"
        assert request.headers["Content-Type"] == "image/png"
        assert request.url.params["itemId"] == "i1"

    @pytest.mark.asyncio
    async def test_oversize_rejected_before_network(self):
        settings = Settings(max_attachment_bytes=10)
        calls = []

        async with make_client(settings, lambda r: calls.append(r) or httpx.Response(200)) as client:
            with pytest.raises(ValidationError):
                await client.upload(b"x" * 11, "big.png", "image/png", "t1")
            with pytest.raises(ValidationError):
                await client.upload(b"", "empty.png", "image/png", "t1")

        assert calls == []

    @pytest.mark.asyncio
    async def test_server_error_is_transient(self, test_settings: Settings):
        async with make_client(test_settings, lambda r: httpx.Response(503)) as client:
            with pytest.raises(TransientIOError):
                await client.upload(b"data", "a.png", "image/png", "t1")


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_by_path_and_missing(self, test_settings: Settings):
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(404 if "gone" in request.url.path else 204)

        async with make_client(test_settings, handler) as client:
            await client.delete("trips/t1/attachments/1-a.png")
            with pytest.raises(NotFoundError):
                await client.delete("https://files.test/attachments/gone.png")

        assert seen[0] == "https://files.test/attachments/trips/t1/attachments/1-a.png"


def test_storage_name_is_sanitized():
    assert storage_name("my ticket (1).PNG", now_ms=42) == "42-my_ticket_1.PNG"
    assert storage_name("noext", now_ms=1) == "1-noext"
