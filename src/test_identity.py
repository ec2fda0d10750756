"""Unit tests for phone verification sessions."""

from datetime import timedelta
from unittest.mock import AsyncMock, Mock

import pytest

from errors import PermissionDenied, ValidationError
from identity import PhoneVerification, format_e164


@pytest.fixture
def provider():
    client = Mock()
    client.send_code = AsyncMock(return_value="verification-1")
    client.check_code = AsyncMock(side_effect=lambda _vid, code: code == "123456")
    return client


class TestFormatting:
    def test_adds_default_country_code(self):
        assert format_e164("(555) 000-0001") == "+15550000001"

    def test_keeps_explicit_country_code(self):
        assert format_e164("+972 50 123 4567") == "+972501234567"

    def test_rejects_short_numbers(self):
        with pytest.raises(ValidationError):
            format_e164("123")


class TestVerificationSession:
    @pytest.mark.asyncio
    async def test_session_is_single_use(self, provider: Mock):
        session = await PhoneVerification(provider).start("5550000001")
        provider.send_code.assert_awaited_once_with("+15550000001")

        actor = await session.confirm("123456", name="Alice")

        assert actor.phone_number == "+15550000001"
        assert actor.name == "Alice"
        assert not session.usable
        with pytest.raises(PermissionDenied):
            await session.confirm("123456")

    @pytest.mark.asyncio
    async def test_wrong_code_keeps_session_open(self, provider: Mock):
        session = await PhoneVerification(provider).start("+15550000001")

        with pytest.raises(PermissionDenied):
            await session.confirm("000000")
        assert session.usable

        assert (await session.confirm(" 123456 ")).phone_number == "+15550000001"

    @pytest.mark.asyncio
    async def test_expired_session(self, provider: Mock):
        session = await PhoneVerification(provider, ttl=timedelta(seconds=-1)).start("+15550000001")

        with pytest.raises(PermissionDenied):
            await session.confirm("123456")
        provider.check_code.assert_not_awaited()
