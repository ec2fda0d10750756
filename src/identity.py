"""Acting user and phone-number verification.

The acting user is always passed explicitly. Verification produces a
``VerificationSession`` that lives from the moment a code is sent until it is
confirmed once; nothing is stored in module globals.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

from errors import PermissionDenied, ValidationError
from models import UserRef

logger = logging.getLogger(__name__)

Actor = UserRef


def format_e164(phone_number: str, default_country_code: str = "1") -> str:
    """Normalize user input to E.164; numbers without "+" get the default country code."""
    digits = re.sub(r"\D", "", phone_number or "")
    if not phone_number.strip().startswith("+"):
        digits = default_country_code + digits
    if not 8 <= len(digits) <= 15:
        raise ValidationError(f"Invalid phone number: {phone_number}")
    return f"+{digits}"


class VerificationProvider(Protocol):
    """SMS backend: sends a code and later checks it."""

    async def send_code(self, phone_number: str) -> str:
        """Returns an opaque verification id."""
        ...

    async def check_code(self, verification_id: str, code: str) -> bool: ...


class VerificationSession:
    """One pending verification. Usable until it succeeds once or expires."""

    def __init__(
        self,
        provider: VerificationProvider,
        phone_number: str,
        verification_id: str,
        expires_at: datetime,
    ):
        self.provider = provider
        self.phone_number = phone_number
        self.verification_id = verification_id
        self.expires_at = expires_at
        self._consumed = False

    @property
    def expired(self) -> bool:
        return datetime.now(timezone.utc) >= self.expires_at

    @property
    def usable(self) -> bool:
        return not self._consumed and not self.expired

    async def confirm(self, code: str, name: Optional[str] = None) -> Actor:
        """
        Check the code and return the verified actor.

        Raises:
            PermissionDenied: If the session was already used, has expired,
                or the code is wrong.
        """
        if self._consumed:
            raise PermissionDenied("Verification session was already used", action="verify")
        if self.expired:
            raise PermissionDenied("Verification code expired", action="verify")
        if not await self.provider.check_code(self.verification_id, code.strip()):
            logger.info(f"Wrong verification code for {self.phone_number}")
            raise PermissionDenied("Invalid verification code", action="verify")

        self._consumed = True
        logger.info(f"Verified {self.phone_number}")
        return Actor(phone_number=self.phone_number, name=name)


class PhoneVerification:
    def __init__(self, provider: VerificationProvider, ttl: timedelta = timedelta(minutes=5)):
        self.provider = provider
        self.ttl = ttl

    async def start(self, phone_number: str) -> VerificationSession:
        formatted = format_e164(phone_number)
        verification_id = await self.provider.send_code(formatted)
        logger.info(f"Sent verification code to {formatted}")
        return VerificationSession(
            self.provider,
            formatted,
            verification_id,
            expires_at=datetime.now(timezone.utc) + self.ttl,
        )
