from typing import Optional

from pydantic import ConfigDict

from .base import WireModel


class UserRef(WireModel):
    """A trip member, keyed by phone number."""

    model_config = ConfigDict(frozen=True)

    phone_number: str
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.phone_number
