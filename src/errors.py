"""Error taxonomy shared by the layout, enrichment and sync packages.

Cancellation is not part of this hierarchy: superseded work is cancelled with
``asyncio.CancelledError`` and swallowed where it is cancelled.
"""


class ItineraryError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(ItineraryError):
    """Malformed input: bad time ranges, missing fields, invalid store paths."""


class PermissionDenied(ItineraryError):
    """The actor lacks the role required for the action."""

    def __init__(self, message: str, action: str | None = None):
        super().__init__(message)
        self.action = action


class LastAdminError(PermissionDenied):
    """Removing this admin would leave the trip without any admin."""


class NotFoundError(ItineraryError):
    """The entity or path no longer exists (usually a concurrent delete)."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class TransientIOError(ItineraryError):
    """Store, network or model failure. Safe to retry."""
