"""Error taxonomy shared by services, controllers and the sync client."""

from __future__ import annotations


class HousekeepingError(Exception):
    """Base failure for every housekeeping operation."""


class UnauthorizedError(HousekeepingError):
    """Raised when the caller identity is missing or invalid."""


class ForbiddenError(HousekeepingError):
    """Raised when an authenticated caller has the wrong role."""


class ValidationError(HousekeepingError):
    """Raised when operation input is malformed."""


class IllegalTransitionError(ValidationError):
    """Raised when a room status edit is not a legal transition."""


class PhotoDecodeError(ValidationError):
    """Raised when an embedded photo payload is not valid base64."""


class NotFoundError(HousekeepingError):
    """Raised when a referenced room, assignment, incident or user is absent."""


class StorageError(HousekeepingError):
    """Raised when the durable store fails a read or a transaction."""


class NotificationError(HousekeepingError):
    """Raised by notification senders; callers log it and carry on."""


class GatewayUnavailableError(HousekeepingError):
    """Raised when the authoritative server cannot be reached."""


class SyncRejectedError(HousekeepingError):
    """Raised when the server answered but did not accept an outbox entry."""
