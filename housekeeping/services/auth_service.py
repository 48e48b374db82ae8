"""Shared-token staff login and bearer session resolution."""

from __future__ import annotations

import secrets
from threading import RLock
from typing import Optional

from housekeeping.domain.errors import UnauthorizedError
from housekeeping.domain.models import Identity
from housekeeping.repository.data_repository import DataRepository
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)


class AccessTokenNotConfiguredError(UnauthorizedError):
    """Raised when HOUSEKEEPING_ACCESS_TOKEN is missing."""


class InvalidSessionError(UnauthorizedError):
    """Raised when a bearer token does not map to an active session."""


class AuthService:
    """Issues bearer sessions for seeded staff and resolves them to identities."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._sessions: dict[str, Identity] = {}
        self._lock = RLock()

    def _expected_token(self) -> str:
        if not self._settings.access_token:
            raise AccessTokenNotConfiguredError(
                "HOUSEKEEPING_ACCESS_TOKEN is not configured. Set it in environment variables."
            )
        return self._settings.access_token

    def login(self, username: str, access_token: str) -> str:
        """Open a session for a seeded user, addressed by id or email."""
        expected = self._expected_token()
        if not secrets.compare_digest(access_token.encode(), expected.encode()):
            raise UnauthorizedError("Invalid access token")
        user = self._repository.get_user(username)
        if user is None and "@" in username:
            user = self._repository.get_user_by_email(username)
        if user is None:
            raise UnauthorizedError(f"Unknown user {username}")
        identity = Identity(
            user_id=user.user_id,
            role=user.role,
            display_name=user.name or user.email,
        )
        session_token = secrets.token_urlsafe(32)
        with self._lock:
            self._sessions[session_token] = identity
        logger.info("Session opened for %s (%s)", user.email, user.role.value)
        return session_token

    def resolve(self, bearer_token: str) -> Identity:
        with self._lock:
            identity = self._sessions.get(bearer_token)
        if identity is None:
            raise InvalidSessionError("No active session for bearer token. Login first.")
        return identity

    def logout(self, bearer_token: str) -> None:
        with self._lock:
            self._sessions.pop(bearer_token, None)
