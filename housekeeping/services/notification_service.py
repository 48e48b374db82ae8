"""Best-effort assignment notifications."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

import httpx

from housekeeping.domain.errors import NotificationError
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)


def build_assignment_message(room_numbers: Sequence[str], actor_label: str) -> str:
    rooms = ", ".join(room_numbers)
    noun = "room" if len(room_numbers) == 1 else "rooms"
    return f"{actor_label} assigned you {noun} {rooms}"


class NotificationSender(Protocol):
    def notify(self, user_id: str, room_numbers: Sequence[str], actor_label: str) -> None:
        ...


class LoggingNotificationSender:
    """Default sender used when no push gateway is configured."""

    def notify(self, user_id: str, room_numbers: Sequence[str], actor_label: str) -> None:
        logger.info(
            "Notification for %s: %s",
            user_id,
            build_assignment_message(room_numbers, actor_label),
        )


class WebhookNotificationSender:
    """Posts assignment notifications to an external push gateway."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._settings = settings or get_settings()
        if not self._settings.notification_webhook_url:
            raise ValueError("notification_webhook_url must be configured for webhook notifications")
        self._url = self._settings.notification_webhook_url
        self._client = client or httpx.Client(timeout=self._settings.notification_timeout_seconds)

    def notify(self, user_id: str, room_numbers: Sequence[str], actor_label: str) -> None:
        payload = {
            "user_id": user_id,
            "room_numbers": list(room_numbers),
            "actor": actor_label,
            "title": "New rooms assigned",
            "body": build_assignment_message(room_numbers, actor_label),
        }
        try:
            response = self._client.post(self._url, json=payload)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise NotificationError(f"Push gateway rejected notification: {exc}") from exc
        logger.info("Notification delivered to %s", user_id)


def build_notification_sender(settings: Optional[Settings] = None) -> NotificationSender:
    resolved = settings or get_settings()
    if resolved.notification_webhook_url:
        return WebhookNotificationSender(settings=resolved)
    return LoggingNotificationSender()
