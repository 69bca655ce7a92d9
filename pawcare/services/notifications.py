import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    """Alerts a party about an appointment status change.

    Fire-and-forget: implementations must not raise into the caller. Initial
    bookings do not notify; the surrounding system calls this on transitions.
    """

    async def notify(
        self,
        recipient_actor_id: str,
        title: str,
        message: str,
        *,
        appointment_id: int | None = None,
    ) -> None: ...


class LoggingNotificationDispatcher:
    """Dispatcher that records notifications in the log instead of delivering them."""

    async def notify(
        self,
        recipient_actor_id: str,
        title: str,
        message: str,
        *,
        appointment_id: int | None = None,
    ) -> None:
        logger.info(
            "Notification to %s (appointment %s): %s - %s",
            recipient_actor_id,
            appointment_id,
            title,
            message,
        )
