# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Notifiers, deliver gather announcements and membership messages.
Handles HTTP calls to the notification-service with timeout; any delivery
failure is raised as NotifierError for the orchestrator to report.
"""

from typing import Optional, Protocol, Union, runtime_checkable

import httpx

from rollcall.core.config import settings
from rollcall.core.errors import NotifierError
from rollcall.core.logging import get_logger
from rollcall.metrics.prometheus import NOTIFICATIONS_SENT
from rollcall.models.domain import Member, Members

logger = get_logger(__name__)

Target = Union[Member, Members, None]


@runtime_checkable
class Notifier(Protocol):
    """Message delivery contract used by the orchestrator."""

    async def notify(self, message: str, target: Target = None) -> None: ...

    async def notify_secretly(self, message: str, member: Member) -> None: ...


def format_mentions(target: Target) -> str:
    """Render '<@id>' mentions for the addressed member(s)."""
    if target is None:
        return ""
    members = Members([target]) if isinstance(target, Member) else target
    return " ".join(f"<@{m.id}>" for m in members)


def compose_broadcast(message: str, target: Target = None) -> str:
    mentions = format_mentions(target)
    return f"{mentions}\n{message}" if mentions else message


class NotificationClient:
    """Notification sender via notification-service."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        channel: Optional[str] = None,
        broadcast_recipient: Optional[str] = None,
        tag: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = (base_url or settings.NOTIFICATION_SERVICE_URL).rstrip("/")
        self._channel = channel or settings.NOTIFICATION_CHANNEL
        self._broadcast_recipient = broadcast_recipient or settings.BROADCAST_RECIPIENT
        self._tag = tag or settings.NOTIFICATION_TAG
        self._timeout = timeout if timeout is not None else settings.NOTIFICATION_TIMEOUT
        self._transport = transport

    async def notify(self, message: str, target: Target = None) -> None:
        """Broadcast *message* to the channel, mentioning *target* if given."""
        await self._send(
            recipient=self._broadcast_recipient,
            message=compose_broadcast(message, target),
            visibility="public",
        )

    async def notify_secretly(self, message: str, member: Member) -> None:
        """Send *message* privately to a single member."""
        await self._send(recipient=member.id, message=message, visibility="private")

    async def _send(self, recipient: str, message: str, visibility: str) -> None:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    f"{self._base_url}/api/v1/notify",
                    json={
                        "incident_id": self._tag,
                        "channel": self._channel,
                        "recipient": recipient,
                        "message": message,
                        "metadata": {"visibility": visibility},
                    },
                )
        except httpx.HTTPError as exc:
            raise NotifierError(f"Notification service unreachable: {exc}") from exc

        if resp.status_code >= 300:
            raise NotifierError(
                f"Notification service returned {resp.status_code} for {recipient}"
            )
        NOTIFICATIONS_SENT.labels(visibility=visibility).inc()
        logger.info(
            "Notification sent: recipient=%s, visibility=%s, status=%d",
            recipient, visibility, resp.status_code,
        )


class LogNotifier:
    """Mock channel: just logs the notification."""

    async def notify(self, message: str, target: Target = None) -> None:
        NOTIFICATIONS_SENT.labels(visibility="public").inc()
        logger.info("[MOCK] Broadcast: %s", compose_broadcast(message, target))

    async def notify_secretly(self, message: str, member: Member) -> None:
        NOTIFICATIONS_SENT.labels(visibility="private").inc()
        logger.info("[MOCK] Private to %s: %s", member.id, message)
