"""
Notification delivery for scheduling events.

Delivery contract:
  Notices are produced while a unit of work holds the session lock, but they
  are only dispatched after the commit and after the lock is released. A
  dispatch failure is logged and counted; it never reverts the booking or
  promotion that produced the notice.

Redis gateway:
  Publishes one JSON message per notice on NOTIFICATION_CHANNEL. Whatever
  owns push/email delivery subscribes to that channel. If Redis is down the
  notice is dropped with an error log (best effort, like the listing cache).
"""

import asyncio
import json
from typing import Iterable, Optional

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import notification_failures
from app.db.base import utcnow
from app.infrastructure.redis_client import get_redis
from app.services.interfaces.log_notification import LoggingNotificationGateway
from app.services.interfaces.notification import Notice, NoticeKind, NotificationGateway

logger = get_logger(__name__)
settings = get_settings()


class NotificationDispatchError(Exception):
    pass


class RedisNotificationGateway(NotificationGateway):
    """Publishes notices to a Redis pub/sub channel."""

    def __init__(self, channel: Optional[str] = None):
        self.channel = channel or settings.NOTIFICATION_CHANNEL

    async def _publish(self, kind: NoticeKind, member_id: int, session_id: int) -> None:
        client = await get_redis()
        if client is None:
            raise NotificationDispatchError("Redis is unavailable")
        payload = json.dumps({
            "kind": kind.value,
            "member_id": member_id,
            "session_id": session_id,
            "sent_at": utcnow().isoformat(),
        })
        receivers = await client.publish(self.channel, payload)
        logger.debug("notification_published", kind=kind.value, receivers=receivers)

    async def notify_promotion(self, member_id: int, session_id: int) -> None:
        await self._publish(NoticeKind.PROMOTION, member_id, session_id)

    async def notify_booking_confirmed(self, member_id: int, session_id: int) -> None:
        await self._publish(NoticeKind.BOOKING_CONFIRMED, member_id, session_id)


async def dispatch_notices(gateway: NotificationGateway, notices: Iterable[Notice]) -> int:
    """
    Send notices one by one; failures are logged and skipped.
    Returns the number delivered.
    """
    delivered = 0
    for notice in notices:
        try:
            await asyncio.wait_for(gateway.send(notice), settings.NOTIFICATION_TIMEOUT_SECONDS)
        except Exception as e:
            notification_failures.labels(kind=notice.kind.value).inc()
            logger.error(
                "notification_dispatch_failed",
                kind=notice.kind.value,
                member_id=notice.member_id,
                session_id=notice.session_id,
                error=str(e) or type(e).__name__,
            )
            continue
        delivered += 1
    return delivered


def build_notification_gateway() -> NotificationGateway:
    """
    Gateway selection from NOTIFICATION_BACKEND:
    - "redis": RedisNotificationGateway
    - anything else: LoggingNotificationGateway
    """
    if settings.NOTIFICATION_BACKEND == "redis":
        return RedisNotificationGateway()
    return LoggingNotificationGateway()


_gateway: Optional[NotificationGateway] = None


def get_notification_gateway() -> NotificationGateway:
    """FastAPI dependency returning the gateway singleton."""
    global _gateway
    if _gateway is None:
        _gateway = build_notification_gateway()
    return _gateway
