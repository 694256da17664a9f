"""
Tests for notification dispatch: delivery failures never undo scheduling.
"""

import asyncio

import pytest
from httpx import AsyncClient
from prometheus_client import REGISTRY

from app.main import app
from app.services.interfaces.notification import Notice, NoticeKind, NotificationGateway
from app.services.interfaces.log_notification import LoggingNotificationGateway
from app.services.notification_service import (
    RedisNotificationGateway,
    build_notification_gateway,
    dispatch_notices,
    get_notification_gateway,
)


class BrokenGateway(NotificationGateway):
    async def notify_promotion(self, member_id: int, session_id: int) -> None:
        raise ConnectionError("push service unreachable")

    async def notify_booking_confirmed(self, member_id: int, session_id: int) -> None:
        raise ConnectionError("push service unreachable")


class SlowGateway(NotificationGateway):
    async def notify_promotion(self, member_id: int, session_id: int) -> None:
        await asyncio.sleep(60)

    async def notify_booking_confirmed(self, member_id: int, session_id: int) -> None:
        await asyncio.sleep(60)


def _failures(kind: str) -> float:
    return REGISTRY.get_sample_value("notification_dispatch_failures_total", {"kind": kind}) or 0.0


@pytest.mark.asyncio
async def test_failed_promotion_notice_keeps_promotion(client: AsyncClient, book, make_class, members):
    session = await make_class(capacity=1)
    session_id = session.id
    holder = (await book(session_id, members[0].id)).json()["id"]
    await book(session_id, members[1].id)

    app.dependency_overrides[get_notification_gateway] = BrokenGateway
    before = _failures("promotion")

    response = await client.delete(f"/api/v1/classes/{session_id}/bookings/{holder}")
    assert response.status_code == 200
    assert _failures("promotion") == before + 1

    roster = (await client.get(f"/api/v1/classes/{session_id}/roster")).json()
    confirmed = [m["member_id"] for m in roster["members"] if m["booking_status"] == "CONFIRMED"]
    assert confirmed == [members[1].id]


@pytest.mark.asyncio
async def test_failed_confirmation_notice_keeps_booking(client: AsyncClient, book, small_class, members):
    app.dependency_overrides[get_notification_gateway] = BrokenGateway

    response = await book(small_class.id, members[0].id)
    assert response.status_code == 201
    assert response.json()["status"] == "CONFIRMED"


@pytest.mark.asyncio
async def test_dispatch_continues_after_failure(monkeypatch):
    from app.services import notification_service

    monkeypatch.setattr(notification_service.settings, "NOTIFICATION_TIMEOUT_SECONDS", 0.05)
    notices = [
        Notice(NoticeKind.PROMOTION, member_id=1, session_id=7),
        Notice(NoticeKind.BOOKING_CONFIRMED, member_id=2, session_id=7),
    ]

    assert await dispatch_notices(SlowGateway(), notices) == 0
    assert await dispatch_notices(LoggingNotificationGateway(), notices) == 2


@pytest.mark.asyncio
async def test_redis_gateway_without_redis_fails_softly():
    """With Redis disabled the publish fails and is only counted."""
    before = _failures("booking_confirmed")
    delivered = await dispatch_notices(
        RedisNotificationGateway(channel="test:notices"),
        [Notice(NoticeKind.BOOKING_CONFIRMED, member_id=3, session_id=9)],
    )
    assert delivered == 0
    assert _failures("booking_confirmed") == before + 1


def test_gateway_factory(monkeypatch):
    from app.services import notification_service

    monkeypatch.setattr(notification_service.settings, "NOTIFICATION_BACKEND", "redis")
    assert isinstance(build_notification_gateway(), RedisNotificationGateway)

    monkeypatch.setattr(notification_service.settings, "NOTIFICATION_BACKEND", "log")
    assert isinstance(build_notification_gateway(), LoggingNotificationGateway)
