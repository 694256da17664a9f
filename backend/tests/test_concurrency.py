"""
Concurrency tests: racing bookings must never overbook a class.
"""

import asyncio
from contextlib import contextmanager

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import event, func, select

from app.core.exceptions import SessionFullRaceError
from app.models.booking import Booking, BookingStatus
from app.models.class_session import ClassSession
from app.services.booking_ledger import BookingLedger, BookingOutcome
from app.services.scheduling_service import book_class
from app.services.session_locks import SessionLockRegistry, session_locks


async def _book_in_own_session(session_factory, gateway, session_id: int, member_id: int):
    async with session_factory() as db:
        return await book_class(db, gateway, session_id, member_id)


async def _confirmed_count(session_factory, session_id: int) -> int:
    async with session_factory() as db:
        result = await db.execute(
            select(func.count(Booking.id)).where(
                Booking.class_session_id == session_id,
                Booking.status == BookingStatus.CONFIRMED.value,
            )
        )
        return result.scalar_one()


@pytest.mark.asyncio
async def test_race_for_last_seat(session_factory, gateway, make_class, members):
    """Two members racing for one seat: exactly one confirmed, the other waitlisted."""
    session = await make_class(capacity=1)

    results = await asyncio.gather(
        _book_in_own_session(session_factory, gateway, session.id, members[0].id),
        _book_in_own_session(session_factory, gateway, session.id, members[1].id),
    )

    outcomes = sorted(r.outcome.value for r in results)
    assert outcomes == [BookingOutcome.CONFIRMED.value, BookingOutcome.WAITLISTED.value]
    assert await _confirmed_count(session_factory, session.id) == 1


@pytest.mark.asyncio
async def test_burst_never_exceeds_capacity(session_factory, gateway, make_class, make_member):
    """Ten simultaneous requests for three seats."""
    session = await make_class(capacity=3)
    member_ids = [(await make_member(f"Racer{i}")).id for i in range(10)]

    results = await asyncio.gather(
        *(_book_in_own_session(session_factory, gateway, session.id, member_id) for member_id in member_ids)
    )

    confirmed = [r for r in results if r.outcome is BookingOutcome.CONFIRMED]
    waitlisted = [r for r in results if r.outcome is BookingOutcome.WAITLISTED]
    assert len(confirmed) == 3
    assert len(waitlisted) == 7
    assert sorted(r.waitlist_entry.position for r in waitlisted) == list(range(1, 8))

    assert await _confirmed_count(session_factory, session.id) == 3
    async with session_factory() as db:
        stored = await db.get(ClassSession, session.id)
        assert stored.confirmed_count == 3


@pytest.mark.asyncio
async def test_claim_seat_stops_at_capacity(db_session, make_class):
    session = await make_class(capacity=2)
    ledger = BookingLedger(db_session)

    assert await ledger.claim_seat(session.id) is True
    assert await ledger.claim_seat(session.id) is True
    assert await ledger.claim_seat(session.id) is False

    stored = await ledger.get_session(session.id)
    assert stored.confirmed_count == 2
    assert stored.version == 3
    await db_session.rollback()



@contextmanager
def version_bumped_before_seat_claim(async_engine):
    """
    Let another writer bump class_sessions.version between the read and the
    conditional UPDATE of every seat claim, so each claim loses the race.
    """
    sync_engine = async_engine.sync_engine
    claims = []

    def bump_version(conn, cursor, statement, parameters, context, executemany):
        if statement.startswith("UPDATE class_sessions") and "class_sessions.version = " in statement:
            claims.append(statement)
            other = conn.connection.cursor()
            try:
                other.execute("UPDATE class_sessions SET version = version + 1")
            finally:
                other.close()

    event.listen(sync_engine, "before_cursor_execute", bump_version)
    try:
        yield claims
    finally:
        event.remove(sync_engine, "before_cursor_execute", bump_version)


def _claim_retries() -> float:
    return REGISTRY.get_sample_value("seat_claim_retries_total") or 0.0


@pytest.mark.asyncio
async def test_lost_version_race_exhausts_retries(client, db_session, book, make_class, members):
    """Every claim attempt loses: three tries, then 409 and nothing booked."""
    session = await make_class(capacity=2)
    session_id, member_id = session.id, members[0].id
    retries_before = _claim_retries()

    with version_bumped_before_seat_claim(db_session.bind) as claims:
        response = await book(session_id, member_id)

    assert response.status_code == 409
    assert response.json()["error"] == "session_contention"
    assert len(claims) == 3
    assert _claim_retries() == retries_before + 3

    detail = (await client.get(f"/api/v1/classes/{session_id}")).json()
    assert detail["confirmed_count"] == 0
    assert (await book(session_id, member_id)).json()["status"] == "CONFIRMED"


@pytest.mark.asyncio
async def test_claim_seat_raises_after_budget(db_session, make_class):
    session = await make_class(capacity=1)
    session_id = session.id
    ledger = BookingLedger(db_session, max_attempts=2)

    with version_bumped_before_seat_claim(db_session.bind) as claims:
        with pytest.raises(SessionFullRaceError):
            await ledger.claim_seat(session_id)

    assert len(claims) == 2
    await db_session.rollback()


@pytest.mark.asyncio
async def test_lost_race_during_promotion_keeps_head_waiting(client, db_session, book, gateway, make_class, members):
    """The cancel commits, the promotion is deferred and the next trigger fills the seat."""
    session = await make_class(capacity=1)
    session_id = session.id
    holder = (await book(session_id, members[0].id)).json()["id"]
    entry_id = (await book(session_id, members[1].id)).json()["id"]

    with version_bumped_before_seat_claim(db_session.bind) as claims:
        cancel = await client.delete(f"/api/v1/classes/{session_id}/bookings/{holder}")

    assert cancel.status_code == 200
    assert cancel.json()["status"] == "CANCELLED"
    assert len(claims) == 3
    assert gateway.promotions() == []

    queue = (await client.get(f"/api/v1/classes/{session_id}/waitlist/")).json()
    assert [(e["id"], e["status"]) for e in queue] == [(entry_id, "WAITING")]
    assert (await client.get(f"/api/v1/classes/{session_id}")).json()["confirmed_count"] == 0

    promoted = await client.post(f"/api/v1/classes/{session_id}/waitlist/promote")
    assert promoted.json()["promoted"] is True
    assert promoted.json()["entry"]["id"] == entry_id
    assert gateway.promotions() == [members[1].id]


@pytest.mark.asyncio
async def test_lock_registry_forgets_idle_sessions():
    registry = SessionLockRegistry()
    order = []

    async def writer(name: str):
        async with registry.hold(7):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(writer("a"), writer("b"))

    assert order == ["a-in", "a-out", "b-in", "b-out"]
    assert len(registry) == 0

    async with registry.hold(8):
        assert len(registry) == 1
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_finished_requests_release_their_locks(client, book, small_class, members):
    session_id = small_class.id
    booking_id = (await book(session_id, members[0].id)).json()["id"]
    await client.delete(f"/api/v1/classes/{session_id}/bookings/{booking_id}")

    assert len(session_locks) == 0
