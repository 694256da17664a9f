"""
Tests for booking and cancellation endpoints, including waitlist fallback.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_book_seat(client: AsyncClient, book, small_class, members):
    """Successful booking takes one seat and notifies the member."""
    response = await book(small_class.id, members[0].id)
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "CONFIRMED"
    assert data["class_session_id"] == small_class.id
    assert data["member_id"] == members[0].id
    assert data["waitlist_position"] is None

    session_response = await client.get(f"/api/v1/classes/{small_class.id}")
    assert session_response.json()["confirmed_count"] == 1
    assert session_response.json()["available_seats"] == 1


@pytest.mark.asyncio
async def test_full_class_waitlists_then_cancel_promotes(client: AsyncClient, book, gateway, small_class, members):
    """Two seats, three members: the third waits and gets the seat the first gives up."""
    ana, ben, cleo, _ = members

    first = await book(small_class.id, ana.id)
    second = await book(small_class.id, ben.id)
    third = await book(small_class.id, cleo.id)

    assert first.json()["status"] == "CONFIRMED"
    assert second.json()["status"] == "CONFIRMED"
    assert third.status_code == 201
    assert third.json()["status"] == "WAITLISTED"
    assert third.json()["waitlist_position"] == 1

    cancel = await client.delete(f"/api/v1/classes/{small_class.id}/bookings/{first.json()['id']}")
    assert cancel.status_code == 200
    assert cancel.json()["status"] == "CANCELLED"
    assert cancel.json()["attendance_status"] == "CANCELLED"

    roster = (await client.get(f"/api/v1/classes/{small_class.id}/roster")).json()
    confirmed = {m["member_id"] for m in roster["members"] if m["booking_status"] == "CONFIRMED"}
    assert confirmed == {ben.id, cleo.id}
    assert roster["waitlist"] == []
    assert roster["summary"]["confirmed"] == 2

    assert gateway.promotions() == [cleo.id]

    waitlist = (
        await client.get(f"/api/v1/classes/{small_class.id}/waitlist/", params={"waiting_only": False})
    ).json()
    assert waitlist[0]["status"] == "PROMOTED"
    assert waitlist[0]["booking_id"] is not None


@pytest.mark.asyncio
async def test_cancel_with_empty_waitlist(client: AsyncClient, book, gateway, make_class, members):
    """Releasing a seat with nobody waiting just frees the seat."""
    session = await make_class(capacity=3)
    booking_ids = [(await book(session.id, m.id)).json()["id"] for m in members[:3]]

    cancel = await client.delete(f"/api/v1/classes/{session.id}/bookings/{booking_ids[0]}")
    assert cancel.status_code == 200

    roster = (await client.get(f"/api/v1/classes/{session.id}/roster")).json()
    assert roster["summary"]["confirmed"] == 2
    assert roster["summary"]["available_seats"] == 1
    assert roster["summary"]["occupancy_rate"] == pytest.approx(2 / 3, abs=1e-4)
    assert gateway.promotions() == []


@pytest.mark.asyncio
async def test_waiting_member_books_again(client: AsyncClient, book, make_class, members):
    """A second request from a waiting member returns the same entry."""
    session = await make_class(capacity=1)
    await book(session.id, members[0].id)

    first = await book(session.id, members[3].id)
    second = await book(session.id, members[3].id)

    assert first.json()["status"] == "WAITLISTED"
    assert second.status_code == 201
    assert second.json()["status"] == "WAITLISTED"
    assert second.json()["id"] == first.json()["id"]

    waitlist = (await client.get(f"/api/v1/classes/{session.id}/waitlist/")).json()
    assert len(waitlist) == 1


@pytest.mark.asyncio
async def test_duplicate_booking(book, small_class, members):
    """Same member booking the same class twice returns 409."""
    response1 = await book(small_class.id, members[0].id)
    assert response1.status_code == 201

    response2 = await book(small_class.id, members[0].id)
    assert response2.status_code == 409
    assert response2.json()["error"] == "duplicate_booking"


@pytest.mark.asyncio
async def test_rebook_after_cancel_reuses_booking(client: AsyncClient, book, small_class, members):
    first = await book(small_class.id, members[0].id)
    await client.delete(f"/api/v1/classes/{small_class.id}/bookings/{first.json()['id']}")

    again = await book(small_class.id, members[0].id)
    assert again.json()["status"] == "CONFIRMED"
    assert again.json()["id"] == first.json()["id"]


@pytest.mark.asyncio
async def test_book_inactive_class(book, make_class, members):
    session = await make_class(is_active=False)
    response = await book(session.id, members[0].id)
    assert response.status_code == 422
    assert response.json()["error"] == "session_inactive"


@pytest.mark.asyncio
async def test_book_started_class(book, make_class, members):
    session = await make_class(starts_in=-timedelta(days=3))
    response = await book(session.id, members[0].id)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_book_unknown_session_or_member(book, small_class, members):
    session_id, member_id = small_class.id, members[0].id
    assert (await book(99999, member_id)).status_code == 404
    response = await book(session_id, 99999)
    assert response.status_code == 404
    assert response.json()["error"] == "member_not_found"


@pytest.mark.asyncio
async def test_book_invalid_payload(client: AsyncClient, small_class):
    response = await client.post(f"/api/v1/classes/{small_class.id}/bookings/", json={"member_id": 0})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_cancel_twice_is_idempotent(client: AsyncClient, book, gateway, make_class, members):
    """A repeated cancel changes nothing and promotes nobody else."""
    session = await make_class(capacity=1)
    booking_id = (await book(session.id, members[0].id)).json()["id"]
    await book(session.id, members[1].id)
    await book(session.id, members[2].id)

    url = f"/api/v1/classes/{session.id}/bookings/{booking_id}"
    first = await client.delete(url)
    second = await client.delete(url)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["status"] == "CANCELLED"
    assert gateway.promotions() == [members[1].id]

    roster = (await client.get(f"/api/v1/classes/{session.id}/roster")).json()
    assert roster["summary"]["confirmed"] == 1
    assert [w["member_id"] for w in roster["waitlist"]] == [members[2].id]


@pytest.mark.asyncio
async def test_cancel_booking_of_other_session(client: AsyncClient, book, make_class, members):
    session_a = await make_class()
    session_b = await make_class()
    booking_id = (await book(session_a.id, members[0].id)).json()["id"]

    response = await client.delete(f"/api/v1/classes/{session_b.id}/bookings/{booking_id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_booking_confirmation_notice(book, gateway, small_class, members):
    await book(small_class.id, members[0].id)
    assert gateway.sent == [("booking_confirmed", members[0].id, small_class.id)]


@pytest.mark.asyncio
async def test_member_booking_history(client: AsyncClient, book, make_class, members):
    session_a = await make_class()
    session_b = await make_class()
    await book(session_a.id, members[0].id)
    await book(session_b.id, members[0].id)

    response = await client.get(f"/api/v1/members/{members[0].id}/bookings")
    assert response.status_code == 200
    data = response.json()
    assert {b["class_session_id"] for b in data} == {session_a.id, session_b.id}
    assert all(b["attendance_status"] == "BOOKED" for b in data)
