"""
Tests for the class roster projection.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_roster_lists_bookings_and_queue(client: AsyncClient, book, make_class, members):
    session = await make_class(capacity=2)
    session_id = session.id
    ana, ben, cleo, dev = members
    ana_booking = (await book(session_id, ana.id)).json()["id"]
    await book(session_id, ben.id)
    await book(session_id, cleo.id)
    await book(session_id, dev.id)
    await client.patch(f"/api/v1/classes/{session_id}/attendance/{ana_booking}", json={"status": "ATTENDED"})

    response = await client.get(f"/api/v1/classes/{session_id}/roster")
    assert response.status_code == 200
    roster = response.json()

    assert roster["session"]["id"] == session_id
    assert [m["member_name"] for m in roster["members"]] == ["Ana Test", "Ben Test"]
    assert roster["members"][0]["attendance_status"] == "ATTENDED"
    assert roster["members"][0]["checked_in_at"] is not None

    assert [(w["member_name"], w["queue_rank"]) for w in roster["waitlist"]] == [
        ("Cleo Test", 1),
        ("Dev Test", 2),
    ]

    summary = roster["summary"]
    assert summary["capacity"] == 2
    assert summary["confirmed"] == 2
    assert summary["cancelled"] == 0
    assert summary["available_seats"] == 0
    assert summary["occupancy_rate"] == 1.0
    assert summary["waitlisted"] == 2
    assert summary["by_attendance"] == {"BOOKED": 1, "ATTENDED": 1, "NO_SHOW": 0, "CANCELLED": 0}


@pytest.mark.asyncio
async def test_roster_rank_follows_queue_after_promotion(client: AsyncClient, book, make_class, members):
    """Ranks are recomputed from the live queue; stored positions keep their join sequence."""
    session = await make_class(capacity=1)
    session_id = session.id
    holder = (await book(session_id, members[0].id)).json()["id"]
    for member in members[1:]:
        await book(session_id, member.id)

    await client.delete(f"/api/v1/classes/{session_id}/bookings/{holder}")

    roster = (await client.get(f"/api/v1/classes/{session_id}/roster")).json()
    assert [(w["position"], w["queue_rank"]) for w in roster["waitlist"]] == [(2, 1), (3, 2)]
    assert roster["summary"]["cancelled"] == 1
    assert roster["summary"]["by_attendance"]["CANCELLED"] == 1


@pytest.mark.asyncio
async def test_roster_empty_class(client: AsyncClient, small_class):
    roster = (await client.get(f"/api/v1/classes/{small_class.id}/roster")).json()
    assert roster["members"] == []
    assert roster["waitlist"] == []
    assert roster["summary"]["occupancy_rate"] == 0.0
    assert roster["summary"]["available_seats"] == 2


@pytest.mark.asyncio
async def test_roster_unknown_session(client: AsyncClient):
    response = await client.get("/api/v1/classes/8080/roster")
    assert response.status_code == 404
