"""
Tests for the member and trainer directory.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_register_member(client: AsyncClient):
    response = await client.post(
        "/api/v1/members",
        json={"first_name": "Maya", "last_name": "Lind", "email": "maya@gym.test", "phone": "555-0101"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["full_name"] == "Maya Lind"
    assert data["is_active"] is True


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient):
    payload = {"first_name": "Maya", "last_name": "Lind", "email": "maya@gym.test"}
    await client.post("/api/v1/members", json=payload)
    response = await client.post("/api/v1/members", json=payload)
    assert response.status_code == 409
    assert response.json()["error"] == "duplicate_member"


@pytest.mark.asyncio
async def test_register_invalid_email(client: AsyncClient):
    response = await client.post(
        "/api/v1/members",
        json={"first_name": "Maya", "last_name": "Lind", "email": "not-an-email"},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_search_members(client: AsyncClient, make_member):
    await make_member("Ana", "Silva")
    await make_member("Anabel", "Costa")
    await make_member("Ben", "Anderson")
    await make_member("Cleo", "Park")

    response = await client.get("/api/v1/members/search", params={"q": "an"})
    assert response.status_code == 200
    names = [m["full_name"] for m in response.json()]
    assert names == ["Ben Anderson", "Anabel Costa", "Ana Silva"]


@pytest.mark.asyncio
async def test_search_by_email_with_limit(client: AsyncClient, make_member):
    for name in ("Ana", "Ben", "Cleo"):
        await make_member(name)

    response = await client.get("/api/v1/members/search", params={"q": "@gym.test", "limit": 2})
    assert len(response.json()) == 2


@pytest.mark.asyncio
async def test_search_requires_query(client: AsyncClient):
    response = await client.get("/api/v1/members/search", params={"q": ""})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_member(client: AsyncClient):
    assert (await client.get("/api/v1/members/5150")).status_code == 404
    assert (await client.get("/api/v1/members/5150/bookings")).status_code == 404


@pytest.mark.asyncio
async def test_register_trainer(client: AsyncClient):
    response = await client.post(
        "/api/v1/trainers",
        json={"first_name": "Rui", "last_name": "Mota", "email": "rui@gym.test", "specialty": "boxing"},
    )
    assert response.status_code == 201
    assert response.json()["specialty"] == "boxing"


@pytest.mark.asyncio
async def test_health_and_metrics(client: AsyncClient):
    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json()["cache"] == {"status": "disabled"}

    metrics = await client.get("/metrics")
    assert metrics.status_code == 200
    assert "class_booking_attempts_total" in metrics.text


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "desk-42"})
    assert response.headers["X-Request-ID"] == "desk-42"
