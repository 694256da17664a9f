"""
Pytest fixtures for the test database, client, and scheduling data.

Each test gets its own SQLite file (or TEST_DATABASE_URL when set) with the
schema created up front and dropped afterwards, for isolation.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("WAITLIST_EXPIRE_AT_SESSION_START", "false")

from datetime import timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from app.main import app
from app.db.base import Base, utcnow
from app.db.session import get_db
from app.models import ClassSession, Member, Trainer
from app.services.interfaces.notification import NotificationGateway
from app.services.notification_service import get_notification_gateway
from app.services.session_locks import session_locks


class RecordingGateway(NotificationGateway):
    """Keeps every notice in memory instead of delivering it."""

    def __init__(self):
        self.sent: list[tuple[str, int, int]] = []

    async def notify_promotion(self, member_id: int, session_id: int) -> None:
        self.sent.append(("promotion", member_id, session_id))

    async def notify_booking_confirmed(self, member_id: int, session_id: int) -> None:
        self.sent.append(("booking_confirmed", member_id, session_id))

    def promotions(self) -> list[int]:
        return [member_id for kind, member_id, _ in self.sent if kind == "promotion"]


@pytest.fixture(autouse=True)
def reset_session_locks():
    # asyncio locks are bound to the loop of the test that created them
    session_locks.clear()
    yield
    session_locks.clear()


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables on a fresh database, yield a sessionmaker, then drop them."""
    url = os.environ.get("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    engine = create_async_engine(url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, gateway: RecordingGateway) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB and notification dependencies."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_gateway] = lambda: gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def trainer(db_session: AsyncSession) -> Trainer:
    trainer = Trainer(first_name="Tess", last_name="Coach", email="tess@gym.test", specialty="HIIT")
    db_session.add(trainer)
    await db_session.commit()
    await db_session.refresh(trainer)
    return trainer


@pytest_asyncio.fixture
async def make_member(db_session: AsyncSession):
    """Factory: make_member("Ana") -> committed Member with a unique email."""
    count = 0

    async def _make(first_name: str = "Member", last_name: str = "Test") -> Member:
        nonlocal count
        count += 1
        member = Member(
            first_name=first_name,
            last_name=last_name,
            email=f"{first_name.lower()}.{count}@gym.test",
        )
        db_session.add(member)
        await db_session.commit()
        await db_session.refresh(member)
        return member

    return _make


@pytest_asyncio.fixture
async def members(make_member) -> list[Member]:
    """Four members: Ana, Ben, Cleo, Dev."""
    return [await make_member(name) for name in ("Ana", "Ben", "Cleo", "Dev")]


@pytest_asyncio.fixture
async def make_class(db_session: AsyncSession, trainer: Trainer):
    """Factory: make_class(capacity=2) -> committed ClassSession starting in the future."""
    count = 0

    async def _make(capacity: int = 2, starts_in: timedelta = timedelta(days=2), **fields) -> ClassSession:
        nonlocal count
        count += 1
        start = utcnow() + starts_in + timedelta(hours=2 * count)
        session = ClassSession(
            name=fields.pop("name", f"Spin {count}"),
            category=fields.pop("category", "cycling"),
            trainer_id=trainer.id,
            start_time=start,
            end_time=start + timedelta(minutes=45),
            capacity=capacity,
            confirmed_count=0,
            is_active=fields.pop("is_active", True),
            **fields,
        )
        db_session.add(session)
        await db_session.commit()
        await db_session.refresh(session)
        return session

    return _make


@pytest_asyncio.fixture
async def small_class(make_class) -> ClassSession:
    """A class with two seats."""
    return await make_class(capacity=2)


@pytest.fixture
def book(client: AsyncClient):
    """book(session_id, member_id) -> POST response."""

    async def _book(session_id: int, member_id: int):
        return await client.post(
            f"/api/v1/classes/{session_id}/bookings/",
            json={"member_id": member_id},
        )

    return _book
