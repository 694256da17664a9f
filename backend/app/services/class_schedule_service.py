"""
Class schedule store: class session definitions and their administration.

Capacity edits go through a conditional UPDATE so a reduction can never land
below the confirmed seat count, even against a concurrent booking.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    CapacityReductionError,
    InvalidScheduleError,
    SessionNotFoundError,
    TrainerConflictError,
    TrainerNotFoundError,
)
from app.core.logging import get_logger
from app.db.base import as_utc, utcnow
from app.models.class_session import ClassSession
from app.models.member import Trainer
from app.schemas.class_session import ClassSessionCreate, ClassSessionUpdate
from app.services.waitlist_queue import WaitlistQueue

logger = get_logger(__name__)


async def _ensure_trainer(db: AsyncSession, trainer_id: int) -> Trainer:
    trainer = await db.get(Trainer, trainer_id)
    if trainer is None or not trainer.is_active:
        raise TrainerNotFoundError(f"Trainer {trainer_id} not found")
    return trainer


async def has_schedule_conflict(
    db: AsyncSession,
    trainer_id: int,
    start_time: datetime,
    end_time: datetime,
    exclude_session_id: Optional[int] = None,
) -> bool:
    """True if the trainer already teaches an active session overlapping the window."""
    query = select(ClassSession.id).where(
        ClassSession.trainer_id == trainer_id,
        ClassSession.is_active.is_(True),
        ClassSession.start_time < end_time,
        ClassSession.end_time > start_time,
    )
    if exclude_session_id is not None:
        query = query.where(ClassSession.id != exclude_session_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none() is not None


async def create_class_session(db: AsyncSession, data: ClassSessionCreate) -> ClassSession:
    """Create a new class session with every seat open."""
    if as_utc(data.start_time) <= utcnow():
        raise InvalidScheduleError("Class start time must be in the future")

    await _ensure_trainer(db, data.trainer_id)
    if await has_schedule_conflict(db, data.trainer_id, data.start_time, data.end_time):
        raise TrainerConflictError("Trainer has a scheduling conflict at this time")

    session = ClassSession(
        name=data.name,
        description=data.description,
        category=data.category,
        trainer_id=data.trainer_id,
        start_time=data.start_time,
        end_time=data.end_time,
        capacity=data.capacity,
        confirmed_count=0,
        is_active=True,
    )
    db.add(session)
    await db.flush()
    await db.refresh(session)

    logger.info("class_session_created", session_id=session.id, name=session.name, capacity=session.capacity)
    return session


async def get_class_session(db: AsyncSession, session_id: int, for_update: bool = False) -> ClassSession:
    query = select(ClassSession).where(ClassSession.id == session_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query.execution_options(populate_existing=True))
    session = result.scalar_one_or_none()
    if not session:
        raise SessionNotFoundError(f"Class session {session_id} not found")
    return session


async def list_class_sessions(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    upcoming_only: bool = True,
    active_only: bool = True,
) -> tuple[list[ClassSession], int]:
    """
    List class sessions with pagination, soonest first.
    Uses the ix_class_sessions_start_time index for the upcoming filter.
    """
    query = select(ClassSession)
    if upcoming_only:
        query = query.where(ClassSession.start_time >= utcnow())
    if active_only:
        query = query.where(ClassSession.is_active.is_(True))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    result = await db.execute(
        query
        .order_by(ClassSession.start_time.asc(), ClassSession.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total


async def change_capacity(db: AsyncSession, session_id: int, capacity: int) -> None:
    """
    Set a new capacity. Rejected when it would fall below the confirmed
    seat count; existing bookings are never evicted.
    """
    result = await db.execute(
        update(ClassSession)
        .where(ClassSession.id == session_id, ClassSession.confirmed_count <= capacity)
        .values(capacity=capacity, version=ClassSession.version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        confirmed = (
            await db.execute(select(ClassSession.confirmed_count).where(ClassSession.id == session_id))
        ).scalar_one()
        raise CapacityReductionError(
            f"Capacity {capacity} is below the {confirmed} confirmed bookings"
        )


async def update_class_session(
    db: AsyncSession,
    session_id: int,
    data: ClassSessionUpdate,
) -> tuple[ClassSession, int]:
    """
    Apply an administrative edit. Returns the refreshed session and the
    capacity it had before the edit.
    """
    session = await get_class_session(db, session_id, for_update=True)
    previous_capacity = session.capacity
    changes = data.model_dump(exclude_unset=True)

    start_time = changes.get("start_time", session.start_time)
    end_time = changes.get("end_time", session.end_time)
    trainer_id = changes.get("trainer_id", session.trainer_id)
    if "start_time" in changes and as_utc(start_time) <= utcnow():
        raise InvalidScheduleError("Class start time must be in the future")
    if as_utc(end_time) <= as_utc(start_time):
        raise InvalidScheduleError("end_time must be after start_time")

    if {"start_time", "end_time", "trainer_id"} & changes.keys():
        if "trainer_id" in changes:
            await _ensure_trainer(db, trainer_id)
        if await has_schedule_conflict(db, trainer_id, start_time, end_time, exclude_session_id=session_id):
            raise TrainerConflictError("Trainer has a scheduling conflict at this time")

    capacity = changes.pop("capacity", None)
    for field, value in changes.items():
        setattr(session, field, value)
    await db.flush()

    if capacity is not None and capacity != previous_capacity:
        await change_capacity(db, session_id, capacity)

    session = await get_class_session(db, session_id)
    logger.info(
        "class_session_updated",
        session_id=session_id,
        fields=sorted(changes.keys() | ({"capacity"} if capacity is not None else set())),
    )
    return session, previous_capacity


async def deactivate_class_session(db: AsyncSession, session_id: int) -> ClassSession:
    """Cancel a session: it stays on record, its waiting queue expires."""
    session = await get_class_session(db, session_id, for_update=True)
    if session.is_active:
        session.is_active = False
        session.version = session.version + 1
        await db.flush()
    expired = await WaitlistQueue(db).expire_for_session(session_id, reason="session_cancelled")

    logger.info("class_session_deactivated", session_id=session_id, waitlist_expired=expired)
    return session
