"""
Member and trainer directory: registration, quick-add search and per-member
booking history.
"""

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DuplicateMemberError, MemberNotFoundError
from app.core.logging import get_logger
from app.models.booking import Booking
from app.models.member import Member, Trainer
from app.models.waitlist import WaitlistEntry
from app.schemas.member import MemberCreate, TrainerCreate
from app.services.waitlist_queue import WaitlistQueue

logger = get_logger(__name__)


async def create_member(db: AsyncSession, data: MemberCreate) -> Member:
    """Raises 409 if the email is already registered."""
    result = await db.execute(select(Member).where(Member.email == data.email))
    if result.scalar_one_or_none():
        logger.warning("member_registration_failed", reason="email_exists", email=data.email)
        raise DuplicateMemberError("Email already registered")

    member = Member(
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        phone=data.phone,
    )
    db.add(member)
    await db.flush()

    logger.info("member_registered", member_id=member.id)
    return member


async def create_trainer(db: AsyncSession, data: TrainerCreate) -> Trainer:
    result = await db.execute(select(Trainer).where(Trainer.email == data.email))
    if result.scalar_one_or_none():
        raise DuplicateMemberError("Email already registered")

    trainer = Trainer(
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        specialty=data.specialty,
    )
    db.add(trainer)
    await db.flush()

    logger.info("trainer_registered", trainer_id=trainer.id)
    return trainer


async def get_member(db: AsyncSession, member_id: int) -> Member:
    member = await db.get(Member, member_id)
    if member is None:
        raise MemberNotFoundError(f"Member {member_id} not found")
    return member


async def search_members(db: AsyncSession, q: str, limit: int = 10) -> list[Member]:
    """Case-insensitive match on first name, last name or email."""
    pattern = f"%{q.strip()}%"
    result = await db.execute(
        select(Member)
        .where(
            Member.is_active.is_(True),
            or_(
                Member.first_name.ilike(pattern),
                Member.last_name.ilike(pattern),
                Member.email.ilike(pattern),
            ),
        )
        .order_by(Member.last_name.asc(), Member.first_name.asc(), Member.id.asc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_member_bookings(db: AsyncSession, member_id: int) -> list[Booking]:
    await get_member(db, member_id)
    result = await db.execute(
        select(Booking)
        .where(Booking.member_id == member_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())


async def get_member_waitlist(db: AsyncSession, member_id: int) -> list[WaitlistEntry]:
    await get_member(db, member_id)
    return await WaitlistQueue(db).list_member_entries(member_id)
