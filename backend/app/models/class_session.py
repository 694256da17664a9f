"""
ClassSession model: a scheduled, time-bound class with a fixed seat capacity.

Key design decisions:
- `confirmed_count` is denormalized so the capacity check is one conditional
  UPDATE instead of COUNT-then-INSERT
- `version` column enables optimistic locking for concurrent seat claims
- CHECK constraints are the last line of defence against overbooking
- Sessions are deactivated, never deleted
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class ClassSession(Base, TimestampMixin):
    __tablename__ = "class_sessions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    category = Column(String(100), nullable=False)
    trainer_id = Column(Integer, ForeignKey("trainers.id"), nullable=False, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    capacity = Column(Integer, nullable=False)
    confirmed_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    trainer = relationship("Trainer", lazy="selectin")

    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_session_capacity_positive"),
        CheckConstraint("confirmed_count >= 0", name="check_confirmed_non_negative"),
        CheckConstraint("confirmed_count <= capacity", name="check_confirmed_lte_capacity"),
        CheckConstraint("end_time > start_time", name="check_session_time_window"),
        Index("ix_class_sessions_start_time", "start_time"),
        # Trainer conflict lookups: active sessions of a trainer in a window
        Index("ix_class_sessions_trainer_window", "trainer_id", "start_time", "end_time"),
    )

    @property
    def available_seats(self) -> int:
        return self.capacity - self.confirmed_count

    def __repr__(self) -> str:
        return (
            f"<ClassSession(id={self.id}, name={self.name}, "
            f"confirmed={self.confirmed_count}/{self.capacity})>"
        )
