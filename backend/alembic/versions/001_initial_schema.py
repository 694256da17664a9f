"""Initial schema: members, trainers, class sessions, bookings, attendance, waitlist.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Members table
    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(40), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_members_id", "members", ["id"])
    op.create_index("ix_members_email", "members", ["email"], unique=True)

    # Trainers table
    op.create_table(
        "trainers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("specialty", sa.String(100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_trainers_id", "trainers", ["id"])
    op.create_index("ix_trainers_email", "trainers", ["email"], unique=True)

    # Class sessions table
    op.create_table(
        "class_sessions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("trainer_id", sa.Integer(), sa.ForeignKey("trainers.id"), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("confirmed_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("capacity > 0", name="check_session_capacity_positive"),
        sa.CheckConstraint("confirmed_count >= 0", name="check_confirmed_non_negative"),
        # Overbooking guard: the seat-claim UPDATE can never push past capacity
        sa.CheckConstraint("confirmed_count <= capacity", name="check_confirmed_lte_capacity"),
        sa.CheckConstraint("end_time > start_time", name="check_session_time_window"),
    )
    op.create_index("ix_class_sessions_id", "class_sessions", ["id"])
    op.create_index("ix_class_sessions_trainer_id", "class_sessions", ["trainer_id"])
    # Listings are always "upcoming classes, soonest first"
    op.create_index("ix_class_sessions_start_time", "class_sessions", ["start_time"])
    op.create_index(
        "ix_class_sessions_trainer_window", "class_sessions", ["trainer_id", "start_time", "end_time"]
    )

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id"), nullable=False),
        sa.Column("class_session_id", sa.Integer(), sa.ForeignKey("class_sessions.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'CONFIRMED'")),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.String(50), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("member_id", "class_session_id", name="uq_member_session_booking"),
        sa.CheckConstraint("status IN ('CONFIRMED', 'CANCELLED')", name="check_booking_status"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_member_id", "bookings", ["member_id"])
    op.create_index("ix_bookings_class_session_id", "bookings", ["class_session_id"])

    # Attendance records: exactly one per booking
    op.create_table(
        "attendance_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=False, unique=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'BOOKED'")),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("marked_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('BOOKED', 'ATTENDED', 'NO_SHOW', 'CANCELLED')",
            name="check_attendance_status",
        ),
    )
    op.create_index("ix_attendance_records_id", "attendance_records", ["id"])

    # Waitlist entries
    op.create_table(
        "waitlist_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("class_session_id", sa.Integer(), sa.ForeignKey("class_sessions.id"), nullable=False),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'WAITING'")),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=True),
        sa.Column("expiry_reason", sa.String(50), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("class_session_id", "position", name="uq_waitlist_session_position"),
        sa.CheckConstraint("status IN ('WAITING', 'PROMOTED', 'EXPIRED')", name="check_waitlist_status"),
    )
    op.create_index("ix_waitlist_entries_id", "waitlist_entries", ["id"])
    op.create_index("ix_waitlist_entries_member_id", "waitlist_entries", ["member_id"])
    # Head of the queue: WAITING entries of one session in (joined_at, id) order
    op.create_index(
        "ix_waitlist_session_status_joined",
        "waitlist_entries",
        ["class_session_id", "status", "joined_at", "id"],
    )
    op.create_index(
        "uq_waitlist_member_waiting",
        "waitlist_entries",
        ["class_session_id", "member_id"],
        unique=True,
        postgresql_where=sa.text("status = 'WAITING'"),
    )


def downgrade() -> None:
    op.drop_table("waitlist_entries")
    op.drop_table("attendance_records")
    op.drop_table("bookings")
    op.drop_table("class_sessions")
    op.drop_table("trainers")
    op.drop_table("members")
