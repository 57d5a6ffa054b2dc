"""Initial schema: users, clubs, events, posters, ticket bookings.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
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
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("surname", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'student'")),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("gender", sa.String(20), nullable=True),
        sa.Column("birth_date", sa.String(20), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("verification_code", sa.String(6), nullable=True),
        sa.Column("verification_expires", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reset_password_code", sa.String(6), nullable=True),
        sa.Column("reset_password_expires", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("role IN ('student', 'head_admin', 'super_admin')", name="check_user_role"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "clubs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("head_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("goal", sa.String(1000), nullable=False),
        sa.Column("description", sa.String(2000), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_clubs_id", "clubs", ["id"])
    op.create_index("ix_clubs_head_id", "clubs", ["head_id"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("club_id", sa.Integer(), sa.ForeignKey("clubs.id"), nullable=False),
        sa.Column("head_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("event_name", sa.String(255), nullable=False),
        sa.Column("event_date", sa.String(50), nullable=False),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("short_description", sa.String(1000), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_club_id", "events", ["club_id"])
    op.create_index("ix_events_head_id", "events", ["head_id"])

    op.create_table(
        "posters",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("club_id", sa.Integer(), sa.ForeignKey("clubs.id"), nullable=False),
        sa.Column("head_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("event_title", sa.String(255), nullable=False),
        sa.Column("event_date", sa.String(50), nullable=False),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("time", sa.String(50), nullable=False),
        sa.Column("description", sa.String(2000), nullable=False),
        sa.Column("seats", sa.Integer(), nullable=False),
        sa.Column("seats_left", sa.Integer(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("image", sa.String(500), nullable=True),
        *_timestamps(),
        # The ledger bounds. The conditional decrement never violates them;
        # these catch anything that bypasses it.
        sa.CheckConstraint("seats > 0", name="check_poster_seats_positive"),
        sa.CheckConstraint("seats_left >= 0", name="check_poster_seats_left_non_negative"),
        sa.CheckConstraint("seats_left <= seats", name="check_poster_seats_left_lte_seats"),
        sa.CheckConstraint("price >= 0", name="check_poster_price_non_negative"),
    )
    op.create_index("ix_posters_id", "posters", ["id"])
    op.create_index("ix_posters_event_id", "posters", ["event_id"])
    op.create_index("ix_posters_club_id", "posters", ["club_id"])
    op.create_index("ix_posters_head_id", "posters", ["head_id"])
    op.create_index("ix_posters_event_date", "posters", ["event_date"])

    op.create_table(
        "ticket_bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("poster_id", sa.Integer(), sa.ForeignKey("posters.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("number_of_persons", sa.Integer(), nullable=False),
        sa.Column("payment_proof", sa.String(500), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        *_timestamps(),
        sa.CheckConstraint("number_of_persons > 0", name="check_booking_persons_positive"),
        sa.CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="check_booking_status"),
    )
    op.create_index("ix_ticket_bookings_id", "ticket_bookings", ["id"])
    op.create_index("ix_ticket_bookings_poster_id", "ticket_bookings", ["poster_id"])
    op.create_index("ix_ticket_bookings_user_id", "ticket_bookings", ["user_id"])
    # Covers the held-seats sum and the pending review queue
    op.create_index("ix_ticket_bookings_poster_status", "ticket_bookings", ["poster_id", "status"])


def downgrade() -> None:
    op.drop_table("ticket_bookings")
    op.drop_table("posters")
    op.drop_table("events")
    op.drop_table("clubs")
    op.drop_table("users")
