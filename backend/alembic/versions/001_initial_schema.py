"""Initial schema: users, weekly menus, meal options, votes, bookings.

Revision ID: 001
Revises: None
Create Date: 2024-06-01
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'student'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("streak", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_attended_on", sa.Date(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("role IN ('student', 'staff', 'admin')", name="check_user_role"),
        sa.CheckConstraint("points >= 0", name="check_user_points_non_negative"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Weekly menus, one per Monday
    op.create_table(
        "weekly_menus",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("week_start", sa.Date(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_weekly_menus_week_start", "weekly_menus", ["week_start"], unique=True)

    op.create_table(
        "meal_options",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "menu_id", sa.Integer(),
            sa.ForeignKey("weekly_menus.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("meal_type", sa.String(20), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("option_key", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("votes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.UniqueConstraint("menu_id", "meal_type", "category", "option_key", name="uq_menu_option"),
        sa.CheckConstraint("votes >= 0", name="check_option_votes_non_negative"),
    )
    op.create_index("ix_meal_options_menu_slot", "meal_options", ["menu_id", "meal_type", "category"])

    # Votes: the unique key is what turns a repeat vote into an update
    op.create_table(
        "votes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("week_start", sa.Date(), nullable=False),
        sa.Column("day", sa.String(10), nullable=False),
        sa.Column("meal_type", sa.String(20), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("option_key", sa.String(64), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "user_id", "week_start", "day", "meal_type", "category", name="uq_vote_user_slot"
        ),
    )
    op.create_index("ix_votes_user_id", "votes", ["user_id"])
    op.create_index(
        "ix_votes_week_option", "votes", ["week_start", "meal_type", "category", "option_key"]
    )

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("meal_type", sa.String(20), nullable=False),
        sa.Column("selected_options", sa.JSON(), nullable=False),
        sa.Column("qr_payload", sa.Text(), nullable=False),
        sa.Column("qr_code", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'upcoming'")),
        sa.Column("waste_rating", sa.Integer(), nullable=True),
        sa.Column("waste_rated", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checked_in_by", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("rated_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('upcoming', 'checked_in', 'cancelled')", name="check_booking_status"
        ),
        sa.CheckConstraint(
            "meal_type IN ('breakfast', 'lunch', 'snacks', 'dinner')", name="check_booking_meal_type"
        ),
        sa.CheckConstraint(
            "waste_rating IS NULL OR (waste_rating >= 1 AND waste_rating <= 5)",
            name="check_booking_waste_rating",
        ),
    )
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_date_meal", "bookings", ["date", "meal_type"])
    # PARTIAL UNIQUE INDEX: at most one non-cancelled booking per user and slot.
    # Closes the check-then-insert race: the second concurrent insert fails here
    # and is reported as "Already booked" instead of creating a duplicate.
    op.create_index(
        "uq_active_booking_slot",
        "bookings",
        ["user_id", "date", "meal_type"],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
    )


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("votes")
    op.drop_table("meal_options")
    op.drop_table("weekly_menus")
    op.drop_table("users")
