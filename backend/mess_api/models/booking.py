"""
Booking model representing a user's reservation for one meal slot.

Key design decisions:
- Partial unique index on (user_id, date, meal_type) over non-cancelled rows:
  one active booking per slot, while a cancelled one does not block rebooking
- Status moves upcoming -> cancelled or upcoming -> checked_in, never back
- Rows are never deleted; the timestamps form the audit trail
"""

import uuid

from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, Text, JSON, ForeignKey,
    CheckConstraint, Index, text,
)

from mess_api.db.base import Base, TimestampMixin


def _new_id() -> str:
    return str(uuid.uuid4())


_ACTIVE = text("status <> 'cancelled'")


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    meal_type = Column(String(20), nullable=False)
    selected_options = Column(JSON, nullable=False, default=dict)

    # Check-in credential (JSON) and its rendered QR image (data URL)
    qr_payload = Column(Text, nullable=False)
    qr_code = Column(Text, nullable=False)

    status = Column(String(20), nullable=False, default="upcoming")
    waste_rating = Column(Integer, nullable=True)
    waste_rated = Column(Boolean, nullable=False, default=False)

    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    rated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index(
            "uq_active_booking_slot",
            "user_id", "date", "meal_type",
            unique=True,
            postgresql_where=_ACTIVE,
            sqlite_where=_ACTIVE,
        ),
        Index("ix_bookings_date_meal", "date", "meal_type"),
        CheckConstraint(
            "status IN ('upcoming', 'checked_in', 'cancelled')", name="check_booking_status"
        ),
        CheckConstraint(
            "meal_type IN ('breakfast', 'lunch', 'snacks', 'dinner')", name="check_booking_meal_type"
        ),
        CheckConstraint(
            "waste_rating IS NULL OR (waste_rating >= 1 AND waste_rating <= 5)",
            name="check_booking_waste_rating",
        ),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, {self.date}/{self.meal_type}, status={self.status})>"
