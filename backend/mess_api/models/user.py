"""
User model: identity, role and the gamification counters.

``points`` and ``streak`` are only ever changed with relative UPDATE
statements (see services.points) so concurrent deltas compose.
"""

import uuid

from sqlalchemy import Column, Integer, String, Boolean, Date, CheckConstraint

from mess_api.core.constants import POINTS_PER_LEVEL
from mess_api.db.base import Base, TimestampMixin


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="student")
    is_active = Column(Boolean, default=True, nullable=False)

    points = Column(Integer, nullable=False, default=0)
    streak = Column(Integer, nullable=False, default=0)
    last_attended_on = Column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint("role IN ('student', 'staff', 'admin')", name="check_user_role"),
        CheckConstraint("points >= 0", name="check_user_points_non_negative"),
    )

    @property
    def level(self) -> int:
        return (self.points or 0) // POINTS_PER_LEVEL + 1

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
