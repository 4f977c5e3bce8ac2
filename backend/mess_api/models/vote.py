"""
Vote model: a user's current choice for one (week, day, meal, category).

The unique constraint is what makes a repeat vote an update: a second insert
for the same key fails at the database, and the voting service falls back to
swapping ``option_key`` on the existing row.
"""

from sqlalchemy import Column, Integer, String, Date, ForeignKey, UniqueConstraint, Index

from mess_api.db.base import Base, TimestampMixin


class Vote(Base, TimestampMixin):
    __tablename__ = "votes"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    week_start = Column(Date, nullable=False)
    day = Column(String(10), nullable=False)
    meal_type = Column(String(20), nullable=False)
    category = Column(String(50), nullable=False)
    option_key = Column(String(64), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "user_id", "week_start", "day", "meal_type", "category",
            name="uq_vote_user_slot",
        ),
        Index("ix_votes_week_option", "week_start", "meal_type", "category", "option_key"),
    )

    def __repr__(self) -> str:
        return (
            f"<Vote(user={self.user_id}, week={self.week_start}, {self.day}/"
            f"{self.meal_type}/{self.category} -> {self.option_key})>"
        )
