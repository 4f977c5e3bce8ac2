"""
Weekly menu and its meal options.

A menu exists once per week start (a Monday). Options belong to exactly one
(menu, meal_type, category) and are addressed by a stable ``option_key`` such
as ``poha``. ``MealOption.votes`` is a denormalized count of the Vote rows
pointing at the option; it is kept in step by atomic increments and can be
rebuilt with services.menu_service.reconcile_vote_counts.
"""

from sqlalchemy import (
    Column, Integer, String, Date, ForeignKey, UniqueConstraint, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from mess_api.db.base import Base, TimestampMixin


class WeeklyMenu(Base, TimestampMixin):
    __tablename__ = "weekly_menus"

    id = Column(Integer, primary_key=True)
    week_start = Column(Date, nullable=False, unique=True, index=True)

    options = relationship(
        "MealOption",
        back_populates="menu",
        lazy="selectin",
        order_by="MealOption.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<WeeklyMenu(id={self.id}, week_start={self.week_start})>"


class MealOption(Base):
    __tablename__ = "meal_options"

    id = Column(Integer, primary_key=True)
    menu_id = Column(Integer, ForeignKey("weekly_menus.id", ondelete="CASCADE"), nullable=False)
    meal_type = Column(String(20), nullable=False)
    category = Column(String(50), nullable=False)
    option_key = Column(String(64), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    position = Column(Integer, nullable=False, default=0)
    votes = Column(Integer, nullable=False, default=0)

    menu = relationship("WeeklyMenu", back_populates="options")

    __table_args__ = (
        UniqueConstraint("menu_id", "meal_type", "category", "option_key", name="uq_menu_option"),
        CheckConstraint("votes >= 0", name="check_option_votes_non_negative"),
        Index("ix_meal_options_menu_slot", "menu_id", "meal_type", "category"),
    )

    def __repr__(self) -> str:
        return f"<MealOption(key={self.option_key}, slot={self.meal_type}/{self.category}, votes={self.votes})>"
