"""
Pydantic schemas for the admin analytics view.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel


class PopularMeal(BaseModel):
    id: str
    name: str
    meal_type: str
    category: str
    votes: int


class DayParticipation(BaseModel):
    day: str
    votes: int
    bookings: int


class AnalyticsResponse(BaseModel):
    week_start: dt.date
    total_users: int
    total_bookings: int
    checked_in: int
    cancellation_rate: float  # percent, one decimal
    avg_waste_rating: Optional[float]
    waste_distribution: dict[int, int]
    popular_meals: list[PopularMeal]
    weekly_participation: list[DayParticipation]
