"""
Pydantic schemas for the weekly menu and voting.
"""

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, Field

from mess_api.schemas.booking import MealType

DayOfWeek = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


class MealOptionResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    votes: int


class WeeklyMenuResponse(BaseModel):
    id: int
    week_start: dt.date
    # meal_type -> category -> options in menu order
    options: dict[str, dict[str, list[MealOptionResponse]]]
    cached: bool = False


class VoteCreate(BaseModel):
    week_start: dt.date
    day: DayOfWeek
    meal_type: MealType
    category: str = Field(..., min_length=1, max_length=50, pattern=r"^[a-z0-9_-]+$")
    option_id: str = Field(..., min_length=1, max_length=64)


class VoteResponse(BaseModel):
    success: bool = True
    message: str
    created: bool
    points_awarded: int


class UserVotesResponse(BaseModel):
    week_start: dt.date
    # "<day>-<meal_type>-<category>" -> option id
    votes: dict[str, str]


class ReconciledOption(BaseModel):
    meal_type: str
    category: str
    id: str
    previous: int
    actual: int


class ReconcileResponse(BaseModel):
    week_start: dt.date
    corrected: list[ReconciledOption]
