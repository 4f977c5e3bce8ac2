"""
Pydantic schemas for booking-related request/response validation.
"""

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, Field, computed_field

from mess_api.core.constants import MEAL_SERVING_TIMES, STATUS_CANCELLED, STATUS_CHECKED_IN

MealType = Literal["breakfast", "lunch", "snacks", "dinner"]


class BookingCreate(BaseModel):
    date: dt.date
    meal_type: MealType
    # category -> option id, e.g. {"main": "dal-rice", "bread": "roti"}
    selected_options: dict[str, str] = Field(default_factory=dict)


class BookingResponse(BaseModel):
    id: str
    user_id: str
    date: dt.date
    meal_type: str
    selected_options: dict[str, str]
    status: str
    waste_rated: bool
    waste_rating: Optional[int] = None
    qr_payload: str
    qr_code: str
    created_at: dt.datetime
    cancelled_at: Optional[dt.datetime] = None
    checked_in_at: Optional[dt.datetime] = None
    rated_at: Optional[dt.datetime] = None

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def booked(self) -> bool:
        return self.status != STATUS_CANCELLED

    @computed_field
    @property
    def attended(self) -> bool:
        return self.status == STATUS_CHECKED_IN

    @computed_field
    @property
    def time(self) -> str:
        return MEAL_SERVING_TIMES.get(self.meal_type, "TBD")

    @computed_field
    @property
    def meal(self) -> str:
        return self.selected_options.get("main") or "Menu Item TBD"


class BookingCancelResponse(BaseModel):
    success: bool = True
    message: str
    booking_id: str
    status: str


class WasteRatingRequest(BaseModel):
    # Range is enforced by the service so out-of-range values get the
    # validation_error condition rather than a schema 422
    rating: int


class WasteRatingResponse(BaseModel):
    success: bool = True
    message: str
    booking_id: str
    waste_rating: int
