"""
Check-in credential (the QR payload) and the scan request/response schemas.

The credential's wire format is fixed, since scanning tools on the staff side
produce and consume it as-is:

    {"bookingId":"<uuid>","userId":"<uuid>","date":"YYYY-MM-DD","mealType":"lunch"}
"""

import datetime as dt
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

from mess_api.schemas.booking import BookingResponse


class CheckInCredential(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    booking_id: str = Field(..., alias="bookingId", min_length=1)
    user_id: str = Field(..., alias="userId", min_length=1)
    date: dt.date
    meal_type: str = Field(..., alias="mealType", min_length=1)


class CheckInRequest(BaseModel):
    # Scanners send the raw QR text; some clients post the decoded object
    qr_data: Union[str, dict[str, Any]] = Field(..., alias="qrData")

    model_config = ConfigDict(populate_by_name=True)


class CheckInResponse(BaseModel):
    success: bool = True
    message: str
    booking: BookingResponse
