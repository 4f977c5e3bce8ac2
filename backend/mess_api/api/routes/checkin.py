"""
Staff check-in endpoint: validate a scanned booking QR code.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mess_api.core.constants import ROLE_ADMIN, ROLE_STAFF
from mess_api.core.security import require_roles
from mess_api.db.session import get_db
from mess_api.models.user import User
from mess_api.schemas.booking import BookingResponse
from mess_api.schemas.checkin import CheckInRequest, CheckInResponse
from mess_api.services.checkin_service import check_in

router = APIRouter(prefix="/checkin", tags=["Check-in"])


@router.post("/", response_model=CheckInResponse)
async def check_in_endpoint(
    request_data: CheckInRequest,
    staff: User = Depends(require_roles(ROLE_STAFF, ROLE_ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Mark the booking as attended. Points go to the student who booked."""
    booking = await check_in(db, staff.id, request_data.qr_data)
    await db.commit()
    return CheckInResponse(
        message=f"Check-in successful for {booking.meal_type}.",
        booking=BookingResponse.model_validate(booking),
    )
