"""
Booking endpoints: reserve, cancel, list, rate food waste.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mess_api.db.session import get_db
from mess_api.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingCancelResponse,
    WasteRatingRequest,
    WasteRatingResponse,
)
from mess_api.services import points
from mess_api.services.booking_service import (
    create_booking,
    cancel_booking,
    get_user_bookings,
    submit_waste_rating,
)
from mess_api.core.security import get_current_user
from mess_api.models.user import User

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Book a meal slot and receive its check-in QR code.

    One active booking per (date, meal type); a cancelled booking frees the
    slot again. Awards 10 points.
    """
    booking = await create_booking(
        db,
        user.id,
        booking_data.date,
        booking_data.meal_type,
        booking_data.selected_options,
    )
    await db.commit()
    return booking


@router.delete("/{booking_id}", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cancel an upcoming booking. Deducts 5 points."""
    booking = await cancel_booking(db, booking_id, user.id)
    await db.commit()
    return BookingCancelResponse(
        message=f"Booking cancelled. {-points.BOOKING_CANCELLED} points deducted.",
        booking_id=booking.id,
        status=booking.status,
    )


@router.get("/", response_model=list[BookingResponse])
async def list_user_bookings(
    booking_date: Optional[date] = Query(None, alias="date"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the authenticated user's bookings, optionally for one date."""
    bookings = await get_user_bookings(db, user.id, booking_date)
    return bookings


@router.post("/{booking_id}/waste-rating", response_model=WasteRatingResponse)
async def waste_rating_endpoint(
    booking_id: str,
    rating_data: WasteRatingRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Rate food left uneaten (1 = none, 5 = all) after attending. Awards 2 points."""
    booking = await submit_waste_rating(db, booking_id, user.id, rating_data.rating)
    await db.commit()
    return WasteRatingResponse(
        message=f"Waste rating recorded successfully. +{points.WASTE_RATED} points awarded.",
        booking_id=booking.id,
        waste_rating=booking.waste_rating,
    )
