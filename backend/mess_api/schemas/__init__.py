from mess_api.schemas.user import UserCreate, UserResponse, UserLogin, Token
from mess_api.schemas.booking import (
    BookingCreate, BookingResponse, BookingCancelResponse, WasteRatingRequest, WasteRatingResponse,
)
from mess_api.schemas.checkin import CheckInCredential, CheckInRequest, CheckInResponse
from mess_api.schemas.menu import (
    WeeklyMenuResponse, MealOptionResponse, VoteCreate, VoteResponse, UserVotesResponse,
    ReconcileResponse,
)
from mess_api.schemas.analytics import AnalyticsResponse
from mess_api.schemas.nutrition import AdviceResponse, ImageRequest, ImageResponse

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "BookingCreate", "BookingResponse", "BookingCancelResponse",
    "WasteRatingRequest", "WasteRatingResponse",
    "CheckInCredential", "CheckInRequest", "CheckInResponse",
    "WeeklyMenuResponse", "MealOptionResponse", "VoteCreate", "VoteResponse",
    "UserVotesResponse", "ReconcileResponse",
    "AnalyticsResponse",
    "AdviceResponse", "ImageRequest", "ImageResponse",
]
