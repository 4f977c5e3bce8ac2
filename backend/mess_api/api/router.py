"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from mess_api.api.routes import auth, menu, bookings, checkin, nutrition, admin

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(menu.router)
api_router.include_router(bookings.router)
api_router.include_router(checkin.router)
api_router.include_router(nutrition.router)
api_router.include_router(admin.router)
