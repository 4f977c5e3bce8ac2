"""
Dependencies for the collaborators built in the application lifespan.
"""

from fastapi import Request

from mess_api.services.ai_service import NutritionAdvisor
from mess_api.services.cache_service import MenuCache


def get_menu_cache(request: Request) -> MenuCache:
    return request.app.state.menu_cache


def get_advisor(request: Request) -> NutritionAdvisor:
    return request.app.state.advisor
