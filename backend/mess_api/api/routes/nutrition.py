"""
AI nutrition endpoints: advice and meal images.
"""

from fastapi import APIRouter, Depends, Query

from mess_api.api.deps import get_advisor
from mess_api.core.security import get_current_user
from mess_api.models.user import User
from mess_api.schemas.nutrition import AdviceResponse, ImageRequest, ImageResponse
from mess_api.services.ai_service import NutritionAdvisor

router = APIRouter(tags=["Nutrition"])


@router.get("/nutrition/advice", response_model=AdviceResponse)
async def nutrition_advice(
    prompt: str = Query(..., min_length=1, max_length=2000),
    user: User = Depends(get_current_user),
    advisor: NutritionAdvisor = Depends(get_advisor),
):
    """Ask the nutrition assistant. Rate-limited upstream calls are retried."""
    advice = await advisor.get_advice(prompt)
    return AdviceResponse(advice=advice)


@router.post("/meals/generate-image", response_model=ImageResponse)
async def generate_meal_image(
    image_request: ImageRequest,
    user: User = Depends(get_current_user),
    advisor: NutritionAdvisor = Depends(get_advisor),
):
    """Image for a dish; falls back to a placeholder when generation fails."""
    image_url = await advisor.get_meal_image(image_request.prompt)
    return ImageResponse(image_url=image_url)
