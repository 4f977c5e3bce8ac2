"""
Pydantic schemas for the AI nutrition endpoints.
"""

from pydantic import BaseModel, Field


class AdviceResponse(BaseModel):
    advice: str


class ImageRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=500)


class ImageResponse(BaseModel):
    image_url: str
