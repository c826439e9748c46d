"""Review request schemas."""

from typing import Optional

from pydantic import Field

from glitchlab.schemas.base import APIModel


class ReviewCreate(APIModel):
    workshop_id: str = Field(..., min_length=1)
    circle_color: str = Field(..., min_length=1)
    circle_font: str = Field(..., min_length=1)
    circle_text: str = Field(..., min_length=1)
    comment: Optional[str] = None


class ReviewUpdate(APIModel):
    circle_color: Optional[str] = None
    circle_font: Optional[str] = None
    circle_text: Optional[str] = None
    comment: Optional[str] = None


class FeatureReviewRequest(APIModel):
    review_id: str = Field(..., min_length=1)
    featured: bool = True
