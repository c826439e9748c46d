"""Review document model."""

from datetime import datetime
from typing import Optional

from bson import ObjectId
from pydantic import Field

from glitchlab.models.base import MongoModel


class Review(MongoModel):
    """A user's stamp for a past workshop (``reviews`` collection)."""

    user: ObjectId
    workshop: ObjectId
    user_name: str
    circle_color: str = Field(..., min_length=1)
    circle_font: str = Field(..., min_length=1)
    circle_text: str = Field(..., min_length=1)
    comment: str = ""
    featured: bool = False
    workshop_name: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
