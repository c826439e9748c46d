"""Workshop request schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, model_validator

from glitchlab.models.workshop import Level, LocalizedText, WorkshopFacets
from glitchlab.schemas.base import APIModel


class WorkshopFields(APIModel):
    """Fields shared by create and update. Either ``facets`` or legacy ``categories``."""

    name: Optional[str] = None
    name_translations: Optional[LocalizedText] = None
    description: Optional[str] = None
    description_translations: Optional[LocalizedText] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    image_src: Optional[str] = None
    badge_name: Optional[str] = None
    badge_name_translations: Optional[LocalizedText] = None
    facets: Optional[WorkshopFacets] = None
    categories: Optional[List[str]] = None
    level: Optional[Level] = None
    location: Optional[str] = None
    instructor_ids: Optional[List[str]] = None
    capacity: Optional[int] = Field(None, ge=1)
    bg_color: Optional[str] = None

    @model_validator(mode="after")
    def categories_to_facets(self):
        if self.categories is not None:
            if self.facets is not None:
                raise ValueError("Provide either facets or categories, not both")
            self.facets = WorkshopFacets.from_categories(self.categories)
        return self


class WorkshopCreate(WorkshopFields):
    name_translations: LocalizedText
    description_translations: LocalizedText
    start_date: datetime
    end_date: datetime
    image_src: str = Field(..., min_length=1)
    badge_name_translations: LocalizedText
    level: Level
    location: str = Field(..., min_length=1)
    instructor_ids: List[str] = Field(default_factory=list)
    capacity: int = Field(10, ge=1)


class WorkshopUpdate(WorkshopFields):
    pass


class WorkshopIdRequest(APIModel):
    workshop_id: str = Field(..., min_length=1)


class RemoveUserRequest(WorkshopIdRequest):
    user_id: str = Field(..., min_length=1)


class UncancelRequest(WorkshopIdRequest):
    new_start_date: datetime
    new_end_date: datetime
