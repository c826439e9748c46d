"""Workshop document model."""

from datetime import datetime
from typing import Iterable, List, Literal, Optional

from bson import ObjectId
from pydantic import Field, field_validator, model_validator

from glitchlab.models.base import MongoModel
from glitchlab.utils.constants import AGE_RANGES, CLASS_TYPES, SUBJECTS, TECH_TYPES
from glitchlab.utils.workshop_status import to_utc_naive

AgeRange = Literal["6-8", "9-11", "12-13", "14-16", "16+"]
ClassType = Literal["in-class", "out-of-class"]
Subject = Literal["design", "test", "code"]
TechType = Literal["plug", "unplug"]
Level = Literal["beginner", "intermediate", "advanced"]


class LocalizedText(MongoModel):
    en: Optional[str] = None
    it: Optional[str] = None


class WorkshopFacets(MongoModel):
    """
    Structured replacement for the flat ``categories`` tag list.

    Age range, class type and tech type hold at most one value each;
    subjects may hold several.
    """

    age_range: Optional[AgeRange] = None
    class_type: Optional[ClassType] = None
    subjects: List[Subject] = Field(default_factory=list)
    tech_type: Optional[TechType] = None

    @field_validator("subjects")
    @classmethod
    def dedupe_subjects(cls, v):
        return list(dict.fromkeys(v))

    @classmethod
    def from_categories(cls, tags: Iterable[str]) -> "WorkshopFacets":
        """Parse a legacy tag list, rejecting unknown tags and conflicting values."""
        single = {"age_range": AGE_RANGES, "class_type": CLASS_TYPES, "tech_type": TECH_TYPES}
        values = {}
        subjects = []
        for tag in tags:
            if tag in SUBJECTS:
                subjects.append(tag)
                continue
            for facet, allowed in single.items():
                if tag in allowed:
                    if facet in values and values[facet] != tag:
                        raise ValueError(f"Conflicting {facet} values: {values[facet]}, {tag}")
                    values[facet] = tag
                    break
            else:
                raise ValueError(f"Unknown category: {tag}")
        return cls(subjects=subjects, **values)

    def to_categories(self) -> List[str]:
        tags = [self.age_range, self.class_type, *self.subjects, self.tech_type]
        return [tag for tag in tags if tag]


class Workshop(MongoModel):
    """Workshop (``workshops`` collection)."""

    name: Optional[str] = None
    name_translations: LocalizedText
    description: Optional[str] = None
    description_translations: LocalizedText
    start_date: datetime
    end_date: datetime
    image_src: str = Field(..., min_length=1)
    badge_name: Optional[str] = None
    badge_name_translations: LocalizedText
    facets: WorkshopFacets = Field(default_factory=WorkshopFacets)
    level: Level
    location: str = Field(..., min_length=1)
    instructor_ids: List[ObjectId] = Field(..., min_length=1)
    capacity: int = Field(10, ge=1)
    registered_count: int = Field(0, ge=0)
    bg_color: str = "#ffffff"
    canceled: bool = False
    reminder_sent: bool = False

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, v):
        return to_utc_naive(v)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must not be before start date")
        return self

    @model_validator(mode="after")
    def check_count(self):
        if self.registered_count > self.capacity:
            raise ValueError("Registered count exceeds capacity")
        return self


def categories_of(workshop: dict) -> List[str]:
    """Flat tag list for a stored workshop document."""
    facets = workshop.get("facets") or {}
    return WorkshopFacets.model_validate(facets).to_categories()
