"""Base class for MongoDB document models."""

from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MongoModel(BaseModel):
    """Documents are stored with camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    def to_document(self) -> Dict[str, Any]:
        """Render the model as a MongoDB document."""
        return self.model_dump(by_alias=True, exclude_none=True)


class TimestampedModel(MongoModel):
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
