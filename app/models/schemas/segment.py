from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SegmentCreateModel(BaseModel):
    slug: str = Field(..., min_length=1, description="Unique human readable name, e.g. 'AVITO_VOICE_MESSAGES'.")
    description: Optional[str] = None


class SegmentUpdateModel(BaseModel):
    """Partial update; omitted fields keep their current value, an explicit null description clears it."""

    slug: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None


class SegmentModel(BaseModel):
    id: str
    slug: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
