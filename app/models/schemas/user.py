from typing import List

from pydantic import BaseModel, ConfigDict, Field


class UserCreateModel(BaseModel):
    """Schema for creating a new user (API input)."""

    name: str = Field(..., min_length=1)


class UserUpdateModel(BaseModel):
    name: str = Field(..., min_length=1)


class UserModel(BaseModel):
    id: str
    name: str

    model_config = ConfigDict(from_attributes=True)


class UserWithSegmentsModel(BaseModel):
    """A user together with the slugs of its live (not yet expired) segments."""

    user_id: str
    name: str
    segment_slugs: List[str] = Field(
        default_factory=list,
        description="Empty when the user has no live assignments, never null.",
    )
