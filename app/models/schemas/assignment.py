from typing import Annotated, Dict, List

from pydantic import BaseModel, Field


class UserSegmentsUpdateModel(BaseModel):
    """Body of POST /user_segments. Removals are applied before additions."""

    user_id: str
    segments_to_add: Dict[str, Annotated[int, Field(ge=0)]] = Field(
        default_factory=dict,
        description="slug -> TTL in hours.",
    )
    segments_to_delete: List[str] = Field(default_factory=list)
    override: bool = Field(
        False,
        description="Refresh the deadline of segments the user already has.",
    )


class UserSegmentsUpdateResponseModel(BaseModel):
    user_id: str
    added: List[str] = Field(default_factory=list, description="Created or refreshed assignments.")
    unchanged: List[str] = Field(default_factory=list, description="Already assigned, override was off.")
    removed: List[str] = Field(default_factory=list)
