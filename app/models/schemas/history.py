from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.orm.history import OperationType


class HistoryEntryModel(BaseModel):
    """One audit row joined with its segment slug."""

    user_id: str
    slug: str
    operation: OperationType
    operation_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReportLinkModel(BaseModel):
    download_link: str = Field(..., description="Where the generated CSV can be downloaded from.")
