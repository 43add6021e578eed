# services/segment_service.py
import logging
from typing import List

from app.core.errors import NotFoundError
from app.models.schemas.segment import SegmentCreateModel, SegmentModel, SegmentUpdateModel
from app.repositories.base import StorageGateway

logger = logging.getLogger(__name__)


class SegmentService:
    def __init__(self, storage: StorageGateway):
        self.storage = storage

    def create_segment(self, segment_data: SegmentCreateModel) -> SegmentModel:
        """Creates a segment; a slug that is already taken raises ConflictError."""
        with self.storage.unit_of_work():
            segment_orm = self.storage.create_segment(segment_data.slug, segment_data.description)
            segment = SegmentModel.model_validate(segment_orm)
        logger.info("Created segment %s", segment.slug)
        return segment

    def list_segments(self) -> List[SegmentModel]:
        return [SegmentModel.model_validate(s) for s in self.storage.list_segments()]

    def update_segment(self, slug: str, segment_data: SegmentUpdateModel) -> SegmentModel:
        with self.storage.unit_of_work():
            changes = segment_data.model_dump(exclude_unset=True)
            if changes.get("slug") is None:
                changes.pop("slug", None)
            segment_orm = self.storage.update_segment(slug, **changes)
            if segment_orm is None:
                raise NotFoundError(f"Segment {slug} not found.", missing_slugs=[slug])
            return SegmentModel.model_validate(segment_orm)

    def delete_segment(self, slug: str) -> None:
        with self.storage.unit_of_work():
            if not self.storage.delete_segment(slug):
                raise NotFoundError(f"Segment {slug} not found.", missing_slugs=[slug])
        logger.info("Deleted segment %s", slug)
