from typing import List, Optional

from sqlalchemy import delete, select

from app.models.orm.assignment import AssignmentORM
from app.models.orm.segment import SegmentORM

from .base import SessionRepository


class SegmentRepository(SessionRepository):
    def create_segment(self, slug: str, description: Optional[str] = None) -> SegmentORM:
        """
        Creates a new segment. The unique index on ``slug`` turns a duplicate
        into a ConflictError.
        """
        db_segment = SegmentORM(slug=slug, description=description)
        with self.translate_errors(f"create segment '{slug}'"):
            self.db.add(db_segment)
            self.db.flush()
        return db_segment

    def list_segments(self) -> List[SegmentORM]:
        with self.translate_errors("list segments"):
            return list(self.db.scalars(select(SegmentORM).order_by(SegmentORM.slug)).all())

    def fetch_segment(self, slug: str) -> Optional[SegmentORM]:
        with self.translate_errors(f"fetch segment '{slug}'"):
            return self.db.scalars(select(SegmentORM).where(SegmentORM.slug == slug)).one_or_none()

    def update_segment(self, slug: str, /, **changes) -> Optional[SegmentORM]:
        """Applies ``changes`` (``slug`` and/or ``description``); a description of None clears it."""
        db_segment = self.fetch_segment(slug)
        if db_segment is None:
            return None

        for field in ("slug", "description"):
            if field in changes:
                setattr(db_segment, field, changes[field])

        with self.translate_errors(f"update segment '{slug}'"):
            self.db.flush()
        return db_segment

    def delete_segment(self, slug: str) -> bool:
        db_segment = self.fetch_segment(slug)
        if db_segment is None:
            return False

        with self.translate_errors(f"delete segment '{slug}'"):
            self.db.execute(delete(AssignmentORM).where(AssignmentORM.segment_id == db_segment.id))
            self.db.delete(db_segment)
            self.db.flush()
        return True
