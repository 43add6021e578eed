from datetime import datetime
from typing import Optional

from sqlalchemy import delete, insert, select, update

from app.models.orm.assignment import AssignmentORM

from .base import SessionRepository


class AssignmentRepository(SessionRepository):
    def get_assignment(self, user_id: str, segment_id: str) -> Optional[AssignmentORM]:
        """Retrieves the assignment of a user to a segment, expired or not."""
        stmt = select(AssignmentORM).where(
            AssignmentORM.user_id == user_id,
            AssignmentORM.segment_id == segment_id,
        )
        with self.translate_errors("fetch assignment"):
            return self.db.scalars(stmt).one_or_none()

    def add_assignment(self, user_id: str, segment_id: str, delete_at: datetime) -> None:
        """
        Creates a new assignment record.
        Note: issued as a plain INSERT so a concurrent insert for the same pair
        hits the primary key and surfaces as a ConflictError.
        """
        stmt = insert(AssignmentORM).values(user_id=user_id, segment_id=segment_id, delete_at=delete_at)
        with self.translate_errors("add segment to user"):
            self.db.execute(stmt)

    def update_assignment_deadline(self, user_id: str, segment_id: str, delete_at: datetime) -> int:
        stmt = (
            update(AssignmentORM)
            .where(AssignmentORM.user_id == user_id, AssignmentORM.segment_id == segment_id)
            .values(delete_at=delete_at)
        )
        with self.translate_errors("update assignment deadline"):
            return self.db.execute(stmt).rowcount

    def delete_assignment(self, user_id: str, segment_id: str) -> int:
        stmt = delete(AssignmentORM).where(
            AssignmentORM.user_id == user_id,
            AssignmentORM.segment_id == segment_id,
        )
        with self.translate_errors("remove segment from user"):
            return self.db.execute(stmt).rowcount

    def delete_expired(self, now: datetime) -> int:
        """Bulk delete of every assignment whose deadline is before ``now``."""
        stmt = delete(AssignmentORM).where(AssignmentORM.delete_at < now)
        with self.translate_errors("delete expired assignments"):
            return self.db.execute(stmt).rowcount
