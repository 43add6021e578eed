from contextlib import contextmanager
from typing import Iterator

from .assignment_repo import AssignmentRepository
from .history_repo import HistoryRepository
from .segment_repo import SegmentRepository
from .user_repo import UserRepository


class SqlStorageGateway(UserRepository, SegmentRepository, AssignmentRepository, HistoryRepository):
    """SQLAlchemy implementation of StorageGateway over a single Session."""

    @contextmanager
    def unit_of_work(self) -> Iterator["SqlStorageGateway"]:
        try:
            yield self
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
