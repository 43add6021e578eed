import logging
from contextlib import contextmanager
from datetime import datetime
from typing import ContextManager, Iterator, List, Optional, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, StorageError
from app.models.orm.assignment import AssignmentORM
from app.models.orm.history import OperationType
from app.models.orm.segment import SegmentORM
from app.models.orm.user import UserORM
from app.models.schemas.history import HistoryEntryModel
from app.models.schemas.user import UserWithSegmentsModel

logger = logging.getLogger(__name__)


class StorageGateway(Protocol):
    """
    Everything the services need from persistence.

    Write methods only flush; nothing is durable until the surrounding
    ``unit_of_work()`` exits cleanly.
    """

    def unit_of_work(self) -> ContextManager["StorageGateway"]: ...

    # users
    def list_users_with_segments(self, now: datetime) -> List[UserWithSegmentsModel]: ...
    def fetch_user_with_segments(self, user_id: str, now: datetime) -> Optional[UserWithSegmentsModel]: ...
    def create_user(self, name: str) -> UserORM: ...
    def update_user(self, user_id: str, name: str) -> Optional[UserORM]: ...
    def delete_user(self, user_id: str) -> int: ...
    def user_exists(self, user_id: str) -> bool: ...

    # segments
    def create_segment(self, slug: str, description: Optional[str] = None) -> SegmentORM: ...
    def list_segments(self) -> List[SegmentORM]: ...
    def fetch_segment(self, slug: str) -> Optional[SegmentORM]: ...
    def update_segment(self, slug: str, /, **changes) -> Optional[SegmentORM]: ...
    def delete_segment(self, slug: str) -> bool: ...

    # assignments
    def get_assignment(self, user_id: str, segment_id: str) -> Optional[AssignmentORM]: ...
    def add_assignment(self, user_id: str, segment_id: str, delete_at: datetime) -> None: ...
    def update_assignment_deadline(self, user_id: str, segment_id: str, delete_at: datetime) -> int: ...
    def delete_assignment(self, user_id: str, segment_id: str) -> int: ...
    def delete_expired(self, now: datetime) -> int: ...

    # history
    def save_history(
        self, user_id: str, segment_id: str, operation: OperationType, operation_at: datetime
    ) -> None: ...
    def get_history(self, year: int, month: int) -> List[HistoryEntryModel]: ...


class SessionRepository:
    def __init__(self, db: Session):
        """Initializes the repository with a database session."""
        self.db = db

    @contextmanager
    def translate_errors(self, action: str) -> Iterator[None]:
        """Roll back and re-raise database failures as service errors."""
        try:
            yield
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("Integrity error while trying to %s: %s", action, str(e).splitlines()[0])
            raise ConflictError(f"Could not {action}: a conflicting record already exists.") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Database error while trying to %s: %s", action, e)
            raise StorageError(f"A database error occurred while trying to {action}.") from e
