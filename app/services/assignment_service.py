# services/assignment_service.py
import enum
import logging
from contextlib import nullcontext
from datetime import datetime, timedelta
from typing import Callable, ContextManager, List, Optional

from app.core.clock import utcnow
from app.core.errors import InvalidInputError, NotFoundError
from app.models.orm.history import OperationType
from app.models.orm.segment import SegmentORM
from app.models.schemas.assignment import (
    UserSegmentsUpdateModel,
    UserSegmentsUpdateResponseModel,
)
from app.models.schemas.history import HistoryEntryModel
from app.models.schemas.user import UserWithSegmentsModel
from app.repositories.base import StorageGateway

logger = logging.getLogger(__name__)


class MembershipChange(enum.Enum):
    CREATED = "created"
    REFRESHED = "refreshed"
    UNCHANGED = "unchanged"


class AssignmentService:
    def __init__(
        self,
        storage: StorageGateway,
        clock: Callable[[], datetime] = utcnow,
        atomic_batches: bool = False,
    ):
        self.storage = storage
        self.clock = clock
        self.atomic_batches = atomic_batches

    def _resolve_segment(self, slug: str) -> SegmentORM:
        segment = self.storage.fetch_segment(slug)
        if segment is None:
            raise NotFoundError(f"Slug not found: {slug}", missing_slugs=[slug])
        return segment

    def _add_or_update(
        self, user_id: str, slug: str, ttl_hours: int, override: bool, now: datetime
    ) -> MembershipChange:
        segment = self._resolve_segment(slug)
        delete_at = now + timedelta(hours=ttl_hours)

        existing = self.storage.get_assignment(user_id, segment.id)
        if existing is not None and not override and existing.delete_at >= now:
            logger.debug("User %s already in segment %s, override is off", user_id, slug)
            return MembershipChange.UNCHANGED

        # An expired row the sweeper has not reached yet counts as absent
        if existing is not None and self.storage.update_assignment_deadline(user_id, segment.id, delete_at):
            change = MembershipChange.REFRESHED
        else:
            # The row may have been swept since we read it; a concurrent insert raises ConflictError
            self.storage.add_assignment(user_id, segment.id, delete_at)
            change = MembershipChange.CREATED

        self.storage.save_history(user_id, segment.id, OperationType.ADD, now)
        return change

    def _remove(self, user_id: str, slug: str, now: datetime) -> int:
        segment = self._resolve_segment(slug)
        deleted = self.storage.delete_assignment(user_id, segment.id)
        # Removal intent is logged even when the user was not in the segment
        self.storage.save_history(user_id, segment.id, OperationType.REMOVE, now)
        return deleted

    def add_or_update_membership(
        self,
        user_id: str,
        slug: str,
        ttl_hours: int,
        override: bool = False,
        now: Optional[datetime] = None,
    ) -> MembershipChange:
        """
        Puts a user into a segment until ``now + ttl_hours``.

        An existing live assignment keeps its deadline unless ``override`` is set,
        in which case the deadline is replaced. Created and refreshed assignments
        each get one ADD history entry; a no-op writes nothing.
        """
        with self.storage.unit_of_work():
            return self._add_or_update(user_id, slug, ttl_hours, override, now or self.clock())

    def remove_membership(self, user_id: str, slug: str, now: Optional[datetime] = None) -> int:
        """Idempotent removal; always appends one REMOVE history entry."""
        with self.storage.unit_of_work():
            return self._remove(user_id, slug, now or self.clock())

    def _step(self) -> ContextManager:
        # In atomic mode the whole batch already runs inside one unit of work
        return nullcontext() if self.atomic_batches else self.storage.unit_of_work()

    def update_user_segments(self, request: UserSegmentsUpdateModel) -> UserSegmentsUpdateResponseModel:
        """
        Applies a batch of removals and then additions for one user.

        Removals run first, so a slug listed in both ends up assigned. The first
        failing slug aborts the rest of the batch. Unless ``atomic_batches`` is on,
        every slug is committed on its own and earlier steps survive the failure.
        """
        if not self.storage.user_exists(request.user_id):
            raise NotFoundError(f"User {request.user_id} not found.")

        now = self.clock()
        result = UserSegmentsUpdateResponseModel(user_id=request.user_id)

        batch = self.storage.unit_of_work() if self.atomic_batches else nullcontext()
        with batch:
            for slug in request.segments_to_delete:
                with self._step():
                    self._remove(request.user_id, slug, now)
                result.removed.append(slug)

            for slug, ttl_hours in request.segments_to_add.items():
                with self._step():
                    change = self._add_or_update(
                        request.user_id, slug, ttl_hours, request.override, now
                    )
                if change is MembershipChange.UNCHANGED:
                    result.unchanged.append(slug)
                else:
                    result.added.append(slug)

        logger.info(
            "Updated segments of user %s: added=%s unchanged=%s removed=%s",
            request.user_id,
            result.added,
            result.unchanged,
            result.removed,
        )
        return result

    def fetch_user_with_segments(self, user_id: str) -> UserWithSegmentsModel:
        user = self.storage.fetch_user_with_segments(user_id, self.clock())
        if user is None:
            raise NotFoundError(f"User {user_id} not found.")
        return user

    def list_users_with_segments(self) -> List[UserWithSegmentsModel]:
        return self.storage.list_users_with_segments(self.clock())

    def get_history(self, year: int, month: int) -> List[HistoryEntryModel]:
        if not 1 <= month <= 12:
            raise InvalidInputError(f"Month must be between 1 and 12, got {month}.")
        if not 1 <= year <= 9998:
            raise InvalidInputError(f"Year {year} is out of range.")
        return self.storage.get_history(year, month)
