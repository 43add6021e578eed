from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, delete, exists, select

from app.models.orm.assignment import AssignmentORM
from app.models.orm.segment import SegmentORM
from app.models.orm.user import UserORM
from app.models.schemas.user import UserWithSegmentsModel

from .base import SessionRepository


class UserRepository(SessionRepository):
    def _users_with_segments(self, now: datetime, user_id: Optional[str] = None) -> List[UserWithSegmentsModel]:
        """
        One user row per live assignment, plus a single all-NULL segment row for
        users without any. The NULL rows are dropped while folding so a user with
        no segments ends up with an empty list rather than ``[None]``.
        """
        stmt = (
            select(UserORM.id, UserORM.name, SegmentORM.slug)
            .outerjoin(
                AssignmentORM,
                and_(AssignmentORM.user_id == UserORM.id, AssignmentORM.delete_at >= now),
            )
            .outerjoin(SegmentORM, SegmentORM.id == AssignmentORM.segment_id)
            .order_by(UserORM.name, UserORM.id, SegmentORM.slug)
        )
        if user_id is not None:
            stmt = stmt.where(UserORM.id == user_id)

        with self.translate_errors("fetch users"):
            rows = self.db.execute(stmt).all()

        users: dict[str, UserWithSegmentsModel] = {}
        for row_user_id, name, slug in rows:
            user = users.get(row_user_id)
            if user is None:
                user = users[row_user_id] = UserWithSegmentsModel(user_id=row_user_id, name=name)
            if slug is not None:
                user.segment_slugs.append(slug)
        return list(users.values())

    def list_users_with_segments(self, now: datetime) -> List[UserWithSegmentsModel]:
        return self._users_with_segments(now)

    def fetch_user_with_segments(self, user_id: str, now: datetime) -> Optional[UserWithSegmentsModel]:
        users = self._users_with_segments(now, user_id=user_id)
        return users[0] if users else None

    def user_exists(self, user_id: str) -> bool:
        with self.translate_errors("check user"):
            return bool(self.db.scalar(select(exists().where(UserORM.id == user_id))))

    def create_user(self, name: str) -> UserORM:
        db_user = UserORM(name=name)
        with self.translate_errors("create user"):
            self.db.add(db_user)
            self.db.flush()
        return db_user

    def update_user(self, user_id: str, name: str) -> Optional[UserORM]:
        with self.translate_errors("update user"):
            db_user = self.db.get(UserORM, user_id)
            if db_user is None:
                return None
            db_user.name = name
            self.db.flush()
        return db_user

    def delete_user(self, user_id: str) -> int:
        """Deletes the user and its assignments; returns the number of users removed."""
        with self.translate_errors("delete user"):
            # Explicit so databases without enforced foreign keys cascade as well
            self.db.execute(delete(AssignmentORM).where(AssignmentORM.user_id == user_id))
            result = self.db.execute(delete(UserORM).where(UserORM.id == user_id))
        return result.rowcount
