from datetime import datetime
from typing import List

from sqlalchemy import select

from app.models.orm.history import HistoryEntryORM, OperationType
from app.models.orm.segment import SegmentORM
from app.models.schemas.history import HistoryEntryModel

from .base import SessionRepository


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` range covering one calendar month."""
    start = datetime(year, month, 1)
    end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
    return start, end


class HistoryRepository(SessionRepository):
    def save_history(
        self, user_id: str, segment_id: str, operation: OperationType, operation_at: datetime
    ) -> None:
        entry = HistoryEntryORM(
            user_id=user_id,
            segment_id=segment_id,
            operation=operation,
            operation_at=operation_at,
        )
        with self.translate_errors("save history"):
            self.db.add(entry)
            self.db.flush()

    def get_history(self, year: int, month: int) -> List[HistoryEntryModel]:
        """
        All history rows of the given month with their segment slugs.
        Rows of segments that were deleted since drop out of the join.
        """
        start, end = month_bounds(year, month)
        stmt = (
            select(
                HistoryEntryORM.user_id,
                SegmentORM.slug,
                HistoryEntryORM.operation,
                HistoryEntryORM.operation_at,
            )
            .join(SegmentORM, SegmentORM.id == HistoryEntryORM.segment_id)
            .where(HistoryEntryORM.operation_at >= start, HistoryEntryORM.operation_at < end)
            .order_by(HistoryEntryORM.operation_at, HistoryEntryORM.id)
        )
        with self.translate_errors("fetch history"):
            rows = self.db.execute(stmt).all()
        return [HistoryEntryModel.model_validate(row) for row in rows]
