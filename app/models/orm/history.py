import enum

from sqlalchemy import Column, DateTime, Enum, Index, Integer, String

from app.core.clock import utcnow

from .base import Base


class OperationType(enum.Enum):
    ADD = "ADD"
    REMOVE = "REMOVE"


class HistoryEntryORM(Base):
    """Append-only audit row written for every membership add or remove."""

    __tablename__ = "user_segment_history"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # No foreign keys: the audit trail outlives deleted users.
    user_id = Column(String(36), nullable=False)
    segment_id = Column(String(36), nullable=False)

    operation = Column(Enum(OperationType, name="operation"), nullable=False)
    operation_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_user_id_history", "user_id"),
        Index("idx_operation_at_history", "operation_at"),
    )
