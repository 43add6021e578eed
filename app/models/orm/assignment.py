from sqlalchemy import Column, DateTime, ForeignKey, Index, PrimaryKeyConstraint, String
from sqlalchemy.orm import relationship

from .base import Base


class AssignmentORM(Base):
    """Membership of a user in a segment, valid until ``delete_at`` (naive UTC)."""

    __tablename__ = "segment_assignments"

    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    segment_id = Column(
        String(36), ForeignKey("segments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    delete_at = Column(DateTime, nullable=False)

    # The composite primary key is the at-most-one-assignment-per-pair rule.
    __table_args__ = (
        PrimaryKeyConstraint("user_id", "segment_id", name="assignment_pk"),
        Index("idx_delete_at", "delete_at"),
    )

    user = relationship("UserORM", back_populates="assignments")
    segment = relationship("SegmentORM", back_populates="assignments")
