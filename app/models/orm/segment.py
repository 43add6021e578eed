import uuid

from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship

from .base import Base


class SegmentORM(Base):
    __tablename__ = "segments"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    slug = Column(String, nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)

    assignments = relationship(
        "AssignmentORM",
        back_populates="segment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
