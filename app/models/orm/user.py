import uuid

from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from .base import Base


class UserORM(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)

    # Assignments go away with the user; history rows are kept for reporting.
    assignments = relationship(
        "AssignmentORM",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
