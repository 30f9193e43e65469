"""User model."""

from sqlalchemy import JSON, Column, DateTime, String

from lms_todo.common.clock import utcnow
from lms_todo.db.base import Base, IdType


class User(Base):
    """User model.

    ``associated_shard_ids`` lists every shard on which the user holds enrollments or
    group memberships; the home shard is the one the row itself lives on.
    """

    __tablename__ = "users"

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, default="")
    short_name = Column(String(255), nullable=True)
    associated_shard_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def display_name(self) -> str:
        return self.short_name or self.name
