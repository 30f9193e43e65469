"""Ignore model: a user's suppression of one item from a to-do list."""

from sqlalchemy import Boolean, Column, DateTime, String, UniqueConstraint

from lms_todo.common.clock import utcnow
from lms_todo.db.base import Base, IdType


class Ignore(Base):
    """(user, asset, purpose) suppression; non-permanent rows clear on the next triggering change."""

    __tablename__ = "ignores"
    __table_args__ = (
        UniqueConstraint("asset_id", "asset_type", "user_id", "purpose", name="uq_ignores_asset_user_purpose"),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    asset_type = Column(String(50), nullable=False)
    asset_id = Column(IdType, nullable=False)
    user_id = Column(IdType, nullable=False, index=True)
    purpose = Column(String(50), nullable=False)
    permanent = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
