"""System flags model for runtime configuration."""

from sqlalchemy import Boolean, Column, DateTime, String, Text

from lms_todo.common.clock import utcnow
from lms_todo.db.base import Base


class SystemFlag(Base):
    """Shard-local runtime flags (e.g. the needs-grading kill switch)."""

    __tablename__ = "system_flags"

    key = Column(String(100), primary_key=True, nullable=False)
    value = Column(Boolean, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    reason = Column(Text, nullable=True)
