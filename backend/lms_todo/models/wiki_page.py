"""Wiki page model."""

from sqlalchemy import Column, DateTime, String

from lms_todo.common.clock import utcnow
from lms_todo.db.base import Base, IdType


class WikiPage(Base):
    """Content page in a course or group."""

    __tablename__ = "wiki_pages"

    id = Column(IdType, primary_key=True, autoincrement=True)
    context_type = Column(String(50), nullable=False, default="Course")
    context_id = Column(IdType, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    workflow_state = Column(String(50), nullable=False, default="active")
    todo_date = Column(DateTime, nullable=True)
    publish_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
