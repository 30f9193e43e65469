"""Discussion topic models."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from lms_todo.common.clock import utcnow
from lms_todo.db.base import Base, IdType


class DiscussionTopic(Base):
    """Discussion topic or announcement (``type == "Announcement"``) in a course or group."""

    __tablename__ = "discussion_topics"

    id = Column(IdType, primary_key=True, autoincrement=True)
    context_type = Column(String(50), nullable=False, default="Course")
    context_id = Column(IdType, nullable=False, index=True)
    type = Column(String(50), nullable=True)
    title = Column(String(255), nullable=False)
    workflow_state = Column(String(50), nullable=False, default="active")
    todo_date = Column(DateTime, nullable=True)
    lock_at = Column(DateTime, nullable=True)
    is_section_specific = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    section_visibilities = relationship("DiscussionTopicSectionVisibility", back_populates="discussion_topic")


class DiscussionTopicSectionVisibility(Base):
    """Section a section-specific topic is visible to."""

    __tablename__ = "discussion_topic_section_visibilities"

    id = Column(IdType, primary_key=True, autoincrement=True)
    discussion_topic_id = Column(IdType, ForeignKey("discussion_topics.id"), nullable=False, index=True)
    course_section_id = Column(IdType, ForeignKey("course_sections.id"), nullable=False)

    discussion_topic = relationship("DiscussionTopic", back_populates="section_visibilities")
