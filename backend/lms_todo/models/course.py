"""Account, course, section and group models."""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from lms_todo.common.clock import utcnow
from lms_todo.db.base import Base, IdType


class CourseWorkflowState(str, Enum):
    """Course workflow state enum."""

    CREATED = "created"
    CLAIMED = "claimed"
    AVAILABLE = "available"
    COMPLETED = "completed"
    DELETED = "deleted"


class Account(Base):
    """Account owning courses; carries account-level feature settings."""

    __tablename__ = "accounts"

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    discussion_checkpoints_enabled = Column(Boolean, default=False, nullable=False)

    courses = relationship("Course", back_populates="account")


class Course(Base):
    """Course context."""

    __tablename__ = "courses"

    id = Column(IdType, primary_key=True, autoincrement=True)
    account_id = Column(IdType, ForeignKey("accounts.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    course_code = Column(String(255), nullable=True)
    workflow_state = Column(String(50), nullable=False, default=CourseWorkflowState.AVAILABLE.value)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    account = relationship("Account", back_populates="courses")
    sections = relationship("CourseSection", back_populates="course")

    @property
    def asset_string(self) -> str:
        return f"course_{self.id}"

    @property
    def available(self) -> bool:
        return self.workflow_state == CourseWorkflowState.AVAILABLE.value

    def nickname_for(self, user, short: bool = False) -> str:
        # Nicknames are a per-user preference in the full product; course code is the short name here.
        if short and self.course_code:
            return self.course_code
        return self.name


class CourseSection(Base):
    """Course section; enrollments may be limited to their section."""

    __tablename__ = "course_sections"

    id = Column(IdType, primary_key=True, autoincrement=True)
    course_id = Column(IdType, ForeignKey("courses.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)

    course = relationship("Course", back_populates="sections")


class Group(Base):
    """Group context (student groups inside a course)."""

    __tablename__ = "groups"

    id = Column(IdType, primary_key=True, autoincrement=True)
    course_id = Column(IdType, ForeignKey("courses.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    workflow_state = Column(String(50), nullable=False, default="available")

    @property
    def asset_string(self) -> str:
        return f"group_{self.id}"

    def nickname_for(self, user, short: bool = False) -> str:
        return self.name


class GroupMembership(Base):
    """Group membership; ``user_id`` is relative to this shard."""

    __tablename__ = "group_memberships"

    id = Column(IdType, primary_key=True, autoincrement=True)
    group_id = Column(IdType, ForeignKey("groups.id"), nullable=False, index=True)
    user_id = Column(IdType, nullable=False, index=True)
    workflow_state = Column(String(50), nullable=False, default="accepted")
    created_at = Column(DateTime, default=utcnow, nullable=False)

    group = relationship("Group")
