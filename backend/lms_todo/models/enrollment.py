"""Enrollment and role override models."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from lms_todo.common.clock import utcnow
from lms_todo.db.base import Base, IdType

STUDENT_ENROLLMENT_TYPES = ("StudentEnrollment", "StudentViewEnrollment")
GRADER_ENROLLMENT_TYPES = ("TeacherEnrollment", "TaEnrollment")
ENROLLMENT_TYPES = (
    *STUDENT_ENROLLMENT_TYPES,
    *GRADER_ENROLLMENT_TYPES,
    "DesignerEnrollment",
    "ObserverEnrollment",
)

# Enrollment states that no longer count as participating
TERMINATED_ENROLLMENT_STATES = ("rejected", "completed", "deleted", "inactive")


class Enrollment(Base):
    """A user's role in a course.

    Lives on the course's shard; ``user_id`` is relative to this shard (global when
    the user's home shard differs).
    """

    __tablename__ = "enrollments"

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(IdType, nullable=False, index=True)
    course_id = Column(IdType, ForeignKey("courses.id"), nullable=False, index=True)
    course_section_id = Column(IdType, ForeignKey("course_sections.id"), nullable=True)
    type = Column(String(50), nullable=False)
    workflow_state = Column(String(50), nullable=False, default="active")
    limit_privileges_to_course_section = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    course = relationship("Course")


class RoleOverride(Base):
    """Account-level override of a role's default permission."""

    __tablename__ = "role_overrides"
    __table_args__ = (
        UniqueConstraint("account_id", "role", "permission", name="uq_role_overrides_account_role_permission"),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    account_id = Column(IdType, ForeignKey("accounts.id"), nullable=False, index=True)
    role = Column(String(50), nullable=False)
    permission = Column(String(100), nullable=False)
    enabled = Column(Boolean, nullable=False)
