"""Assignment, checkpoint sub-assignment and student override models."""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from lms_todo.common.clock import utcnow
from lms_todo.db.base import Base, IdType

# Submission types that never produce a submission to collect or grade
NON_SUBMISSION_TYPES = ("", "none", "not_graded", "on_paper", "wiki_page")
# Submission types a student can submit through the platform
ONLINE_SUBMISSION_TYPES = (
    "online_upload",
    "online_text_entry",
    "online_url",
    "online_quiz",
    "media_recording",
    "discussion_topic",
    "discussion_topics",
    "external_tool",
    "student_annotation",
)


class AssignmentWorkflowState(str, Enum):
    """Assignment workflow state enum."""

    UNPUBLISHED = "unpublished"
    PUBLISHED = "published"
    DELETED = "deleted"


class CheckpointLabel(str, Enum):
    """Checkpoint (sub-assignment) tags of a discussion assignment."""

    REPLY_TO_TOPIC = "reply_to_topic"
    REPLY_TO_ENTRY = "reply_to_entry"


class Assignment(Base):
    """Gradable assignment; ``type`` distinguishes checkpoint sub-assignments."""

    __tablename__ = "assignments"

    id = Column(IdType, primary_key=True, autoincrement=True)
    type = Column(String(50), nullable=False, default="Assignment")
    context_id = Column(IdType, ForeignKey("courses.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    workflow_state = Column(String(50), nullable=False, default=AssignmentWorkflowState.PUBLISHED.value)
    submission_types = Column(String(255), nullable=True, default="none")
    points_possible = Column(Float, nullable=True)
    due_at = Column(DateTime, nullable=True)
    unlock_at = Column(DateTime, nullable=True)
    lock_at = Column(DateTime, nullable=True)
    moderated_grading = Column(Boolean, default=False, nullable=False)
    final_grader_id = Column(IdType, nullable=True)
    grades_published_at = Column(DateTime, nullable=True)
    peer_reviews = Column(Boolean, default=False, nullable=False)
    peer_reviews_due_at = Column(DateTime, nullable=True)
    only_visible_to_overrides = Column(Boolean, default=False, nullable=False)
    suppress_assignment = Column(Boolean, default=False, nullable=False)
    has_sub_assignments = Column(Boolean, default=False, nullable=False)
    parent_assignment_id = Column(IdType, ForeignKey("assignments.id"), nullable=True, index=True)
    sub_assignment_tag = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    context = relationship("Course")
    parent_assignment = relationship("Assignment", remote_side=[id], back_populates="sub_assignments")
    sub_assignments = relationship("Assignment", back_populates="parent_assignment")
    overrides = relationship("AssignmentOverrideStudent", back_populates="assignment")

    __mapper_args__ = {
        "polymorphic_on": type,
        "polymorphic_identity": "Assignment",
    }

    @property
    def published(self) -> bool:
        return self.workflow_state == AssignmentWorkflowState.PUBLISHED.value

    @property
    def submission_type_list(self) -> list[str]:
        return [t.strip() for t in (self.submission_types or "").split(",") if t.strip()]

    @property
    def expects_submission(self) -> bool:
        types = self.submission_type_list
        return bool(types) and not any(t in NON_SUBMISSION_TYPES for t in types)

    @property
    def expects_online_submission(self) -> bool:
        return any(t in ONLINE_SUBMISSION_TYPES for t in self.submission_type_list)

    @property
    def discussion_checkpoints_enabled(self) -> bool:
        return bool(self.context and self.context.account.discussion_checkpoints_enabled)


class SubAssignment(Assignment):
    """Gradable checkpoint of a discussion assignment."""

    __mapper_args__ = {"polymorphic_identity": "SubAssignment"}


class AssignmentOverrideStudent(Base):
    """Per-student override: grants visibility and an individual due date."""

    __tablename__ = "assignment_override_students"
    __table_args__ = (
        UniqueConstraint("assignment_id", "user_id", name="uq_assignment_override_students_assignment_user"),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    assignment_id = Column(IdType, ForeignKey("assignments.id"), nullable=False, index=True)
    user_id = Column(IdType, nullable=False, index=True)
    due_at = Column(DateTime, nullable=True)

    assignment = relationship("Assignment", back_populates="overrides")
