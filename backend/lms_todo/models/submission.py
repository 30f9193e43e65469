"""Submission, provisional grade and peer-review request models."""

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from lms_todo.common.clock import utcnow
from lms_todo.db.base import Base, IdType

NEEDS_GRADING_STATES = ("submitted", "graded")
ACTIVE_SUBMISSION_STATES = ("unsubmitted", "submitted", "pending_review", "graded")


class Submission(Base):
    """A student's submission for one assignment."""

    __tablename__ = "submissions"

    id = Column(IdType, primary_key=True, autoincrement=True)
    assignment_id = Column(IdType, ForeignKey("assignments.id"), nullable=False, index=True)
    user_id = Column(IdType, nullable=False, index=True)
    course_id = Column(IdType, ForeignKey("courses.id"), nullable=False, index=True)
    workflow_state = Column(String(50), nullable=False, default="unsubmitted")
    submission_type = Column(String(50), nullable=True)
    submitted_at = Column(DateTime, nullable=True)
    score = Column(Float, nullable=True)
    grade = Column(String(50), nullable=True)
    excused = Column(Boolean, nullable=True)
    grade_matches_current_submission = Column(Boolean, nullable=False, default=True)
    cached_due_date = Column(DateTime, nullable=True)
    posted_at = Column(DateTime, nullable=True)
    body = Column(Text, nullable=True)
    attempt = Column(Integer, nullable=True)
    anonymous_id = Column(String(5), nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    assignment = relationship("Assignment")
    provisional_grades = relationship("ProvisionalGrade", back_populates="submission")

    @property
    def active(self) -> bool:
        return self.workflow_state != "deleted"

    @property
    def needs_grading(self) -> bool:
        """Python twin of ``lms_todo.todo.scopes.needs_grading_conditions``."""
        if self.submission_type is None or self.excused:
            return False
        if self.workflow_state == "pending_review":
            return True
        return self.workflow_state in NEEDS_GRADING_STATES and (
            self.score is None or not self.grade_matches_current_submission
        )

    @property
    def graded(self) -> bool:
        return bool(self.excused) or (self.score is not None and self.workflow_state == "graded")


class ProvisionalGrade(Base):
    """Moderated-grading provisional grade given by one scorer."""

    __tablename__ = "provisional_grades"

    id = Column(IdType, primary_key=True, autoincrement=True)
    submission_id = Column(IdType, ForeignKey("submissions.id"), nullable=False, index=True)
    scorer_id = Column(IdType, nullable=False)
    score = Column(Float, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    submission = relationship("Submission", back_populates="provisional_grades")


class AssessmentRequest(Base):
    """Peer-review request: ``assessor_id`` reviews the submission ``asset_id``."""

    __tablename__ = "assessment_requests"

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(IdType, nullable=False, index=True)
    asset_id = Column(IdType, ForeignKey("submissions.id"), nullable=False, index=True)
    assessor_asset_id = Column(IdType, ForeignKey("submissions.id"), nullable=False)
    assessor_id = Column(IdType, nullable=False, index=True)
    workflow_state = Column(String(50), nullable=False, default="assigned")
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    asset = relationship("Submission", foreign_keys=[asset_id])
    assessor_asset = relationship("Submission", foreign_keys=[assessor_asset_id])
