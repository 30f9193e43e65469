"""Quiz and quiz submission models."""

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from lms_todo.common.clock import utcnow
from lms_todo.db.base import Base, IdType

UNGRADED_QUIZ_TYPES = ("practice_quiz", "survey")
COMPLETED_QUIZ_SUBMISSION_STATES = ("complete", "pending_review")


class Quiz(Base):
    """Classic quiz."""

    __tablename__ = "quizzes"

    id = Column(IdType, primary_key=True, autoincrement=True)
    context_id = Column(IdType, ForeignKey("courses.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    quiz_type = Column(String(50), nullable=False, default="assignment")
    workflow_state = Column(String(50), nullable=False, default="available")
    due_at = Column(DateTime, nullable=True)
    unlock_at = Column(DateTime, nullable=True)
    lock_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    context = relationship("Course")


class QuizSubmission(Base):
    """A user's attempt at a quiz."""

    __tablename__ = "quiz_submissions"
    __table_args__ = (UniqueConstraint("quiz_id", "user_id", name="uq_quiz_submissions_quiz_user"),)

    id = Column(IdType, primary_key=True, autoincrement=True)
    quiz_id = Column(IdType, ForeignKey("quizzes.id"), nullable=False, index=True)
    user_id = Column(IdType, nullable=False, index=True)
    workflow_state = Column(String(50), nullable=False, default="untaken")
