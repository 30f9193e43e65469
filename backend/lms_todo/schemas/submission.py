"""Pydantic schemas for submission JSON."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class SubmissionStatus(str, Enum):
    """Submission status, listed from highest to lowest precedence."""

    RESUBMITTED = "resubmitted"
    MISSING = "missing"
    LATE = "late"
    UNSUBMITTED = "unsubmitted"
    SUBMITTED = "submitted"


class GradingStatus(str, Enum):
    """Grading status, listed from highest to lowest precedence."""

    EXCUSED = "excused"
    NEEDS_REVIEW = "needs_review"
    NEEDS_GRADING = "needs_grading"
    GRADED = "graded"


SUBMISSION_INCLUDES = ("submission_status", "grading_status", "anonymous_id", "sub_assignment_submissions")


class SubAssignmentSubmissionOut(BaseModel):
    """Grading summary of one checkpoint of a checkpointed discussion."""

    id: int | None = None
    sub_assignment_tag: str | None = None
    user_id: int
    missing: bool = False
    late: bool = False
    excused: bool | None = None
    score: float | None = None
    grade: str | None = None
    entered_score: float | None = None
    entered_grade: str | None = None


class SubmissionOut(BaseModel):
    """Submission fields always present in the JSON."""

    id: int
    assignment_id: int
    course_id: int
    user_id: int | None = None
    workflow_state: str
    submission_type: str | None = None
    submitted_at: datetime | None = None
    cached_due_date: datetime | None = None
    posted_at: datetime | None = None
    score: float | None = None
    grade: str | None = None
    excused: bool | None = None
    attempt: int | None = None
    grade_matches_current_submission: bool = True
    late: bool = False
    missing: bool = False
    body: str | None = None
