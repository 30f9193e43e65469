"""Submission JSON for the submissions API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from lms_todo.common.clock import utcnow
from lms_todo.db.shards import relative_id_for, shard_of
from lms_todo.models.assignment import Assignment
from lms_todo.models.submission import Submission
from lms_todo.schemas.submission import GradingStatus, SubAssignmentSubmissionOut, SubmissionOut, SubmissionStatus
from lms_todo.security.permissions import MANAGE_GRADES, READ_AS_ADMIN, VIEW_ALL_GRADES, grants_any_right

# Quiz-based submissions keep the student's answers summary in ``body``.
QUIZ_SUBMISSION_TYPE = "online_quiz"


def is_submitted(submission: Submission) -> bool:
    return submission.submission_type is not None or submission.workflow_state not in ("unsubmitted", "deleted")


def is_late(submission: Submission) -> bool:
    return bool(
        submission.submission_type is not None
        and submission.submitted_at is not None
        and submission.cached_due_date is not None
        and submission.submitted_at > submission.cached_due_date
    )


def is_missing(submission: Submission, assignment: Assignment, now: datetime | None = None) -> bool:
    now = now or utcnow()
    return bool(
        submission.cached_due_date is not None
        and submission.cached_due_date < now
        and submission.submission_type is None
        and not submission.excused
        and not submission.graded
        and assignment.expects_submission
    )


def is_resubmitted(submission: Submission) -> bool:
    return submission.needs_grading and submission.grade_matches_current_submission is False


def submission_status(submission: Submission, assignment: Assignment, now: datetime | None = None) -> SubmissionStatus:
    """First matching status in precedence order."""
    if is_resubmitted(submission):
        return SubmissionStatus.RESUBMITTED
    if is_missing(submission, assignment, now):
        return SubmissionStatus.MISSING
    if is_late(submission):
        return SubmissionStatus.LATE
    if not is_submitted(submission):
        return SubmissionStatus.UNSUBMITTED
    return SubmissionStatus.SUBMITTED


def grading_status(submission: Submission) -> GradingStatus | None:
    """First matching status in precedence order; None when nothing applies."""
    if submission.excused:
        return GradingStatus.EXCUSED
    if submission.workflow_state == "pending_review":
        return GradingStatus.NEEDS_REVIEW
    if submission.needs_grading:
        return GradingStatus.NEEDS_GRADING
    if submission.graded:
        return GradingStatus.GRADED
    return None


def sub_assignment_submissions(
    db: Session, parent: Submission, assignment: Assignment, now: datetime | None = None
) -> list[tuple[Assignment, Submission | None]]:
    """The student's submission (or None) for each checkpoint of ``assignment``."""
    if not assignment.has_sub_assignments:
        return []
    checkpoints = sorted(
        (a for a in assignment.sub_assignments if a.workflow_state != "deleted"),
        key=lambda a: (a.sub_assignment_tag or "", a.id),
    )
    if not checkpoints:
        return []
    submissions = {
        s.assignment_id: s
        for s in db.scalars(
            select(Submission).where(
                Submission.assignment_id.in_([c.id for c in checkpoints]),
                Submission.user_id == parent.user_id,
            )
        )
    }
    return [(checkpoint, submissions.get(checkpoint.id)) for checkpoint in checkpoints]


def _sub_assignment_json(
    checkpoint: Assignment, submission: Submission | None, user_id: int, now: datetime
) -> dict[str, Any]:
    if submission is None:
        out = SubAssignmentSubmissionOut(sub_assignment_tag=checkpoint.sub_assignment_tag, user_id=user_id)
    else:
        out = SubAssignmentSubmissionOut(
            id=submission.id,
            sub_assignment_tag=checkpoint.sub_assignment_tag,
            user_id=user_id,
            missing=is_missing(submission, checkpoint, now),
            late=is_late(submission),
            excused=submission.excused,
            score=submission.score,
            grade=submission.grade,
            entered_score=submission.score,
            entered_grade=submission.grade,
        )
    return out.model_dump(mode="json")


def can_view_grades(caller, submission: Submission, assignment: Assignment) -> bool:
    caller_id = relative_id_for(caller.id, shard_of(caller), shard_of(submission))
    if caller_id == submission.user_id:
        return True
    return grants_any_right(caller, assignment.context, VIEW_ALL_GRADES, MANAGE_GRADES)


def submission_json(
    submission: Submission,
    assignment: Assignment,
    caller,
    includes: list[str] | tuple[str, ...] = (),
    anonymize_user_id: bool = False,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Serialize a submission the way the submissions API returns it.

    Args:
        submission: Submission to serialize
        assignment: Its assignment (the checkpoint parent for checkpointed discussions)
        caller: User the JSON is rendered for
        includes: Optional fields ("submission_status", "grading_status", "anonymous_id",
            "sub_assignment_submissions")
        anonymize_user_id: Replace ``user_id`` with ``anonymous_id``
        now: Reference time for missing checks

    Returns:
        JSON-compatible dict.
    """
    now = now or utcnow()
    db = Session.object_session(submission)

    body = submission.body
    if submission.submission_type == QUIZ_SUBMISSION_TYPE and not can_view_grades(caller, submission, assignment):
        body = None

    json = SubmissionOut(
        id=submission.id,
        assignment_id=submission.assignment_id,
        course_id=submission.course_id,
        user_id=submission.user_id,
        workflow_state=submission.workflow_state,
        submission_type=submission.submission_type,
        submitted_at=submission.submitted_at,
        cached_due_date=submission.cached_due_date,
        posted_at=submission.posted_at,
        score=submission.score,
        grade=submission.grade,
        excused=submission.excused,
        attempt=submission.attempt,
        grade_matches_current_submission=submission.grade_matches_current_submission,
        late=is_late(submission),
        missing=is_missing(submission, assignment, now),
        body=body,
    ).model_dump(mode="json")

    if "submission_status" in includes:
        json["submission_status"] = submission_status(submission, assignment, now).value
    if "grading_status" in includes:
        status = grading_status(submission)
        json["grading_status"] = status.value if status else None

    if anonymize_user_id or (
        "anonymous_id" in includes and grants_any_right(caller, assignment.context, READ_AS_ADMIN)
    ):
        json["anonymous_id"] = submission.anonymous_id
    if anonymize_user_id:
        json.pop("user_id")

    if "sub_assignment_submissions" in includes:
        checkpoints = sub_assignment_submissions(db, submission, assignment, now)
        json["has_sub_assignment_submissions"] = bool(assignment.has_sub_assignments)
        json["sub_assignment_submissions"] = [
            _sub_assignment_json(checkpoint, sub, submission.user_id, now) for checkpoint, sub in checkpoints
        ]
        # The gradebook reads needs-grading off the parent submission.
        if not submission.needs_grading:
            needing = next((sub for _, sub in checkpoints if sub is not None and sub.needs_grading), None)
            if needing is not None:
                json["workflow_state"] = "pending_review"
                json["submission_type"] = needing.submission_type

    return json
