"""Reusable SQL conditions for the to-do queries."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, exists, false, func, or_, select, true
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from lms_todo.models.assignment import NON_SUBMISSION_TYPES, ONLINE_SUBMISSION_TYPES, Assignment
from lms_todo.models.course import Account, Course
from lms_todo.models.ignore import Ignore
from lms_todo.models.submission import NEEDS_GRADING_STATES, Submission


def not_ignored_by(model, asset_type: str, user_id: int, purpose: str) -> ColumnElement[bool]:
    """Exclude rows of ``model`` the user ignored for ``purpose``."""
    return ~exists().where(
        Ignore.asset_type == asset_type,
        Ignore.asset_id == model.id,
        Ignore.user_id == user_id,
        Ignore.purpose == purpose,
    )


def needs_grading_conditions(submission=Submission) -> ColumnElement[bool]:
    """SQL twin of ``Submission.needs_grading``; works on aliases too."""
    return and_(
        submission.submission_type.isnot(None),
        or_(submission.excused.is_(False), submission.excused.is_(None)),
        or_(
            submission.workflow_state == "pending_review",
            and_(
                submission.workflow_state.in_(NEEDS_GRADING_STATES),
                or_(submission.score.is_(None), submission.grade_matches_current_submission.is_(False)),
            ),
        ),
    )


def expecting_submission() -> ColumnElement[bool]:
    return and_(
        Assignment.submission_types.isnot(None),
        Assignment.submission_types.notin_(NON_SUBMISSION_TYPES),
    )


def submittable() -> ColumnElement[bool]:
    return or_(*(Assignment.submission_types.like(f"%{t}%") for t in ONLINE_SUBMISSION_TYPES))


def not_locked(model, now: datetime) -> ColumnElement[bool]:
    return and_(
        or_(model.unlock_at.is_(None), model.unlock_at < now),
        or_(model.lock_at.is_(None), model.lock_at > now),
    )


def between(column, after: datetime | None, before: datetime | None) -> ColumnElement[bool]:
    """``after < column <= before``; a missing bound is open."""
    conditions = []
    if after is not None:
        conditions.append(column > after)
    if before is not None:
        conditions.append(column <= before)
    return and_(true(), *conditions)


def for_courses_and_groups(model, course_ids: list[int], group_ids: list[int]) -> ColumnElement[bool]:
    clauses = []
    if course_ids:
        clauses.append(and_(model.context_type == "Course", model.context_id.in_(course_ids)))
    if group_ids:
        clauses.append(and_(model.context_type == "Group", model.context_id.in_(group_ids)))
    return or_(false(), *clauses)


def ordering(due_column, model) -> tuple:
    """Due date, falling back to last update, then id for stability."""
    return (func.coalesce(due_column, model.updated_at), model.id)


def partition_by_checkpoints(db: Session, course_ids: list[int]) -> tuple[list[int], list[int]]:
    """Split course ids into (checkpoints enabled, checkpoints disabled) by owning account."""
    if not course_ids:
        return [], []
    rows = db.execute(
        select(Course.id, Account.discussion_checkpoints_enabled)
        .join(Account, Account.id == Course.account_id)
        .where(Course.id.in_(course_ids))
    ).all()
    enabled = sorted(course_id for course_id, flag in rows if flag)
    disabled = sorted(course_id for course_id, flag in rows if not flag)
    return enabled, disabled


def checkpoint_filter(is_sub_assignment: bool, enabled: list[int], disabled: list[int]) -> ColumnElement[bool]:
    """
    Keep each checkpointed discussion on exactly one list.

    Sub-assignments only count in courses with checkpoints enabled; there the parent
    assignment (``has_sub_assignments``) is left out.
    """
    if is_sub_assignment:
        return and_(Assignment.type == "SubAssignment", Assignment.context_id.in_(enabled))
    return and_(
        Assignment.type == "Assignment",
        or_(
            and_(Assignment.context_id.in_(enabled), Assignment.has_sub_assignments.is_(False)),
            Assignment.context_id.in_(disabled),
        ),
    )


def announcement_expired(model, now: datetime) -> ColumnElement[bool]:
    return and_(
        model.type.isnot(None),
        model.type == "Announcement",
        model.lock_at.isnot(None),
        model.lock_at < now,
    )

