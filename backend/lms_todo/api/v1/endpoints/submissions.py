"""Submission endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Query
from sqlalchemy import select

from lms_todo.core.app_exceptions import forbidden, not_found
from lms_todo.core.dependencies import CurrentUser, Shards
from lms_todo.db.shards import local_id_for, relative_id_for, shard_id_for
from lms_todo.models.assignment import Assignment
from lms_todo.models.course import Course
from lms_todo.models.submission import Submission
from lms_todo.services.submission_json import can_view_grades, submission_json

router = APIRouter()


@router.get("/courses/{course_id}/assignments/{assignment_id}/submissions/{user_id}")
def get_submission(
    course_id: int,
    assignment_id: int,
    user_id: int,
    shards: Shards,
    current_user: CurrentUser,
    include: Annotated[list[str] | None, Query(alias="include[]")] = None,
    anonymize_user_id: bool = False,
) -> dict[str, Any]:
    """
    A student's submission for an assignment.

    Visible to the student and to users who can view all grades in the course.
    """
    shard_id = shard_id_for(course_id, shards.default_shard_id)
    if shard_id not in shards.registry.shard_ids:
        raise not_found("Course")
    db = shards.session_for(shard_id)

    course = db.get(Course, local_id_for(course_id))
    if course is None:
        raise not_found("Course")
    assignment = db.get(Assignment, relative_id_for(assignment_id, shards.default_shard_id, shard_id))
    if assignment is None or assignment.context_id != course.id or assignment.workflow_state == "deleted":
        raise not_found("Assignment")

    student_id = relative_id_for(user_id, shards.default_shard_id, shard_id)
    submission = db.scalar(
        select(Submission).where(Submission.assignment_id == assignment.id, Submission.user_id == student_id)
    )
    if submission is None:
        raise not_found("Submission")
    if not can_view_grades(current_user, submission, assignment):
        raise forbidden()

    return submission_json(
        submission,
        assignment,
        current_user,
        includes=include or [],
        anonymize_user_id=anonymize_user_id,
    )
