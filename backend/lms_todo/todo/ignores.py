"""Ignoring to-do items and clearing ignores when new work arrives.

Ignore rows live on the shard of the ignored asset, with ``user_id`` relative to
that shard. Every change to a user's ignores touches the user, which bumps the
to-do batch token and so invalidates the user's cached lists.
"""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from lms_todo.cache.todo_cache import bump_batch_token
from lms_todo.common.clock import utcnow
from lms_todo.core.logging import get_logger
from lms_todo.db.shards import ShardSessions, global_id, global_id_for, relative_id_for, shard_of
from lms_todo.models.assignment import Assignment
from lms_todo.models.discussion import DiscussionTopic
from lms_todo.models.enrollment import GRADER_ENROLLMENT_TYPES, Enrollment
from lms_todo.models.ignore import Ignore
from lms_todo.models.quiz import Quiz
from lms_todo.models.submission import AssessmentRequest, ProvisionalGrade, Submission
from lms_todo.models.user import User
from lms_todo.models.wiki_page import WikiPage
from lms_todo.services.users import find_user
from lms_todo.todo.kinds import ObjectKind, Purpose, UnknownObjectKindError

logger = get_logger(__name__)

ASSET_MODELS = {
    ObjectKind.ASSIGNMENT: Assignment,
    ObjectKind.QUIZ: Quiz,
    ObjectKind.ASSESSMENT_REQUEST: AssessmentRequest,
    ObjectKind.DISCUSSION_TOPIC: DiscussionTopic,
    ObjectKind.WIKI_PAGE: WikiPage,
}


def asset_type_for(asset) -> str:
    for kind, model in ASSET_MODELS.items():
        if isinstance(asset, model):
            return kind.asset_type
    raise UnknownObjectKindError(f"Cannot ignore {type(asset).__name__}")


def touch_user(user: User) -> None:
    """Mark the user changed and invalidate every cached to-do list of the user."""
    db = Session.object_session(user)
    user.updated_at = utcnow()
    db.commit()
    bump_batch_token(global_id(user))


def ignore_item(user: User, asset, purpose: Purpose | str, permanent: bool = False) -> Ignore:
    """
    Hide ``asset`` from the user's ``purpose`` list.

    Upserts on (asset, user, purpose); an existing row only has ``permanent`` updated.
    A non-permanent ignore is cleared by the next triggering change (new submission
    for grading, new provisional grade for moderation).
    """
    purpose = Purpose(purpose)
    db = Session.object_session(asset)
    asset_type = asset_type_for(asset)
    user_id = relative_id_for(user.id, shard_of(user), shard_of(asset))

    ignore = db.scalar(
        select(Ignore).where(
            Ignore.asset_id == asset.id,
            Ignore.asset_type == asset_type,
            Ignore.user_id == user_id,
            Ignore.purpose == purpose.value,
        )
    )
    if ignore is None:
        ignore = Ignore(asset_type=asset_type, asset_id=asset.id, user_id=user_id, purpose=purpose.value)
        db.add(ignore)
    ignore.permanent = permanent
    db.commit()

    logger.info(
        "todo_item_ignored",
        extra={
            "event": "todo_item_ignored",
            "user_id": global_id(user),
            "asset_type": asset_type,
            "asset_id": global_id(asset),
            "purpose": purpose.value,
            "permanent": permanent,
        },
    )
    touch_user(user)
    return ignore


def _touch_users(shards: ShardSessions, user_global_ids: set[int]) -> None:
    for user_global_id in sorted(user_global_ids):
        user = find_user(shards, user_global_id)
        if user is not None:
            touch_user(user)


def clear_ignores(shards: ShardSessions, asset, purpose: Purpose | str) -> set[int]:
    """
    Delete the non-permanent ignores of ``asset`` for ``purpose`` and touch their users.

    Returns:
        Global ids of the users whose ignores were cleared.
    """
    purpose = Purpose(purpose)
    db = Session.object_session(asset)
    shard_id = shard_of(asset)
    asset_type = asset_type_for(asset)
    conditions = (
        Ignore.asset_id == asset.id,
        Ignore.asset_type == asset_type,
        Ignore.purpose == purpose.value,
        Ignore.permanent.is_(False),
    )
    user_ids = set(db.scalars(select(Ignore.user_id).where(*conditions)))
    if not user_ids:
        return set()
    db.execute(delete(Ignore).where(*conditions))
    db.commit()

    cleared = {global_id_for(user_id, shard_id) for user_id in user_ids}
    logger.info(
        "todo_ignores_cleared",
        extra={
            "event": "todo_ignores_cleared",
            "asset_type": asset_type,
            "asset_id": global_id(asset),
            "purpose": purpose.value,
            "users": len(cleared),
        },
    )
    _touch_users(shards, cleared)
    return cleared


def touch_graders(shards: ShardSessions, course_id: int, db: Session) -> None:
    """Touch every active teacher and TA of a course so their grading lists refresh."""
    shard_id = db.info["shard_id"]
    grader_ids = db.scalars(
        select(Enrollment.user_id).where(
            Enrollment.course_id == course_id,
            Enrollment.workflow_state == "active",
            Enrollment.type.in_(GRADER_ENROLLMENT_TYPES),
        )
    )
    _touch_users(shards, {global_id_for(user_id, shard_id) for user_id in grader_ids})


def _touch_student(shards: ShardSessions, submission: Submission) -> None:
    _touch_users(shards, {global_id_for(submission.user_id, shard_of(submission))})


def on_submission_submitted(shards: ShardSessions, submission: Submission) -> None:
    """
    A new submission puts its assignment back on ignored grading lists.

    The student leaves the submitting list and graders get a new item to grade, so
    both sides are touched.
    """
    db = Session.object_session(submission)
    assignment = db.get(Assignment, submission.assignment_id)
    clear_ignores(shards, assignment, Purpose.GRADING)
    _touch_student(shards, submission)
    touch_graders(shards, assignment.context_id, db)


def on_submission_graded(shards: ShardSessions, submission: Submission) -> None:
    """A grade change moves the submission off grading lists and changes the student's view."""
    db = Session.object_session(submission)
    assignment = db.get(Assignment, submission.assignment_id)
    logger.info(
        "todo_submission_graded",
        extra={
            "event": "todo_submission_graded",
            "submission_id": global_id(submission),
            "assignment_id": global_id(assignment),
        },
    )
    _touch_student(shards, submission)
    touch_graders(shards, assignment.context_id, db)


def on_provisional_grade_created(shards: ShardSessions, provisional_grade: ProvisionalGrade) -> None:
    """A new provisional mark puts the assignment back on ignored moderation lists."""
    db = Session.object_session(provisional_grade)
    submission = db.get(Submission, provisional_grade.submission_id)
    assignment = db.get(Assignment, submission.assignment_id)
    clear_ignores(shards, assignment, Purpose.MODERATION)
    if assignment.final_grader_id is not None:
        _touch_users(shards, {global_id_for(assignment.final_grader_id, shard_of(assignment))})
