"""Conversion of ORM rows into to-do items (global ids)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from lms_todo.db.shards import global_id_for
from lms_todo.models.assignment import Assignment
from lms_todo.models.course import Course, Group
from lms_todo.models.discussion import DiscussionTopic
from lms_todo.models.quiz import Quiz
from lms_todo.models.submission import AssessmentRequest
from lms_todo.models.wiki_page import WikiPage
from lms_todo.schemas.todo import AssessmentRequestItem, AssignmentItem, DiscussionTopicItem, QuizItem, WikiPageItem

_UNSET = object()


def _context_fields(context, context_type: str, shard_id: int, user) -> dict:
    return {
        "context_type": context_type,
        "context_id": global_id_for(context.id, shard_id),
        "context_name": context.nickname_for(user),
        "context_short_name": context.nickname_for(user, short=True),
    }


def assignment_item(
    assignment: Assignment,
    shard_id: int,
    user,
    *,
    due_at: datetime | None | object = _UNSET,
    needs_grading_count: int | None = None,
) -> AssignmentItem:
    """``due_at`` overrides the assignment's own due date (student override)."""
    return AssignmentItem(
        kind=assignment.type,
        id=global_id_for(assignment.id, shard_id),
        title=assignment.title,
        due_at=assignment.due_at if due_at is _UNSET else due_at,
        updated_at=assignment.updated_at,
        workflow_state=assignment.workflow_state,
        submission_types=assignment.submission_types,
        points_possible=assignment.points_possible,
        peer_reviews_due_at=assignment.peer_reviews_due_at,
        parent_assignment_id=(
            global_id_for(assignment.parent_assignment_id, shard_id) if assignment.parent_assignment_id else None
        ),
        sub_assignment_tag=assignment.sub_assignment_tag,
        moderated_grading=assignment.moderated_grading,
        discussion_checkpoints_enabled=assignment.discussion_checkpoints_enabled,
        needs_grading_count=needs_grading_count,
        **_context_fields(assignment.context, "Course", shard_id, user),
    )


def quiz_item(quiz: Quiz, shard_id: int, user) -> QuizItem:
    return QuizItem(
        id=global_id_for(quiz.id, shard_id),
        title=quiz.title,
        due_at=quiz.due_at,
        updated_at=quiz.updated_at,
        quiz_type=quiz.quiz_type,
        lock_at=quiz.lock_at,
        **_context_fields(quiz.context, "Course", shard_id, user),
    )


def assessment_request_item(request: AssessmentRequest, shard_id: int, user) -> AssessmentRequestItem:
    assignment = request.asset.assignment
    return AssessmentRequestItem(
        id=global_id_for(request.id, shard_id),
        title=assignment.title,
        due_at=request.assessor_asset.cached_due_date,
        updated_at=request.updated_at,
        assignment=assignment_item(assignment, shard_id, user),
        submission_id=global_id_for(request.asset_id, shard_id),
        reviewee_id=global_id_for(request.user_id, shard_id),
        workflow_state=request.workflow_state,
        **_context_fields(assignment.context, "Course", shard_id, user),
    )


def load_contexts(db: Session, rows) -> dict[tuple[str, int], object]:
    """Bulk-load the courses and groups polymorphic rows (topics, pages) belong to."""
    course_ids = {row.context_id for row in rows if row.context_type == "Course"}
    group_ids = {row.context_id for row in rows if row.context_type == "Group"}
    contexts: dict[tuple[str, int], object] = {}
    if course_ids:
        for course in db.scalars(select(Course).where(Course.id.in_(course_ids))):
            contexts[("Course", course.id)] = course
    if group_ids:
        for group in db.scalars(select(Group).where(Group.id.in_(group_ids))):
            contexts[("Group", group.id)] = group
    return contexts


def discussion_topic_item(topic: DiscussionTopic, context, shard_id: int, user) -> DiscussionTopicItem:
    return DiscussionTopicItem(
        id=global_id_for(topic.id, shard_id),
        title=topic.title,
        due_at=topic.todo_date,
        updated_at=topic.updated_at,
        topic_type=topic.type,
        todo_date=topic.todo_date,
        **_context_fields(context, topic.context_type, shard_id, user),
    )


def wiki_page_item(page: WikiPage, context, shard_id: int, user) -> WikiPageItem:
    return WikiPageItem(
        id=global_id_for(page.id, shard_id),
        title=page.title,
        due_at=page.todo_date,
        updated_at=page.updated_at,
        todo_date=page.todo_date,
        **_context_fields(context, page.context_type, shard_id, user),
    )
