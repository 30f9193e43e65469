"""Pydantic schemas for to-do list items and responses."""

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

# ============================================================================
# To-do items (query results; also the cached representation)
# ============================================================================


class TodoItemBase(BaseModel):
    """Fields shared by every to-do item. Ids are global."""

    id: int
    title: str
    context_type: Literal["Course", "Group"] = "Course"
    context_id: int
    context_name: str
    context_short_name: str | None = None
    due_at: datetime | None = None
    updated_at: datetime

    @property
    def sort_key(self) -> tuple[datetime, int]:
        return (self.due_at or self.updated_at, self.id)


class AssignmentItem(TodoItemBase):
    """Assignment or checkpoint sub-assignment.

    ``due_at`` is the user's own due date for student lists.
    """

    kind: Literal["Assignment", "SubAssignment"] = "Assignment"
    workflow_state: str = "published"
    submission_types: str | None = None
    points_possible: float | None = None
    peer_reviews_due_at: datetime | None = None
    parent_assignment_id: int | None = None
    sub_assignment_tag: str | None = None
    moderated_grading: bool = False
    discussion_checkpoints_enabled: bool = False
    needs_grading_count: int | None = None

    @property
    def published(self) -> bool:
        return self.workflow_state == "published"

    @property
    def is_sub_assignment(self) -> bool:
        return self.kind == "SubAssignment"


class QuizItem(TodoItemBase):
    kind: Literal["Quizzes::Quiz"] = "Quizzes::Quiz"
    quiz_type: str
    lock_at: datetime | None = None


class AssessmentRequestItem(TodoItemBase):
    """Peer review the user owes; ``due_at`` is the reviewer's cached due date."""

    kind: Literal["AssessmentRequest"] = "AssessmentRequest"
    assignment: AssignmentItem
    submission_id: int
    reviewee_id: int
    workflow_state: str = "assigned"


class DiscussionTopicItem(TodoItemBase):
    kind: Literal["DiscussionTopic"] = "DiscussionTopic"
    topic_type: str | None = None
    todo_date: datetime | None = None


class WikiPageItem(TodoItemBase):
    kind: Literal["WikiPage"] = "WikiPage"
    todo_date: datetime | None = None


TodoItem = Annotated[
    Union[AssignmentItem, QuizItem, AssessmentRequestItem, DiscussionTopicItem, WikiPageItem],
    Field(discriminator="kind"),
]

todo_items_adapter = TypeAdapter(list[TodoItem])


def dump_items(items: list) -> list[dict]:
    return todo_items_adapter.dump_python(items, mode="json")


def load_items(data: list[dict]) -> list:
    return todo_items_adapter.validate_python(data)


# ============================================================================
# API responses
# ============================================================================


class TodoEntryOut(BaseModel):
    """One rendered to-do entry."""

    type: Literal["grading", "moderation", "submitting", "reviewing"]
    kind: str
    id: int
    title: str
    context_type: str
    context_id: int
    context_name: str | None = None
    due_at: datetime | None = None
    needs_grading_count: int | None = None
    needs_grading_badge: str | None = None
    needs_grading_label: str | None = None
    html_url: str
    ignore_url: str
    ignore_title: str | None = None
    ignore_sr_message: str | None = None
    ignore_flash_message: str | None = None


class TodoListResponse(BaseModel):
    """Grouped to-do lists with visible/hidden split."""

    needs_grading: list[TodoEntryOut]
    needs_moderation: list[TodoEntryOut]
    needs_submitting: list[TodoEntryOut]
    needs_reviewing: list[TodoEntryOut]
    visible_limit: int
    hidden_counts: dict[str, int]
    hidden_count: int
    show_context: bool
    any_assignments: bool


class TodoItemCountResponse(BaseModel):
    needs_grading_count: int
    assignments_needing_submitting: int


class IgnoreResponse(BaseModel):
    asset_type: str
    asset_id: int
    purpose: str
    permanent: bool
