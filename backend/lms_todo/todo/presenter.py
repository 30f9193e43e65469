"""View-model for a user's grouped to-do lists."""

from __future__ import annotations

from lms_todo.core.config import settings
from lms_todo.core.logging import get_logger
from lms_todo.db.shards import ShardSessions, relative_id_for
from lms_todo.schemas.todo import AssessmentRequestItem, AssignmentItem, QuizItem, TodoEntryOut
from lms_todo.security.permissions import MANAGE_GRADES, precalculate_permissions_for_courses
from lms_todo.todo.needs_query import UserLearningObjectScopes
from lms_todo.todo.options import (
    ContextRef,
    GradingOptions,
    ModerationOptions,
    PeerReviewOptions,
    SubmittingOptions,
    UngradedQuizOptions,
)

logger = get_logger(__name__)

NEEDS_GRADING_BADGE_CAP = 999


def _by_due_date(items: list) -> list:
    return sorted(items, key=lambda item: item.sort_key)


class AssignmentPresenter:
    """Display data for one assignment, sub-assignment or quiz on a list."""

    def __init__(self, item: AssignmentItem | QuizItem, purpose: str, default_shard_id: int):
        self.item = item
        self.purpose = purpose
        self.default_shard_id = default_shard_id

    def short_id(self, id_: int) -> int:
        return relative_id_for(id_, self.default_shard_id, self.default_shard_id)

    @property
    def title(self) -> str:
        return self.item.title

    @property
    def due_at(self):
        return self.item.due_at

    @property
    def context_id(self) -> int:
        return self.item.context_id

    @property
    def context_name(self) -> str:
        return self.item.context_name

    @property
    def short_context_name(self) -> str:
        return self.item.context_short_name or self.item.context_name

    @property
    def is_quiz(self) -> bool:
        return isinstance(self.item, QuizItem)

    @property
    def is_sub_assignment(self) -> bool:
        return isinstance(self.item, AssignmentItem) and self.item.is_sub_assignment

    @property
    def needs_grading_count(self) -> int:
        return getattr(self.item, "needs_grading_count", None) or 0

    @property
    def needs_grading_badge(self) -> str:
        if self.needs_grading_count > NEEDS_GRADING_BADGE_CAP:
            return f"{NEEDS_GRADING_BADGE_CAP}+"
        return str(self.needs_grading_count)

    @property
    def needs_grading_label(self) -> str:
        count = self.needs_grading_count
        if count > NEEDS_GRADING_BADGE_CAP:
            return f"More than {NEEDS_GRADING_BADGE_CAP} submissions need grading"
        if count == 1:
            return "1 submission needs grading"
        return f"{count} submissions need grading"

    @property
    def _course_path(self) -> str:
        return f"/courses/{self.short_id(self.item.context_id)}"

    @property
    def gradebook_path(self) -> str:
        assignment_id = self.item.parent_assignment_id if self.is_sub_assignment else self.item.id
        return f"{self._course_path}/gradebook/speed_grader?assignment_id={self.short_id(assignment_id)}"

    @property
    def moderate_path(self) -> str:
        return f"{self._course_path}/assignments/{self.short_id(self.item.id)}/moderate"

    @property
    def assignment_path(self) -> str:
        if self.is_quiz:
            return f"{self._course_path}/quizzes/{self.short_id(self.item.id)}"
        if self.is_sub_assignment:
            return f"{self._course_path}/assignments/{self.short_id(self.item.parent_assignment_id)}"
        return f"{self._course_path}/assignments/{self.short_id(self.item.id)}"

    @property
    def html_path(self) -> str:
        if self.purpose == "grading":
            return self.gradebook_path
        if self.purpose == "moderation":
            return self.moderate_path
        return self.assignment_path

    @property
    def asset_string(self) -> str:
        prefix = "quiz" if self.is_quiz else "assignment"
        return f"{prefix}_{self.short_id(self.item.id)}"

    @property
    def ignore_url(self) -> str:
        return f"{settings.API_PREFIX}/users/self/todo/{self.asset_string}/{self.purpose}?permanent=0"

    @property
    def ignore_title(self) -> str | None:
        return {
            "grading": "Ignore until new submission",
            "moderation": "Ignore until new mark",
            "submitting": "Ignore this assignment",
        }.get(self.purpose)

    @property
    def ignore_sr_message(self) -> str | None:
        return {
            "grading": f"Ignore {self.title} until new submission",
            "moderation": f"Ignore {self.title} until new mark",
            "submitting": f"Ignore {self.title}",
        }.get(self.purpose)

    @property
    def ignore_flash_message(self) -> str | None:
        return {
            "grading": "This item will reappear when a new submission is made.",
            "moderation": "This item will reappear when there are new grades to moderate.",
        }.get(self.purpose)

    @property
    def formatted_peer_review_due_date(self) -> str:
        due = getattr(self.item, "peer_reviews_due_at", None)
        return due.strftime("%b %d at %H:%M") if due else "No Due Date"

    def to_entry(self) -> TodoEntryOut:
        grading = self.purpose == "grading"
        return TodoEntryOut(
            type=self.purpose,
            kind=self.item.kind,
            id=self.short_id(self.item.id),
            title=self.title,
            context_type=self.item.context_type,
            context_id=self.short_id(self.item.context_id),
            context_name=self.context_name,
            due_at=self.due_at,
            needs_grading_count=self.needs_grading_count if grading else None,
            needs_grading_badge=self.needs_grading_badge if grading else None,
            needs_grading_label=self.needs_grading_label if grading else None,
            html_url=self.html_path,
            ignore_url=self.ignore_url,
            ignore_title=self.ignore_title,
            ignore_sr_message=self.ignore_sr_message,
            ignore_flash_message=self.ignore_flash_message,
        )


class AssessmentRequestPresenter:
    """Display data for a peer review the user owes."""

    def __init__(self, item: AssessmentRequestItem, default_shard_id: int):
        self.item = item
        self.default_shard_id = default_shard_id
        self.assignment_presenter = AssignmentPresenter(item.assignment, "reviewing", default_shard_id)

    @property
    def assignment(self) -> AssignmentItem:
        return self.item.assignment

    @property
    def context_id(self) -> int:
        return self.item.context_id

    @property
    def context_name(self) -> str:
        return self.assignment_presenter.context_name

    @property
    def short_context_name(self) -> str:
        return self.assignment_presenter.short_context_name

    @property
    def published(self) -> bool:
        return self.assignment.published

    @property
    def submission_path(self) -> str:
        short = self.assignment_presenter.short_id
        return (
            f"/courses/{short(self.assignment.context_id)}/assignments/{short(self.assignment.id)}"
            f"/peer_reviews/{short(self.item.id)}"
        )

    @property
    def ignore_url(self) -> str:
        short_id = self.assignment_presenter.short_id(self.item.id)
        return f"{settings.API_PREFIX}/users/self/todo/assessment_request_{short_id}/reviewing?permanent=0"

    @property
    def ignore_title(self) -> str:
        return "Ignore this assignment"

    @property
    def ignore_sr_message(self) -> str:
        return f"Ignore {self.assignment.title}"

    @property
    def ignore_flash_message(self) -> None:
        return None

    def to_entry(self) -> TodoEntryOut:
        short = self.assignment_presenter.short_id
        return TodoEntryOut(
            type="reviewing",
            kind=self.item.kind,
            id=short(self.item.id),
            title=self.assignment.title,
            context_type=self.item.context_type,
            context_id=short(self.item.context_id),
            context_name=self.context_name,
            due_at=self.item.due_at,
            html_url=self.submission_path,
            ignore_url=self.ignore_url,
            ignore_title=self.ignore_title,
            ignore_sr_message=self.ignore_sr_message,
            ignore_flash_message=self.ignore_flash_message,
        )


class ToDoListPresenter:
    """
    The four to-do categories of a user, ready for display.

    Each category is fetched with a generous limit; the view shows the first
    ``visible_limit`` entries and reports the rest as hidden. Grading entries are
    filtered with one bulk ``manage_grades`` lookup over every course involved.

    Args:
        shards: Request-scoped shard sessions
        user: Acting user, or None (all lists empty)
        contexts: Restrict every list to these courses/groups; None means all
    """

    ASSIGNMENT_LIMIT = settings.TODO_PRESENTER_FETCH_LIMIT
    VISIBLE_LIMIT = settings.TODO_VISIBLE_LIMIT

    def __init__(self, shards: ShardSessions, user, contexts: list[ContextRef] | None = None):
        self.shards = shards
        self.user = user
        self.contexts = contexts
        self.needs_grading: list[AssignmentPresenter] = []
        self.needs_moderation: list[AssignmentPresenter] = []
        self.needs_submitting: list[AssignmentPresenter] = []
        self.needs_reviewing: list[AssessmentRequestPresenter] = []
        self._hidden_count: int | None = None
        if user is not None:
            self._load()

    def _load(self) -> None:
        scopes = UserLearningObjectScopes(self.shards, self.user)
        limit = self.ASSIGNMENT_LIMIT
        contexts = self.contexts

        grading = scopes.assignments_needing_grading(GradingOptions(contexts=contexts, limit=limit))
        sub_grading = scopes.assignments_needing_grading(
            GradingOptions(contexts=contexts, limit=limit, is_sub_assignment=True)
        )
        if self._checkpoints_enabled_somewhere(sub_grading):
            grading = _by_due_date(grading + sub_grading)

        moderation = scopes.assignments_needing_moderation(ModerationOptions(contexts=contexts, limit=limit))

        submitting = list(
            scopes.assignments_needing_submitting(
                SubmittingOptions(contexts=contexts, limit=limit, include_ungraded=True)
            )
        )
        submitting += scopes.ungraded_quizzes(
            UngradedQuizOptions(contexts=contexts, limit=limit, needing_submitting=True)
        )
        sub_submitting = scopes.assignments_needing_submitting(
            SubmittingOptions(contexts=contexts, limit=limit, include_ungraded=True, is_sub_assignment=True)
        )
        if self._checkpoints_enabled_somewhere(sub_submitting):
            submitting += sub_submitting
        submitting = _by_due_date(submitting)

        reviews = scopes.submissions_needing_peer_review(PeerReviewOptions(contexts=contexts, limit=limit))
        reviews = [r for r in reviews if r.assignment.published]

        # Permissions for every course involved, not only the contexts handed in.
        course_ids = {item.context_id for item in [*grading, *moderation, *submitting, *reviews]}
        permissions = precalculate_permissions_for_courses(self.shards, self.user, course_ids, [MANAGE_GRADES])
        grading = [item for item in grading if permissions.get(item.context_id, {}).get(MANAGE_GRADES, False)]

        default_shard_id = self.shards.default_shard_id
        self.needs_grading = [AssignmentPresenter(i, "grading", default_shard_id) for i in grading]
        self.needs_moderation = [AssignmentPresenter(i, "moderation", default_shard_id) for i in moderation]
        self.needs_submitting = [AssignmentPresenter(i, "submitting", default_shard_id) for i in submitting]
        self.needs_reviewing = [AssessmentRequestPresenter(i, default_shard_id) for i in reviews]
        logger.debug(
            "todo_presenter_loaded",
            extra={
                "event": "todo_presenter_loaded",
                "user_id": self.user.id,
                "needs_grading": len(self.needs_grading),
                "needs_moderation": len(self.needs_moderation),
                "needs_submitting": len(self.needs_submitting),
                "needs_reviewing": len(self.needs_reviewing),
            },
        )

    @staticmethod
    def _checkpoints_enabled_somewhere(items: list) -> bool:
        return any(getattr(item, "discussion_checkpoints_enabled", False) for item in items)

    def any_assignments(self) -> bool:
        return self.user is not None and any(
            [self.needs_grading, self.needs_moderation, self.needs_submitting, self.needs_reviewing]
        )

    def show_context(self) -> bool:
        """False when there is a single context (no point naming it under each entry)."""
        return self.contexts is None or len(self.contexts) > 1

    @property
    def visible_limit(self) -> int:
        return self.VISIBLE_LIMIT

    def hidden_count_for(self, items: list) -> int:
        return max(0, len(items) - self.visible_limit)

    @property
    def hidden_count(self) -> int:
        if self._hidden_count is None:
            self._hidden_count = sum(
                self.hidden_count_for(items)
                for items in (self.needs_grading, self.needs_moderation, self.needs_submitting, self.needs_reviewing)
            )
        return self._hidden_count
