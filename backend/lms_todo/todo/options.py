"""Options accepted by the to-do list queries, one model per query kind."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field

from lms_todo.common.clock import utcnow
from lms_todo.core.config import settings


class ContextRef(BaseModel):
    """Reference to a course or group; ``id`` is local to the user's shard or global."""

    model_config = ConfigDict(frozen=True)

    context_type: Literal["Course", "Group"]
    id: int

    @classmethod
    def from_asset_string(cls, asset_string: str) -> ContextRef:
        prefix, _, raw_id = asset_string.partition("_")
        if prefix not in ("course", "group") or not raw_id.isdigit():
            raise ValueError(f"Invalid context code: {asset_string!r}")
        return cls(context_type="Course" if prefix == "course" else "Group", id=int(raw_id))

    @property
    def asset_string(self) -> str:
        return f"{self.context_type.lower()}_{self.id}"


class ScopeOptions(BaseModel):
    """Options shared by every to-do query.

    ``course_ids``/``group_ids``/``contexts`` narrow the default scope; an empty list
    means "nothing requested" and yields an empty result. ``limit=None`` is unlimited.
    """

    model_config = ConfigDict(extra="forbid")

    limit: int | None = Field(default_factory=lambda: settings.TODO_DEFAULT_LIMIT, ge=0)
    scope_only: bool = False
    course_ids: list[int] | None = None
    group_ids: list[int] | None = None
    contexts: list[ContextRef] | None = None
    include_concluded: bool = False
    include_ignored: bool = False
    include_ungraded: bool = False

    def cache_params(self) -> dict[str, Any]:
        """Options as cache-key input; id filters are sets, so their order is dropped."""
        params = self.model_dump(mode="json")
        for name in ("course_ids", "group_ids"):
            if params[name] is not None:
                params[name] = sorted(set(params[name]))
        if params["contexts"] is not None:
            params["contexts"] = sorted({(c["context_type"], c["id"]) for c in params["contexts"]})
        return params


class DueWindowMixin(BaseModel):
    """``due_after``/``due_before`` default to a window around the query time."""

    DUE_AFTER_OFFSET: ClassVar[timedelta | None] = timedelta(weeks=-2)
    DUE_BEFORE_OFFSET: ClassVar[timedelta | None] = timedelta(weeks=2)

    due_after: datetime | None = None
    due_before: datetime | None = None

    def due_window(self, now: datetime | None = None) -> tuple[datetime | None, datetime | None]:
        now = now or utcnow()
        after = self.due_after
        if after is None and self.DUE_AFTER_OFFSET is not None:
            after = now + self.DUE_AFTER_OFFSET
        before = self.due_before
        if before is None and self.DUE_BEFORE_OFFSET is not None:
            before = now + self.DUE_BEFORE_OFFSET
        return after, before


class StudentAssignmentOptions(DueWindowMixin, ScopeOptions):
    include_locked: bool = False
    is_sub_assignment: bool = False


class SubmittingOptions(StudentAssignmentOptions):
    DUE_AFTER_OFFSET: ClassVar[timedelta | None] = timedelta(weeks=-4)
    DUE_BEFORE_OFFSET: ClassVar[timedelta | None] = timedelta(weeks=1)


class GradingOptions(ScopeOptions):
    is_sub_assignment: bool = False


class ModerationOptions(ScopeOptions):
    pass


class UngradedQuizOptions(DueWindowMixin, ScopeOptions):
    DUE_AFTER_OFFSET: ClassVar[timedelta | None] = timedelta(0)
    DUE_BEFORE_OFFSET: ClassVar[timedelta | None] = timedelta(weeks=1)

    needing_submitting: bool = False
    include_locked: bool = False


class PeerReviewOptions(DueWindowMixin, ScopeOptions):
    pass


class ViewingOptions(ScopeOptions):
    """Topics and pages have no default window: both bounds are required."""

    due_after: datetime
    due_before: datetime
