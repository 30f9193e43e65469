"""Resolve which courses and groups a to-do query covers.

All ids handed in and out are relative to the user's home shard (local ids there,
global ids elsewhere); ``ResolvedScope.by_shard`` converts them into per-shard local
id lists for the fan-out.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from lms_todo.core.logging import get_logger
from lms_todo.db.shards import (
    ShardSessions,
    global_id_for,
    partition_by_shard,
    relative_id_for,
    shard_of,
)
from lms_todo.models.course import Course, CourseWorkflowState, Group, GroupMembership
from lms_todo.models.enrollment import STUDENT_ENROLLMENT_TYPES, Enrollment
from lms_todo.security.permissions import course_ids_granting
from lms_todo.todo.options import ContextRef

logger = get_logger(__name__)

STUDENT = "student"


@dataclass(frozen=True)
class ShardScope:
    course_ids: list[int] = field(default_factory=list)
    group_ids: list[int] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.course_ids and not self.group_ids


@dataclass(frozen=True)
class ResolvedScope:
    """Course and group ids (global) a query may touch."""

    home_shard_id: int
    course_ids: list[int] = field(default_factory=list)
    group_ids: list[int] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.course_ids and not self.group_ids

    def by_shard(self) -> dict[int, ShardScope]:
        """``{shard_id: ShardScope}`` with local ids, ordered by shard id."""
        courses = partition_by_shard(self.course_ids, self.home_shard_id)
        groups = partition_by_shard(self.group_ids, self.home_shard_id)
        return {
            shard_id: ShardScope(course_ids=courses.get(shard_id, []), group_ids=groups.get(shard_id, []))
            for shard_id in sorted(set(courses) | set(groups))
        }


def user_shard_ids(shards: ShardSessions, user) -> list[int]:
    """Shards holding the user's enrollments or memberships, home shard included."""
    home = shard_of(user)
    known = set(shards.registry.shard_ids)
    wanted = set(user.associated_shard_ids or []) | {home}
    missing = wanted - known
    if missing:
        logger.warning(
            "user_shards_unknown",
            extra={"event": "user_shards_unknown", "user_id": user.id, "shard_ids": sorted(missing)},
        )
    return sorted(wanted & known)


def _student_course_ids(db: Session, user_id: int) -> list[int]:
    stmt = (
        select(Enrollment.course_id)
        .join(Course, Course.id == Enrollment.course_id)
        .where(
            Enrollment.user_id == user_id,
            Enrollment.type.in_(STUDENT_ENROLLMENT_TYPES),
            Enrollment.workflow_state == "active",
            Course.workflow_state == CourseWorkflowState.AVAILABLE.value,
        )
        .distinct()
    )
    return list(db.scalars(stmt))


def _all_course_ids(db: Session, user_id: int) -> list[int]:
    stmt = (
        select(Enrollment.course_id)
        .join(Course, Course.id == Enrollment.course_id)
        .where(
            Enrollment.user_id == user_id,
            Enrollment.workflow_state != "deleted",
            Course.workflow_state != CourseWorkflowState.DELETED.value,
        )
        .distinct()
    )
    return list(db.scalars(stmt))


def _group_ids(db: Session, user_id: int) -> list[int]:
    stmt = (
        select(GroupMembership.group_id)
        .join(Group, Group.id == GroupMembership.group_id)
        .where(
            GroupMembership.user_id == user_id,
            GroupMembership.workflow_state == "accepted",
            Group.workflow_state != "deleted",
        )
        .distinct()
    )
    return list(db.scalars(stmt))


def default_course_ids(shards: ShardSessions, user, participation: str, include_concluded: bool = False) -> set[int]:
    """Courses (global ids) the user participates in for ``participation``."""
    home = shard_of(user)
    result: set[int] = set()
    for shard_id in user_shard_ids(shards, user):
        db = shards.session_for(shard_id)
        user_id = relative_id_for(user.id, home, shard_id)
        if include_concluded:
            local_ids = _all_course_ids(db, user_id)
        elif participation == STUDENT:
            local_ids = _student_course_ids(db, user_id)
        else:
            local_ids = course_ids_granting(db, user_id, participation)
        result.update(global_id_for(course_id, shard_id) for course_id in local_ids)
    return result


def default_group_ids(shards: ShardSessions, user) -> set[int]:
    home = shard_of(user)
    result: set[int] = set()
    for shard_id in user_shard_ids(shards, user):
        db = shards.session_for(shard_id)
        user_id = relative_id_for(user.id, home, shard_id)
        result.update(global_id_for(group_id, shard_id) for group_id in _group_ids(db, user_id))
    return result


def _nothing_requested(*filters) -> bool:
    """An explicit empty filter short-circuits to an empty result."""
    return any(f is not None and not f for f in filters)


def _globalize(ids: Iterable[int], home: int) -> set[int]:
    return {global_id_for(id_, home) for id_ in ids}


def _context_ids(contexts: Iterable[ContextRef], context_type: str, home: int) -> set[int]:
    return _globalize((c.id for c in contexts if c.context_type == context_type), home)


def resolve_scope(
    shards: ShardSessions,
    user,
    participation: str,
    *,
    course_ids: list[int] | None = None,
    group_ids: list[int] | None = None,
    contexts: list[ContextRef] | None = None,
    include_concluded: bool = False,
) -> ResolvedScope:
    """
    Resolve the course and group ids a to-do query for ``user`` covers.

    Args:
        shards: Request-scoped shard sessions
        user: Acting user (attached to its home shard session)
        participation: "student" or the permission the user must hold (e.g. "manage_grades")
        course_ids: Explicit course ids to intersect with; empty means no courses
        group_ids: Explicit group ids to intersect with; empty means no groups
        contexts: Explicit contexts to intersect with, split by type; empty means nothing
        include_concluded: Use every non-deleted enrollment instead of the participation rule

    Returns:
        ResolvedScope with sorted global ids.
    """
    home = shard_of(user)
    resolved_courses: list[int] = []
    resolved_groups: list[int] = []

    if not _nothing_requested(course_ids, contexts):
        ids = default_course_ids(shards, user, participation, include_concluded)
        if course_ids is not None:
            ids &= _globalize(course_ids, home)
        if contexts is not None:
            ids &= _context_ids(contexts, "Course", home)
        resolved_courses = sorted(ids)

    if not _nothing_requested(group_ids, contexts):
        ids = default_group_ids(shards, user)
        if group_ids is not None:
            ids &= _globalize(group_ids, home)
        if contexts is not None:
            ids &= _context_ids(contexts, "Group", home)
        resolved_groups = sorted(ids)

    return ResolvedScope(home_shard_id=home, course_ids=resolved_courses, group_ids=resolved_groups)
