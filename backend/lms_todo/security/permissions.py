"""Enrollment-role permission checks.

A deliberately small permission engine: a role's default permissions, adjusted by
account-level ``RoleOverride`` rows, granted through active enrollments.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from lms_todo.core.logging import get_logger
from lms_todo.db.shards import ShardSessions, global_id_for, partition_by_shard, relative_id_for, shard_of
from lms_todo.models.course import Course, CourseWorkflowState, Group, GroupMembership
from lms_todo.models.enrollment import Enrollment, RoleOverride

logger = get_logger(__name__)

MANAGE_GRADES = "manage_grades"
VIEW_ALL_GRADES = "view_all_grades"
READ_AS_ADMIN = "read_as_admin"
SELECT_FINAL_GRADE = "select_final_grade"
MANAGE_ASSIGNMENTS = "manage_assignments"

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "TeacherEnrollment": frozenset(
        {MANAGE_GRADES, VIEW_ALL_GRADES, READ_AS_ADMIN, SELECT_FINAL_GRADE, MANAGE_ASSIGNMENTS}
    ),
    "TaEnrollment": frozenset({MANAGE_GRADES, VIEW_ALL_GRADES, READ_AS_ADMIN, MANAGE_ASSIGNMENTS}),
    "DesignerEnrollment": frozenset({READ_AS_ADMIN, MANAGE_ASSIGNMENTS}),
    "StudentEnrollment": frozenset(),
    "StudentViewEnrollment": frozenset(),
    "ObserverEnrollment": frozenset(),
}

Overrides = dict[tuple[str, str], bool]


def role_grants(role: str, permission: str, overrides: Overrides | None = None) -> bool:
    if overrides and (role, permission) in overrides:
        return overrides[(role, permission)]
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def overrides_by_account(db: Session, account_ids: Iterable[int]) -> dict[int, Overrides]:
    account_ids = list(set(account_ids))
    result: dict[int, Overrides] = defaultdict(dict)
    if not account_ids:
        return result
    rows = db.execute(
        select(RoleOverride.account_id, RoleOverride.role, RoleOverride.permission, RoleOverride.enabled).where(
            RoleOverride.account_id.in_(account_ids)
        )
    ).all()
    for account_id, role, permission, enabled in rows:
        result[account_id][(role, permission)] = enabled
    return result


def _active_enrollment_rows(db: Session, user_id: int, course_ids: Iterable[int] | None = None):
    stmt = (
        select(Enrollment.course_id, Enrollment.type, Course.account_id)
        .join(Course, Course.id == Enrollment.course_id)
        .where(
            Enrollment.user_id == user_id,
            Enrollment.workflow_state == "active",
            Course.workflow_state.notin_(
                [CourseWorkflowState.DELETED.value, CourseWorkflowState.COMPLETED.value]
            ),
        )
    )
    if course_ids is not None:
        stmt = stmt.where(Enrollment.course_id.in_(list(course_ids)))
    return db.execute(stmt).all()


def course_ids_granting(db: Session, user_id: int, permission: str) -> list[int]:
    """Local ids of courses on ``db``'s shard where ``user_id`` holds ``permission``."""
    rows = _active_enrollment_rows(db, user_id)
    overrides = overrides_by_account(db, (row.account_id for row in rows))
    return sorted(
        {row.course_id for row in rows if role_grants(row.type, permission, overrides.get(row.account_id))}
    )


def grants_right(user, course: Course, permission: str) -> bool:
    """Whether ``user`` holds ``permission`` in ``course`` through an active enrollment."""
    return grants_any_right(user, course, permission)


def grants_any_right(user, course: Course, *permissions: str) -> bool:
    course_shard = shard_of(course)
    user_id = relative_id_for(user.id, shard_of(user), course_shard)
    db = Session.object_session(course)
    rows = _active_enrollment_rows(db, user_id, [course.id])
    if not rows:
        return False
    overrides = overrides_by_account(db, [course.account_id]).get(course.account_id)
    return any(role_grants(row.type, permission, overrides) for row in rows for permission in permissions)


def participates_in(user, course: Course) -> bool:
    """Whether ``user`` holds any active enrollment in ``course``."""
    user_id = relative_id_for(user.id, shard_of(user), shard_of(course))
    return bool(_active_enrollment_rows(Session.object_session(course), user_id, [course.id]))


def member_of(user, group: Group) -> bool:
    """Whether ``user`` is an accepted member of ``group`` or participates in its course."""
    db = Session.object_session(group)
    user_id = relative_id_for(user.id, shard_of(user), shard_of(group))
    membership = db.scalar(
        select(GroupMembership.id).where(
            GroupMembership.group_id == group.id,
            GroupMembership.user_id == user_id,
            GroupMembership.workflow_state == "accepted",
        )
    )
    if membership is not None:
        return True
    course = db.get(Course, group.course_id) if group.course_id is not None else None
    return course is not None and participates_in(user, course)


def precalculate_permissions_for_courses(
    shards: ShardSessions,
    user,
    course_global_ids: Iterable[int],
    permissions: Iterable[str],
) -> dict[int, dict[str, bool]]:
    """
    Bulk permission lookup: ``{course_global_id: {permission: bool}}``.

    One enrollment query and one override query per shard touched, instead of one
    authorization check per item.
    """
    permissions = list(permissions)
    user_shard = shard_of(user)
    result: dict[int, dict[str, bool]] = {
        course_id: {permission: False for permission in permissions} for course_id in course_global_ids
    }
    partitions = partition_by_shard(result, user_shard)
    for shard_id, db, local_course_ids in shards.fan_out(partitions):
        user_id = relative_id_for(user.id, user_shard, shard_id)
        rows = _active_enrollment_rows(db, user_id, local_course_ids)
        overrides = overrides_by_account(db, (row.account_id for row in rows))
        for row in rows:
            granted = result[global_id_for(row.course_id, shard_id)]
            for permission in permissions:
                if role_grants(row.type, permission, overrides.get(row.account_id)):
                    granted[permission] = True
    logger.debug(
        "permissions_precalculated",
        extra={"event": "permissions_precalculated", "courses": len(result), "shards": len(partitions)},
    )
    return result
