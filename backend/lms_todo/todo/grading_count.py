"""Per-assignment needs-grading count as seen by one grader."""

from __future__ import annotations

from sqlalchemy import distinct, exists, func, select
from sqlalchemy.orm import Session, aliased

from lms_todo.models.assignment import Assignment
from lms_todo.models.enrollment import GRADER_ENROLLMENT_TYPES, STUDENT_ENROLLMENT_TYPES, Enrollment
from lms_todo.models.submission import ProvisionalGrade, Submission
from lms_todo.todo.scopes import needs_grading_conditions


def visible_section_ids(db: Session, course_id: int, user_id: int) -> list[int] | None:
    """
    Sections whose students the grader may grade.

    ``None`` means every section; an empty list means the user grades nothing here.
    """
    rows = db.execute(
        select(Enrollment.course_section_id, Enrollment.limit_privileges_to_course_section).where(
            Enrollment.course_id == course_id,
            Enrollment.user_id == user_id,
            Enrollment.workflow_state == "active",
            Enrollment.type.in_(GRADER_ENROLLMENT_TYPES),
        )
    ).all()
    if any(not limited for _, limited in rows):
        return None
    return sorted({section_id for section_id, _ in rows if section_id is not None})


def needs_grading_count(db: Session, assignment: Assignment, user_id: int) -> int:
    """Submissions of active students in ``assignment`` that ``user_id`` still has to grade."""
    sections = visible_section_ids(db, assignment.context_id, user_id)
    if sections is not None and not sections:
        return 0

    student = aliased(Enrollment, name="student_enrollments")
    stmt = (
        select(func.count(distinct(Submission.id)))
        .join(
            student,
            (student.user_id == Submission.user_id)
            & (student.course_id == Submission.course_id)
            & (student.workflow_state == "active")
            & student.type.in_(STUDENT_ENROLLMENT_TYPES),
        )
        .where(
            Submission.assignment_id == assignment.id,
            Submission.workflow_state != "deleted",
            needs_grading_conditions(),
        )
    )
    if sections is not None:
        stmt = stmt.where(student.course_section_id.in_(sections))
    if assignment.moderated_grading and assignment.grades_published_at is None:
        # Moderators only count submissions they have not marked yet.
        stmt = stmt.where(
            ~exists().where(ProvisionalGrade.submission_id == Submission.id, ProvisionalGrade.scorer_id == user_id)
        )
    return db.scalar(stmt) or 0
