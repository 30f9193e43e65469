"""Tests for the grading and moderation to-do queries."""

from datetime import timedelta

from sqlalchemy import Select

from lms_todo.common.clock import utcnow
from lms_todo.core.config import settings
from lms_todo.db.shards import global_id
from lms_todo.system.flags import DISABLE_NEEDS_GRADING_QUERIES, set_flag
from lms_todo.todo.grading_count import needs_grading_count, visible_section_ids
from lms_todo.todo.needs_query import UserLearningObjectScopes
from lms_todo.todo.options import GradingOptions, ModerationOptions, ScopeOptions
from tests.helpers.seed import (
    OTHER_SHARD,
    create_account,
    create_assignment,
    create_checkpointed_discussion,
    create_course,
    create_provisional_grade,
    create_section,
    create_submission,
    create_user,
    enroll,
)


def _teacher_with_course(db, **course_kwargs):
    teacher = create_user(db, name="Teacher")
    course = create_course(db, **course_kwargs)
    enroll(db, teacher, course, type="TeacherEnrollment")
    return teacher, course


def _student_in(db, course, name="Student", **kwargs):
    student = create_user(db, name=name)
    enroll(db, student, course, **kwargs)
    return student


def test_assignment_with_ungraded_submission_needs_grading(shards, db, fake_redis):
    teacher, course = _teacher_with_course(db)
    assignment = create_assignment(db, course)
    for name in ("Ann", "Bob"):
        create_submission(db, assignment, _student_in(db, course, name=name))

    items = UserLearningObjectScopes(shards, teacher).assignments_needing_grading()

    assert [item.id for item in items] == [global_id(assignment)]
    assert items[0].needs_grading_count == 2


def test_graded_and_unsubmitted_work_is_left_out(shards, db, no_redis):
    teacher, course = _teacher_with_course(db)
    graded = create_assignment(db, course, title="Graded")
    create_submission(db, graded, _student_in(db, course), score=8.0, workflow_state="graded")
    unsubmitted = create_assignment(db, course, title="Nothing yet")
    create_submission(db, unsubmitted, _student_in(db, course, name="Late"), submitted=False)
    excused = create_assignment(db, course, title="Excused")
    create_submission(db, excused, _student_in(db, course, name="Ex"), excused=True)

    assert UserLearningObjectScopes(shards, teacher).assignments_needing_grading() == []


def test_regrade_after_resubmission_needs_grading(shards, db, no_redis):
    teacher, course = _teacher_with_course(db)
    assignment = create_assignment(db, course)
    create_submission(
        db,
        assignment,
        _student_in(db, course),
        score=8.0,
        workflow_state="graded",
        grade_matches_current_submission=False,
    )

    items = UserLearningObjectScopes(shards, teacher).assignments_needing_grading()

    assert [item.needs_grading_count for item in items] == [1]


def test_unpublished_assignments_are_never_listed(shards, db, no_redis):
    teacher, course = _teacher_with_course(db)
    assignment = create_assignment(db, course, workflow_state="unpublished")
    create_submission(db, assignment, _student_in(db, course))

    assert UserLearningObjectScopes(shards, teacher).assignments_needing_grading() == []


def test_inactive_students_do_not_count(shards, db, no_redis):
    teacher, course = _teacher_with_course(db)
    assignment = create_assignment(db, course)
    create_submission(db, assignment, _student_in(db, course, workflow_state="inactive"))

    assert UserLearningObjectScopes(shards, teacher).assignments_needing_grading() == []


def test_students_cannot_see_grading_lists(shards, db, no_redis):
    _, course = _teacher_with_course(db)
    assignment = create_assignment(db, course)
    student = _student_in(db, course)
    create_submission(db, assignment, _student_in(db, course, name="Peer"))

    assert UserLearningObjectScopes(shards, student).assignments_needing_grading() == []


def test_section_limited_grader_only_counts_own_section(shards, db, no_redis):
    course = create_course(db)
    own, other = create_section(db, course, "A"), create_section(db, course, "B")
    ta = create_user(db, name="TA")
    enroll(db, ta, course, type="TaEnrollment", section=own, limited=True)
    assignment = create_assignment(db, course)
    create_submission(db, assignment, _student_in(db, course, name="Mine", section=own))
    create_submission(db, assignment, _student_in(db, course, name="Theirs", section=other))
    only_other = create_assignment(db, course, title="Other section only")
    create_submission(db, only_other, _student_in(db, course, name="Far", section=other))

    items = UserLearningObjectScopes(shards, ta).assignments_needing_grading()

    assert [(item.id, item.needs_grading_count) for item in items] == [(global_id(assignment), 1)]
    assert visible_section_ids(db, course.id, ta.id) == [own.id]


def test_unlimited_grader_sees_every_section(db):
    teacher, course = _teacher_with_course(db)

    assert visible_section_ids(db, course.id, teacher.id) is None


def test_each_assignment_is_listed_once(shards, db, no_redis):
    course = create_course(db)
    section = create_section(db, course)
    teacher = create_user(db, name="Teacher")
    enroll(db, teacher, course, type="TeacherEnrollment")
    enroll(db, teacher, course, type="TaEnrollment", section=section)
    assignment = create_assignment(db, course)
    for name in ("Ann", "Bob", "Cid"):
        create_submission(db, assignment, _student_in(db, course, name=name, section=section))

    items = UserLearningObjectScopes(shards, teacher).assignments_needing_grading()

    assert [item.id for item in items] == [global_id(assignment)]
    assert items[0].needs_grading_count == 3


def test_limit_and_due_date_order(shards, db, no_redis):
    teacher, course = _teacher_with_course(db)
    now = utcnow()
    student = _student_in(db, course)
    assignments = [
        create_assignment(db, course, title=f"A{days}", due_at=now + timedelta(days=days)) for days in (3, 1, 2)
    ]
    for assignment in assignments:
        create_submission(db, assignment, student)

    items = UserLearningObjectScopes(shards, teacher).assignments_needing_grading(GradingOptions(limit=2))

    assert [item.title for item in items] == ["A1", "A2"]


def test_grading_fans_out_across_shards(shards, db, other_db, no_redis):
    teacher = create_user(db, name="Teacher", shard_ids=[OTHER_SHARD])
    now = utcnow()
    home_course = create_course(db)
    enroll(db, teacher, home_course, type="TeacherEnrollment")
    remote_course = create_course(other_db, name="Remote")
    enroll(other_db, teacher, remote_course, type="TeacherEnrollment")
    later = create_assignment(db, home_course, title="Home", due_at=now + timedelta(days=2))
    create_submission(db, later, _student_in(db, home_course))
    sooner = create_assignment(other_db, remote_course, title="Remote", due_at=now + timedelta(days=1))
    create_submission(other_db, sooner, _student_in(other_db, remote_course))

    items = UserLearningObjectScopes(shards, teacher).assignments_needing_grading()

    assert [item.id for item in items] == [global_id(sooner), global_id(later)]
    assert items[0].context_id == global_id(remote_course)


def test_scope_only_returns_statement(shards, db, no_redis):
    teacher, course = _teacher_with_course(db)
    assignment = create_assignment(db, course)
    create_submission(db, assignment, _student_in(db, course))

    stmt = UserLearningObjectScopes(shards, teacher).assignments_needing_grading(GradingOptions(scope_only=True))

    assert isinstance(stmt, Select)
    assert [a.id for a in db.scalars(stmt)] == [assignment.id]


def test_checkpoints_are_listed_instead_of_parent(shards, db, no_redis):
    teacher = create_user(db, name="Teacher")
    course = create_course(db, account=create_account(db, checkpoints=True))
    enroll(db, teacher, course, type="TeacherEnrollment")
    student = _student_in(db, course)
    parent, checkpoints = create_checkpointed_discussion(db, course)
    create_submission(db, parent, student, submission_type="discussion_topic")
    for checkpoint in checkpoints:
        create_submission(db, checkpoint, student, submission_type="discussion_topic")
    scopes = UserLearningObjectScopes(shards, teacher)

    assignments = scopes.assignments_needing_grading()
    subs = scopes.assignments_needing_grading(GradingOptions(is_sub_assignment=True))

    assert assignments == []
    assert sorted(item.id for item in subs) == sorted(global_id(c) for c in checkpoints)
    assert all(item.is_sub_assignment for item in subs)


def test_parent_is_listed_when_checkpoints_are_disabled(shards, db, no_redis):
    teacher, course = _teacher_with_course(db)
    parent, checkpoints = create_checkpointed_discussion(db, course)
    student = _student_in(db, course)
    create_submission(db, parent, student, submission_type="discussion_topic")
    for checkpoint in checkpoints:
        create_submission(db, checkpoint, student, submission_type="discussion_topic")
    scopes = UserLearningObjectScopes(shards, teacher)

    assert [item.id for item in scopes.assignments_needing_grading()] == [global_id(parent)]
    assert scopes.assignments_needing_grading(GradingOptions(is_sub_assignment=True)) == []


def test_kill_switch_setting_empties_grading(shards, db, no_redis, monkeypatch):
    teacher, course = _teacher_with_course(db)
    assignment = create_assignment(db, course)
    create_submission(db, assignment, _student_in(db, course))
    monkeypatch.setattr(settings, "DISABLE_NEEDS_GRADING_QUERIES", True)
    scopes = UserLearningObjectScopes(shards, teacher)

    assert scopes.assignments_needing_grading() == []
    assert scopes.submissions_needing_grading_count() == 0
    stmt = scopes.assignments_needing_grading(GradingOptions(scope_only=True))
    assert list(db.scalars(stmt)) == []


def test_kill_switch_flag_empties_grading(shards, db, no_redis):
    teacher, course = _teacher_with_course(db)
    assignment = create_assignment(db, course)
    create_submission(db, assignment, _student_in(db, course))
    scopes = UserLearningObjectScopes(shards, teacher)
    assert scopes.submissions_needing_grading_count() == 1

    set_flag(db, DISABLE_NEEDS_GRADING_QUERIES, True, reason="database overloaded")

    assert scopes.assignments_needing_grading() == []
    assert scopes.submissions_needing_grading_count() == 0


def test_submissions_needing_grading_count_sums_across_shards(shards, db, other_db):
    teacher = create_user(db, name="Teacher", shard_ids=[OTHER_SHARD])
    home_course = create_course(db)
    enroll(db, teacher, home_course, type="TeacherEnrollment")
    remote_course = create_course(other_db)
    enroll(other_db, teacher, remote_course, type="TeacherEnrollment")
    for session, course in ((db, home_course), (other_db, remote_course)):
        assignment = create_assignment(session, course)
        for name in ("Ann", "Bob"):
            create_submission(session, assignment, _student_in(session, course, name=name))

    scopes = UserLearningObjectScopes(shards, teacher)

    assert scopes.submissions_needing_grading_count() == 4
    assert scopes.submissions_needing_grading_count(ScopeOptions(course_ids=[home_course.id])) == 2


def _moderated_setup(db):
    teacher, course = _teacher_with_course(db)
    assignment = create_assignment(db, course, moderated_grading=True, final_grader_id=teacher.id)
    student = _student_in(db, course)
    submission = create_submission(db, assignment, student)
    return teacher, course, assignment, submission


def test_moderation_lists_assignments_with_provisional_marks(shards, db, no_redis):
    teacher, course, assignment, submission = _moderated_setup(db)
    scopes = UserLearningObjectScopes(shards, teacher)
    assert scopes.assignments_needing_moderation() == []

    grader = create_user(db, name="Grader")
    enroll(db, grader, course, type="TaEnrollment")
    create_provisional_grade(db, submission, grader)

    assert [item.id for item in scopes.assignments_needing_moderation()] == [global_id(assignment)]


def test_moderation_requires_final_grader_rights(shards, db, no_redis):
    course = create_course(db)
    ta = create_user(db, name="TA")
    enroll(db, ta, course, type="TaEnrollment")
    assignment = create_assignment(db, course, moderated_grading=True, final_grader_id=ta.id)
    submission = create_submission(db, assignment, _student_in(db, course))
    create_provisional_grade(db, submission, ta)

    assert UserLearningObjectScopes(shards, ta).assignments_needing_moderation(ModerationOptions()) == []


def test_published_grades_end_moderation(shards, db, no_redis):
    teacher, course, assignment, submission = _moderated_setup(db)
    create_provisional_grade(db, submission, teacher)
    assignment.grades_published_at = utcnow()
    db.commit()

    assert UserLearningObjectScopes(shards, teacher).assignments_needing_moderation() == []


def test_moderators_do_not_count_their_own_marks(db):
    teacher, course, assignment, submission = _moderated_setup(db)
    assert needs_grading_count(db, assignment, teacher.id) == 1

    create_provisional_grade(db, submission, teacher)

    assert needs_grading_count(db, assignment, teacher.id) == 0
