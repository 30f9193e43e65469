"""Tests for the student-facing to-do queries."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from lms_todo.common.clock import utcnow
from lms_todo.db.shards import global_id
from lms_todo.todo.kinds import UnknownObjectKindError
from lms_todo.todo.needs_query import UserLearningObjectScopes
from lms_todo.todo.options import (
    ContextRef,
    PeerReviewOptions,
    ScopeOptions,
    StudentAssignmentOptions,
    SubmittingOptions,
    UngradedQuizOptions,
    ViewingOptions,
)
from tests.helpers.seed import (
    OTHER_SHARD,
    create_account,
    create_assignment,
    create_checkpointed_discussion,
    create_course,
    create_group,
    create_peer_review,
    create_quiz,
    create_section,
    create_submission,
    create_topic,
    create_user,
    create_wiki_page,
    enroll,
    override_due_date,
    take_quiz,
)


@pytest.fixture
def student_course(db):
    student = create_user(db, name="Student")
    course = create_course(db)
    enroll(db, student, course)
    return student, course


def _ids(items):
    return [item.id for item in items]


def _viewing_window():
    now = utcnow()
    return ViewingOptions(due_after=now - timedelta(days=7), due_before=now + timedelta(days=7))


class TestNeedsSubmitting:
    def test_unsubmitted_assignment_is_listed(self, shards, db, student_course, fake_redis):
        student, course = student_course
        assignment = create_assignment(db, course)

        items = UserLearningObjectScopes(shards, student).assignments_needing_submitting()

        assert _ids(items) == [global_id(assignment)]
        assert items[0].context_name == course.name

    def test_submitted_and_excused_work_is_left_out(self, shards, db, student_course, no_redis):
        student, course = student_course
        create_submission(db, create_assignment(db, course, title="Done"), student)
        create_submission(db, create_assignment(db, course, title="Excused"), student, submitted=False, excused=True)

        assert UserLearningObjectScopes(shards, student).assignments_needing_submitting() == []

    def test_due_window_bounds(self, shards, db, student_course, no_redis):
        student, course = student_course
        now = utcnow()
        create_assignment(db, course, title="Far future", due_at=now + timedelta(weeks=3))
        create_assignment(db, course, title="Long gone", due_at=now - timedelta(weeks=6))
        create_assignment(db, course, title="Undated", due_at=None)
        recent = create_assignment(db, course, title="Recent", due_at=now - timedelta(days=3))

        items = UserLearningObjectScopes(shards, student).assignments_needing_submitting()

        assert _ids(items) == [global_id(recent)]

    def test_explicit_window_overrides_default(self, shards, db, student_course, no_redis):
        student, course = student_course
        now = utcnow()
        far = create_assignment(db, course, title="Far future", due_at=now + timedelta(weeks=3))
        options = SubmittingOptions(due_after=now, due_before=now + timedelta(weeks=4))

        assert _ids(UserLearningObjectScopes(shards, student).assignments_needing_submitting(options)) == [
            global_id(far)
        ]

    def test_student_override_due_date_is_used(self, shards, db, student_course, no_redis):
        student, course = student_course
        now = utcnow()
        assignment = create_assignment(db, course, due_at=now + timedelta(weeks=3))
        personal_due = now + timedelta(days=2)
        override_due_date(db, assignment, student, personal_due)

        items = UserLearningObjectScopes(shards, student).assignments_needing_submitting()

        assert _ids(items) == [global_id(assignment)]
        assert items[0].due_at == personal_due

    def test_override_only_assignments_need_an_override(self, shards, db, student_course, no_redis):
        student, course = student_course
        classmate = create_user(db, name="Classmate")
        enroll(db, classmate, course)
        assignment = create_assignment(db, course, only_visible_to_overrides=True)
        override_due_date(db, assignment, classmate, assignment.due_at)

        assert UserLearningObjectScopes(shards, student).assignments_needing_submitting() == []
        assert _ids(UserLearningObjectScopes(shards, classmate).assignments_needing_submitting()) == [
            global_id(assignment)
        ]

    def test_locked_and_unpublished_are_left_out(self, shards, db, student_course, no_redis):
        student, course = student_course
        now = utcnow()
        create_assignment(db, course, title="Locked", lock_at=now - timedelta(hours=1))
        create_assignment(db, course, title="Not yet open", unlock_at=now + timedelta(hours=1))
        create_assignment(db, course, title="Draft", workflow_state="unpublished")

        scopes = UserLearningObjectScopes(shards, student)

        assert scopes.assignments_needing_submitting() == []
        assert len(scopes.assignments_needing_submitting(SubmittingOptions(include_locked=True))) == 2

    def test_on_paper_assignments_need_include_ungraded(self, shards, db, student_course, no_redis):
        student, course = student_course
        paper = create_assignment(db, course, submission_types="on_paper")
        scopes = UserLearningObjectScopes(shards, student)

        assert scopes.assignments_needing_submitting() == []
        assert _ids(scopes.assignments_needing_submitting(SubmittingOptions(include_ungraded=True))) == [
            global_id(paper)
        ]

    def test_past_due_offline_assignments_drop_off(self, shards, db, student_course, no_redis):
        student, course = student_course
        now = utcnow()
        create_assignment(db, course, submission_types="on_paper", due_at=now - timedelta(days=1))
        online = create_assignment(db, course, title="Online", due_at=now - timedelta(days=1))

        items = UserLearningObjectScopes(shards, student).assignments_needing_submitting(
            SubmittingOptions(include_ungraded=True)
        )

        assert _ids(items) == [global_id(online)]

    def test_concluded_courses_need_include_concluded(self, shards, db, no_redis):
        student = create_user(db)
        course = create_course(db, workflow_state="completed")
        enroll(db, student, course)
        assignment = create_assignment(db, course)
        scopes = UserLearningObjectScopes(shards, student)

        assert scopes.assignments_needing_submitting() == []
        assert _ids(scopes.assignments_needing_submitting(SubmittingOptions(include_concluded=True))) == [
            global_id(assignment)
        ]

    def test_checkpoints_replace_parent_for_students(self, shards, db, no_redis):
        student = create_user(db)
        course = create_course(db, account=create_account(db, checkpoints=True))
        enroll(db, student, course)
        _, checkpoints = create_checkpointed_discussion(db, course)
        scopes = UserLearningObjectScopes(shards, student)

        assert scopes.assignments_needing_submitting() == []
        subs = scopes.assignments_needing_submitting(SubmittingOptions(is_sub_assignment=True))
        assert _ids(subs) == [global_id(c) for c in checkpoints]

    def test_cross_shard_courses_are_merged_in_due_order(self, shards, db, other_db, no_redis):
        student = create_user(db, shard_ids=[OTHER_SHARD])
        now = utcnow()
        home_course = create_course(db)
        enroll(db, student, home_course)
        remote_course = create_course(other_db, name="Remote")
        enroll(other_db, student, remote_course)
        home_late = create_assignment(db, home_course, title="Home late", due_at=now + timedelta(days=5))
        remote_soon = create_assignment(other_db, remote_course, title="Remote soon", due_at=now + timedelta(days=1))
        home_soon = create_assignment(db, home_course, title="Home soon", due_at=now + timedelta(days=2))

        items = UserLearningObjectScopes(shards, student).assignments_needing_submitting(SubmittingOptions(limit=2))

        assert _ids(items) == [global_id(remote_soon), global_id(home_soon)]
        assert global_id(home_late) not in _ids(items)

    def test_context_filter(self, shards, db, student_course, no_redis):
        student, course = student_course
        other = create_course(db, name="Chemistry")
        enroll(db, student, other)
        create_assignment(db, course)
        wanted = create_assignment(db, other, title="Lab report")

        options = SubmittingOptions(contexts=[ContextRef(context_type="Course", id=other.id)])

        assert _ids(UserLearningObjectScopes(shards, student).assignments_needing_submitting(options)) == [
            global_id(wanted)
        ]

    def test_scope_only_for_user_without_courses_is_empty(self, shards, db):
        loner = create_user(db)

        stmt = UserLearningObjectScopes(shards, loner).assignments_needing_submitting(
            SubmittingOptions(scope_only=True)
        )

        assert list(db.scalars(stmt)) == []


def test_submitted_assignments(shards, db, student_course, no_redis):
    student, course = student_course
    done = create_assignment(db, course, title="Done")
    create_submission(db, done, student)
    create_assignment(db, course, title="Pending")

    items = UserLearningObjectScopes(shards, student).submitted_assignments(StudentAssignmentOptions())

    assert _ids(items) == [global_id(done)]


def test_assignments_visible_in_course(shards, db, student_course):
    student, course = student_course
    teacher = create_user(db, name="Teacher")
    enroll(db, teacher, course, type="TeacherEnrollment")
    published = create_assignment(db, course)
    draft = create_assignment(db, course, title="Draft", workflow_state="unpublished")
    hidden = create_assignment(db, course, title="Hidden", only_visible_to_overrides=True)

    student_ids = {a.id for a in db.scalars(UserLearningObjectScopes(shards, student).assignments_visible_in_course(course))}
    teacher_ids = {a.id for a in db.scalars(UserLearningObjectScopes(shards, teacher).assignments_visible_in_course(course))}

    assert student_ids == {published.id}
    assert teacher_ids == {published.id, draft.id, hidden.id}


class TestUngradedQuizzes:
    def test_practice_quizzes_and_surveys_are_listed(self, shards, db, student_course, no_redis):
        student, course = student_course
        practice = create_quiz(db, course)
        survey = create_quiz(db, course, title="Survey", quiz_type="survey", due_at=utcnow() + timedelta(days=2))
        create_quiz(db, course, title="Graded", quiz_type="assignment")

        items = UserLearningObjectScopes(shards, student).ungraded_quizzes()

        assert _ids(items) == [global_id(practice), global_id(survey)]
        assert items[0].kind == "Quizzes::Quiz"

    def test_needing_submitting_skips_completed(self, shards, db, student_course, no_redis):
        student, course = student_course
        done = create_quiz(db, course, title="Done")
        take_quiz(db, done, student)
        started = create_quiz(db, course, title="Started")
        take_quiz(db, started, student, workflow_state="untaken")

        items = UserLearningObjectScopes(shards, student).ungraded_quizzes(UngradedQuizOptions(needing_submitting=True))

        assert _ids(items) == [global_id(started)]

    def test_past_due_quizzes_are_left_out(self, shards, db, student_course, no_redis):
        student, course = student_course
        create_quiz(db, course, due_at=utcnow() - timedelta(hours=1))

        assert UserLearningObjectScopes(shards, student).ungraded_quizzes() == []


class TestPeerReviews:
    def test_assigned_review_is_listed(self, shards, db, student_course, no_redis):
        reviewer, course = student_course
        reviewee = create_user(db, name="Reviewee")
        enroll(db, reviewee, course)
        assignment = create_assignment(db, course, peer_reviews=True)
        request = create_peer_review(db, assignment, reviewer, reviewee)

        items = UserLearningObjectScopes(shards, reviewer).submissions_needing_peer_review()

        assert _ids(items) == [global_id(request)]
        assert items[0].assignment.id == global_id(assignment)
        assert items[0].due_at == assignment.due_at

    def test_completed_reviews_and_dropped_reviewees_are_left_out(self, shards, db, student_course, no_redis):
        reviewer, course = student_course
        assignment = create_assignment(db, course, peer_reviews=True)
        done_for = create_user(db, name="Done")
        enroll(db, done_for, course)
        create_peer_review(db, assignment, reviewer, done_for, workflow_state="completed")
        dropped = create_user(db, name="Dropped")
        enroll(db, dropped, course, workflow_state="deleted")
        create_peer_review(db, assignment, reviewer, dropped)

        assert UserLearningObjectScopes(shards, reviewer).submissions_needing_peer_review() == []

    def test_scope_only_includes_completed_reviews(self, shards, db, student_course):
        reviewer, course = student_course
        reviewee = create_user(db, name="Reviewee")
        enroll(db, reviewee, course)
        assignment = create_assignment(db, course, peer_reviews=True)
        request = create_peer_review(db, assignment, reviewer, reviewee, workflow_state="completed")

        stmt = UserLearningObjectScopes(shards, reviewer).submissions_needing_peer_review(
            PeerReviewOptions(scope_only=True)
        )

        assert [r.id for r in db.scalars(stmt)] == [request.id]


class TestViewing:
    def test_topics_with_todo_date_in_window(self, shards, db, student_course, no_redis):
        student, course = student_course
        topic = create_topic(db, course)
        create_topic(db, course, title="Someday", todo_date=None)
        create_topic(db, course, title="Next month", todo_date=utcnow() + timedelta(days=30))

        items = UserLearningObjectScopes(shards, student).discussion_topics_needing_viewing(_viewing_window())

        assert _ids(items) == [global_id(topic)]

    def test_section_specific_topics(self, shards, db, no_redis):
        course = create_course(db)
        mine, theirs = create_section(db, course, "A"), create_section(db, course, "B")
        student = create_user(db)
        enroll(db, student, course, section=mine)
        visible = create_topic(db, course, title="For A", sections=[mine])
        create_topic(db, course, title="For B", sections=[theirs])
        teacher = create_user(db, name="Teacher")
        enroll(db, teacher, course, type="TeacherEnrollment")

        assert _ids(UserLearningObjectScopes(shards, student).discussion_topics_needing_viewing(_viewing_window())) == [
            global_id(visible)
        ]
        teacher_items = UserLearningObjectScopes(shards, teacher).discussion_topics_needing_viewing(
            _viewing_window().model_copy(update={"include_concluded": True})
        )
        assert len(teacher_items) == 2

    def test_expired_announcements_are_left_out(self, shards, db, student_course, no_redis):
        student, course = student_course
        create_topic(db, course, title="Old news", type="Announcement", lock_at=utcnow() - timedelta(hours=1))
        current = create_topic(db, course, title="News", type="Announcement")

        items = UserLearningObjectScopes(shards, student).discussion_topics_needing_viewing(_viewing_window())

        assert _ids(items) == [global_id(current)]

    def test_group_topics_and_pages(self, shards, db, student_course, no_redis):
        student, course = student_course
        group = create_group(db, course, members=[student])
        topic = create_topic(db, group, title="Group chat")
        page = create_wiki_page(db, group, title="Group notes")
        scopes = UserLearningObjectScopes(shards, student)

        topics = scopes.discussion_topics_needing_viewing(_viewing_window())
        pages = scopes.wiki_pages_needing_viewing(_viewing_window())

        assert [(i.id, i.context_type) for i in topics] == [(global_id(topic), "Group")]
        assert [(i.id, i.context_name) for i in pages] == [(global_id(page), group.name)]

    def test_deleted_pages_are_left_out(self, shards, db, student_course, no_redis):
        student, course = student_course
        page = create_wiki_page(db, course)
        create_wiki_page(db, course, title="Gone", workflow_state="deleted")

        items = UserLearningObjectScopes(shards, student).wiki_pages_needing_viewing(_viewing_window())

        assert _ids(items) == [global_id(page)]

    def test_scheduled_pages_wait_for_publish_at(self, shards, db, student_course, no_redis):
        student, course = student_course
        published = create_wiki_page(db, course, publish_at=utcnow() - timedelta(hours=1))
        create_wiki_page(db, course, title="Next week", publish_at=utcnow() + timedelta(days=7))

        items = UserLearningObjectScopes(shards, student).wiki_pages_needing_viewing(_viewing_window())

        assert _ids(items) == [global_id(published)]

    def test_viewing_requires_both_bounds(self):
        with pytest.raises(ValidationError):
            ViewingOptions(due_after=utcnow())


def test_unknown_object_kind_is_rejected(shards, db, student_course):
    student, _ = student_course

    with pytest.raises(UnknownObjectKindError):
        UserLearningObjectScopes(shards, student).objects_needing(
            "Widget", "viewing", "student", {}, 60, ScopeOptions(), build=None, collect=None
        )


def test_options_reject_unknown_fields():
    with pytest.raises(ValidationError):
        SubmittingOptions(limt=3)
