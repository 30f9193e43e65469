"""Per-user "objects needing X" queries across shards.

Every list query follows the same pipeline: resolve the contexts the user
participates in, partition them by shard, build one SQL statement per shard, run it
(plus an optional capped in-memory filter for checks that cannot be expressed in
SQL), then merge the per-shard results, re-sort and truncate. Materialized results
are cached per user; ``scope_only`` skips the cache and returns the un-executed
statement for the request's default shard.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select, and_, distinct, exists, false, func, or_, select
from sqlalchemy.orm import Session, aliased, selectinload

from lms_todo.cache.todo_cache import fetch_or_compute
from lms_todo.common.clock import utcnow
from lms_todo.core.logging import get_logger
from lms_todo.db.shards import ShardSessions, global_id, relative_id_for, shard_of
from lms_todo.models.assignment import Assignment, AssignmentOverrideStudent, AssignmentWorkflowState
from lms_todo.models.course import Course, CourseWorkflowState
from lms_todo.models.discussion import DiscussionTopic, DiscussionTopicSectionVisibility
from lms_todo.models.enrollment import (
    GRADER_ENROLLMENT_TYPES,
    STUDENT_ENROLLMENT_TYPES,
    TERMINATED_ENROLLMENT_STATES,
    Enrollment,
)
from lms_todo.models.quiz import COMPLETED_QUIZ_SUBMISSION_STATES, UNGRADED_QUIZ_TYPES, Quiz, QuizSubmission
from lms_todo.models.submission import AssessmentRequest, ProvisionalGrade, Submission
from lms_todo.models.wiki_page import WikiPage
from lms_todo.schemas.todo import dump_items, load_items
from lms_todo.security.permissions import (
    MANAGE_ASSIGNMENTS,
    MANAGE_GRADES,
    READ_AS_ADMIN,
    SELECT_FINAL_GRADE,
    grants_any_right,
    grants_right,
)
from lms_todo.system.flags import needs_grading_queries_disabled
from lms_todo.todo.grading_count import needs_grading_count
from lms_todo.todo.items import (
    assessment_request_item,
    assignment_item,
    discussion_topic_item,
    load_contexts,
    quiz_item,
    wiki_page_item,
)
from lms_todo.todo.kinds import ObjectKind, Purpose
from lms_todo.todo.options import (
    GradingOptions,
    ModerationOptions,
    PeerReviewOptions,
    ScopeOptions,
    StudentAssignmentOptions,
    SubmittingOptions,
    UngradedQuizOptions,
    ViewingOptions,
)
from lms_todo.todo.scope_resolver import STUDENT, resolve_scope
from lms_todo.todo.scopes import (
    announcement_expired,
    between,
    checkpoint_filter,
    expecting_submission,
    for_courses_and_groups,
    needs_grading_conditions,
    not_ignored_by,
    not_locked,
    ordering,
    partition_by_checkpoints,
    submittable,
)

logger = get_logger(__name__)

MINUTE = 60
SUBMITTING_TTL_SECONDS = 15 * MINUTE
SUBMITTED_TTL_SECONDS = 120 * MINUTE
GRADING_TTL_SECONDS = 120 * MINUTE
MODERATION_TTL_SECONDS = 120 * MINUTE
QUIZ_TTL_SECONDS = 15 * MINUTE
PEER_REVIEW_TTL_SECONDS = 15 * MINUTE
VIEWING_TTL_SECONDS = 120 * MINUTE

KIND_MODELS = {
    ObjectKind.ASSIGNMENT: Assignment,
    ObjectKind.SUB_ASSIGNMENT: Assignment,
    ObjectKind.QUIZ: Quiz,
    ObjectKind.ASSESSMENT_REQUEST: AssessmentRequest,
    ObjectKind.DISCUSSION_TOPIC: DiscussionTopic,
    ObjectKind.WIKI_PAGE: WikiPage,
}


@dataclass
class ShardQuery:
    """Inputs for building one shard's statement. Ids are local to ``shard_id``."""

    shard_id: int
    db: Session
    user_id: int
    course_ids: list[int]
    group_ids: list[int]
    scope: Select
    limit: int | None


Build = Callable[[ShardQuery], Select]
Collect = Callable[[ShardQuery, Select], list]


def _take(rows, limit: int | None) -> list:
    if limit is None:
        return list(rows)
    result = []
    for row in rows:
        if len(result) >= limit:
            break
        result.append(row)
    return result


class UserLearningObjectScopes:
    """To-do list queries for one user.

    Args:
        shards: Request-scoped shard sessions
        user: The user the lists belong to, loaded from its home shard
    """

    def __init__(self, shards: ShardSessions, user):
        self.shards = shards
        self.user = user
        self.home_shard_id = shard_of(user)
        self.user_global_id = global_id(user)

    def _user_id_on(self, shard_id: int) -> int:
        return relative_id_for(self.user.id, self.home_shard_id, shard_id)

    @property
    def _home_db(self) -> Session:
        return self.shards.session_for(self.home_shard_id)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _base_scope(
        self,
        kind: ObjectKind,
        purpose: Purpose,
        db: Session,
        user_id: int,
        course_ids: list[int],
        options: ScopeOptions,
        published_only: bool,
    ) -> Select:
        model = KIND_MODELS[kind]
        stmt = select(model)
        if not options.include_ignored:
            stmt = stmt.where(not_ignored_by(model, kind.asset_type, user_id, purpose.value))
        if kind in (ObjectKind.ASSIGNMENT, ObjectKind.SUB_ASSIGNMENT, ObjectKind.QUIZ):
            stmt = stmt.where(model.context_id.in_(course_ids))
        if kind.is_assignment:
            enabled, disabled = partition_by_checkpoints(db, course_ids)
            stmt = stmt.where(checkpoint_filter(kind is ObjectKind.SUB_ASSIGNMENT, enabled, disabled))
            if published_only:
                stmt = stmt.where(Assignment.workflow_state == AssignmentWorkflowState.PUBLISHED.value)
            else:
                stmt = stmt.where(Assignment.workflow_state != AssignmentWorkflowState.DELETED.value)
            if not options.include_ungraded:
                stmt = stmt.where(expecting_submission())
        return stmt

    def _none(self, kind: ObjectKind) -> Select:
        return select(KIND_MODELS[kind]).where(false())

    def objects_needing(
        self,
        kind: ObjectKind | str,
        purpose: Purpose | str,
        participation: str,
        params: dict[str, Any],
        ttl_seconds: int,
        options: ScopeOptions,
        build: Build,
        collect: Collect,
        published_only: bool = False,
    ) -> list | Select:
        """
        Run a to-do query for every shard the user's contexts live on.

        Args:
            kind: Learning object kind; unknown strings raise UnknownObjectKindError
            purpose: To-do purpose (also the Ignore purpose)
            participation: "student" or the permission required in each course
            params: Query parameters that make up the cache key
            ttl_seconds: Cache lifetime of the merged result
            options: Scope options (limit, explicit filters, flags)
            build: Turns a ShardQuery into that shard's statement
            collect: Executes a shard's statement and returns its items
            published_only: Assignments must be published rather than merely not deleted

        Returns:
            Items sorted by due date (falling back to last update) and truncated to
            ``options.limit``; with ``scope_only`` the default shard's statement.
        """
        kind = ObjectKind.parse(kind)
        purpose = Purpose(purpose)
        scope = resolve_scope(
            self.shards,
            self.user,
            participation,
            course_ids=options.course_ids,
            group_ids=options.group_ids,
            contexts=options.contexts,
            include_concluded=options.include_concluded,
        )
        partitions = scope.by_shard()

        def shard_query(shard_id: int, db: Session, course_ids: list[int], group_ids: list[int]) -> ShardQuery:
            user_id = self._user_id_on(shard_id)
            return ShardQuery(
                shard_id=shard_id,
                db=db,
                user_id=user_id,
                course_ids=course_ids,
                group_ids=group_ids,
                scope=self._base_scope(kind, purpose, db, user_id, course_ids, options, published_only),
                limit=options.limit,
            )

        if options.scope_only:
            current = self.shards.default_shard_id
            shard_scope = partitions.get(current)
            if shard_scope is None or shard_scope.empty:
                return self._none(kind)
            db = self.shards.session_for(current)
            return build(shard_query(current, db, shard_scope.course_ids, shard_scope.group_ids))

        def compute() -> list:
            items: list = []
            for shard_id, db, shard_scope in self.shards.fan_out(partitions):
                query = shard_query(shard_id, db, shard_scope.course_ids, shard_scope.group_ids)
                items.extend(collect(query, build(query)))
            items.sort(key=lambda item: item.sort_key)
            logger.debug(
                "todo_list_computed",
                extra={
                    "event": "todo_list_computed",
                    "user_id": self.user_global_id,
                    "kind": kind.value,
                    "purpose": purpose.value,
                    "shards": list(partitions),
                    "count": len(items),
                },
            )
            return items if options.limit is None else items[: options.limit]

        return fetch_or_compute(
            self.user_global_id,
            kind.value,
            purpose.value,
            scope.course_ids,
            params,
            ttl_seconds,
            compute,
            dumps=dump_items,
            loads=load_items,
        )

    # ------------------------------------------------------------------
    # Student assignments
    # ------------------------------------------------------------------

    def _assignments_for_student(
        self, purpose: Purpose, options: StudentAssignmentOptions, ttl_seconds: int
    ) -> list | Select:
        kind = ObjectKind.SUB_ASSIGNMENT if options.is_sub_assignment else ObjectKind.ASSIGNMENT
        due_after, due_before = options.due_window()
        now = utcnow()

        def build(q: ShardQuery) -> Select:
            override = aliased(AssignmentOverrideStudent, name="user_overrides")
            user_due_date = func.coalesce(override.due_at, Assignment.due_at)
            stmt = (
                q.scope.add_columns(user_due_date.label("user_due_date"))
                .outerjoin(
                    override,
                    and_(override.assignment_id == Assignment.id, override.user_id == q.user_id),
                )
                .join(Course, Course.id == Assignment.context_id)
                .where(
                    between(user_due_date, due_after, due_before),
                    or_(Assignment.only_visible_to_overrides.is_(False), override.id.isnot(None)),
                    Assignment.suppress_assignment.is_(False),
                )
            )
            if purpose is Purpose.SUBMITTING:
                stmt = stmt.where(
                    ~exists().where(
                        Submission.assignment_id == Assignment.id,
                        Submission.user_id == q.user_id,
                        Submission.workflow_state != "deleted",
                        or_(Submission.submission_type.isnot(None), Submission.excused.is_(True)),
                    ),
                    or_(submittable(), user_due_date > now),
                )
            elif purpose is Purpose.SUBMITTED:
                stmt = stmt.where(
                    exists().where(
                        Submission.assignment_id == Assignment.id,
                        Submission.user_id == q.user_id,
                        Submission.workflow_state != "deleted",
                        Submission.submission_type.isnot(None),
                    )
                )
            if not options.include_locked:
                stmt = stmt.where(not_locked(Assignment, now))
            if options.include_concluded:
                stmt = stmt.where(Course.workflow_state != CourseWorkflowState.DELETED.value)
            else:
                stmt = stmt.where(Course.workflow_state == CourseWorkflowState.AVAILABLE.value)
            return stmt.order_by(*ordering(user_due_date, Assignment))

        def collect(q: ShardQuery, stmt: Select) -> list:
            stmt = stmt.options(selectinload(Assignment.context).selectinload(Course.account)).limit(q.limit)
            return [
                assignment_item(assignment, q.shard_id, self.user, due_at=user_due_date)
                for assignment, user_due_date in q.db.execute(stmt)
            ]

        return self.objects_needing(
            kind,
            purpose,
            STUDENT,
            options.cache_params(),
            ttl_seconds,
            options,
            build,
            collect,
            published_only=True,
        )

    def assignments_needing_submitting(self, options: SubmittingOptions | None = None) -> list | Select:
        """Assignments the user still has to submit, by the user's own due date."""
        return self._assignments_for_student(
            Purpose.SUBMITTING, options or SubmittingOptions(), SUBMITTING_TTL_SECONDS
        )

    def submitted_assignments(self, options: StudentAssignmentOptions | None = None) -> list | Select:
        return self._assignments_for_student(
            Purpose.SUBMITTED, options or StudentAssignmentOptions(), SUBMITTED_TTL_SECONDS
        )

    def assignments_visible_in_course(self, course: Course) -> Select:
        """Assignments of ``course`` the user can see (admins see unpublished ones too)."""
        stmt = select(Assignment).where(
            Assignment.context_id == course.id,
            Assignment.type == "Assignment",
            Assignment.workflow_state != AssignmentWorkflowState.DELETED.value,
        )
        if grants_any_right(self.user, course, READ_AS_ADMIN, MANAGE_GRADES, MANAGE_ASSIGNMENTS):
            return stmt
        user_id = self._user_id_on(shard_of(course))
        override = aliased(AssignmentOverrideStudent, name="user_overrides")
        return stmt.where(
            Assignment.workflow_state == AssignmentWorkflowState.PUBLISHED.value,
            or_(
                Assignment.only_visible_to_overrides.is_(False),
                exists().where(override.assignment_id == Assignment.id, override.user_id == user_id),
            ),
        )

    # ------------------------------------------------------------------
    # Grading and moderation
    # ------------------------------------------------------------------

    @staticmethod
    def _grader_visible_submission(user_id: int):
        """EXISTS: a submission needing grading from an active student the grader may see."""
        grader = aliased(Enrollment, name="grader_enrollments")
        student = aliased(Enrollment, name="student_enrollments")
        return exists(
            select(Submission.id)
            .join(
                student,
                and_(student.user_id == Submission.user_id, student.course_id == Submission.course_id),
            )
            .join(grader, grader.course_id == Submission.course_id)
            .where(
                Submission.assignment_id == Assignment.id,
                Submission.workflow_state != "deleted",
                needs_grading_conditions(),
                student.workflow_state == "active",
                student.type.in_(STUDENT_ENROLLMENT_TYPES),
                grader.user_id == user_id,
                grader.workflow_state == "active",
                grader.type.in_(GRADER_ENROLLMENT_TYPES),
                or_(
                    grader.limit_privileges_to_course_section.is_(False),
                    grader.course_section_id == student.course_section_id,
                ),
            )
        )

    def _grading_disabled(self) -> bool:
        if needs_grading_queries_disabled(self._home_db):
            logger.info(
                "needs_grading_queries_disabled",
                extra={"event": "needs_grading_queries_disabled", "user_id": self.user_global_id},
            )
            return True
        return False

    def assignments_needing_grading(self, options: GradingOptions | None = None) -> list | Select:
        """
        Published assignments with submissions the user can grade.

        Two phases: SQL keeps assignments with at least one visible submission needing
        grading, then a capped in-memory pass computes each needs-grading count and
        drops assignments whose count is zero.
        """
        options = options or GradingOptions()
        kind = ObjectKind.SUB_ASSIGNMENT if options.is_sub_assignment else ObjectKind.ASSIGNMENT
        if self._grading_disabled():
            return self._none(kind) if options.scope_only else []

        params = options.cache_params()
        params.pop("is_sub_assignment")

        def build(q: ShardQuery) -> Select:
            return q.scope.where(self._grader_visible_submission(q.user_id)).order_by(
                *ordering(Assignment.due_at, Assignment)
            )

        def collect(q: ShardQuery, stmt: Select) -> list:
            stmt = stmt.options(selectinload(Assignment.context).selectinload(Course.account))
            items = []
            for assignment in q.db.scalars(stmt):
                if q.limit is not None and len(items) >= q.limit:
                    break
                count = needs_grading_count(q.db, assignment, q.user_id)
                if count == 0:
                    continue
                items.append(assignment_item(assignment, q.shard_id, self.user, needs_grading_count=count))
            return items

        return self.objects_needing(
            kind,
            Purpose.GRADING,
            MANAGE_GRADES,
            params,
            GRADING_TTL_SECONDS,
            options,
            build,
            collect,
            published_only=True,
        )

    def submissions_needing_grading_count(self, options: ScopeOptions | None = None) -> int:
        """Total submissions the user can grade across all their courses (uncached)."""
        options = options or ScopeOptions()
        if self._grading_disabled():
            return 0

        scope = resolve_scope(
            self.shards,
            self.user,
            MANAGE_GRADES,
            course_ids=options.course_ids,
            contexts=options.contexts,
            include_concluded=options.include_concluded,
        )
        total = 0
        for shard_id, db, shard_scope in self.shards.fan_out(scope.by_shard()):
            if not shard_scope.course_ids:
                continue
            user_id = self._user_id_on(shard_id)
            grader = aliased(Enrollment, name="grader_enrollments")
            student = aliased(Enrollment, name="enrollments")
            stmt = (
                select(func.count(distinct(Submission.id)))
                .join(Assignment, Assignment.id == Submission.assignment_id)
                .join(
                    student,
                    and_(student.user_id == Submission.user_id, student.course_id == Submission.course_id),
                )
                .join(grader, grader.course_id == Assignment.context_id)
                .where(
                    Assignment.context_id.in_(shard_scope.course_ids),
                    Assignment.workflow_state == AssignmentWorkflowState.PUBLISHED.value,
                    expecting_submission(),
                    Submission.workflow_state != "deleted",
                    needs_grading_conditions(),
                    student.workflow_state == "active",
                    student.type.in_(STUDENT_ENROLLMENT_TYPES),
                    grader.user_id == user_id,
                    grader.workflow_state == "active",
                    grader.type.in_(GRADER_ENROLLMENT_TYPES),
                    or_(
                        grader.limit_privileges_to_course_section.is_(False),
                        grader.course_section_id == student.course_section_id,
                    ),
                )
            )
            if not options.include_ignored:
                stmt = stmt.where(
                    not_ignored_by(Assignment, ObjectKind.ASSIGNMENT.asset_type, user_id, Purpose.GRADING.value)
                )
            total += db.scalar(stmt) or 0
        return total

    def permits_moderation(self, assignment: Assignment) -> bool:
        """Final grader of an unpublished moderated assignment who may select final grades."""
        if not assignment.moderated_grading or assignment.grades_published_at is not None:
            return False
        if assignment.final_grader_id != self._user_id_on(shard_of(assignment)):
            return False
        return grants_right(self.user, assignment.context, SELECT_FINAL_GRADE)

    def assignments_needing_moderation(self, options: ModerationOptions | None = None) -> list | Select:
        """
        Moderated assignments where the user is the final grader and marks await review.

        The moderation permission is checked in memory on the SQL candidates, stopping
        once ``limit`` assignments pass.
        """
        options = options or ModerationOptions()

        def build(q: ShardQuery) -> Select:
            marked = (
                select(Submission.assignment_id)
                .join(ProvisionalGrade, ProvisionalGrade.submission_id == Submission.id)
                .where(needs_grading_conditions())
                .distinct()
            )
            return (
                q.scope.where(
                    expecting_submission(),
                    Assignment.final_grader_id == q.user_id,
                    Assignment.moderated_grading.is_(True),
                    Assignment.grades_published_at.is_(None),
                    Assignment.id.in_(marked),
                )
                .order_by(*ordering(Assignment.due_at, Assignment))
            )

        def collect(q: ShardQuery, stmt: Select) -> list:
            stmt = stmt.options(selectinload(Assignment.context).selectinload(Course.account))
            permitted = (a for a in q.db.scalars(stmt) if self.permits_moderation(a))
            return [assignment_item(a, q.shard_id, self.user) for a in _take(permitted, q.limit)]

        return self.objects_needing(
            ObjectKind.ASSIGNMENT,
            Purpose.MODERATION,
            SELECT_FINAL_GRADE,
            options.cache_params(),
            MODERATION_TTL_SECONDS,
            options,
            build,
            collect,
        )

    # ------------------------------------------------------------------
    # Quizzes, peer reviews, topics and pages
    # ------------------------------------------------------------------

    def ungraded_quizzes(self, options: UngradedQuizOptions | None = None) -> list | Select:
        """Available practice quizzes and surveys due in the window."""
        options = options or UngradedQuizOptions()
        due_after, due_before = options.due_window()
        now = utcnow()

        def build(q: ShardQuery) -> Select:
            stmt = q.scope.join(Course, Course.id == Quiz.context_id).where(
                Quiz.workflow_state == "available",
                Quiz.quiz_type.in_(UNGRADED_QUIZ_TYPES),
                between(Quiz.due_at, due_after, due_before),
            )
            if not options.include_locked:
                stmt = stmt.where(not_locked(Quiz, now))
            if options.needing_submitting:
                stmt = stmt.where(
                    ~exists().where(
                        QuizSubmission.quiz_id == Quiz.id,
                        QuizSubmission.user_id == q.user_id,
                        QuizSubmission.workflow_state.in_(COMPLETED_QUIZ_SUBMISSION_STATES),
                    )
                )
            if not options.include_concluded:
                stmt = stmt.where(Course.workflow_state == CourseWorkflowState.AVAILABLE.value)
            return stmt.order_by(*ordering(Quiz.due_at, Quiz))

        def collect(q: ShardQuery, stmt: Select) -> list:
            stmt = stmt.options(selectinload(Quiz.context)).limit(q.limit)
            return [quiz_item(quiz, q.shard_id, self.user) for quiz in q.db.scalars(stmt)]

        return self.objects_needing(
            ObjectKind.QUIZ,
            Purpose.VIEWING,
            STUDENT,
            options.cache_params(),
            QUIZ_TTL_SECONDS,
            options,
            build,
            collect,
        )

    def submissions_needing_peer_review(self, options: PeerReviewOptions | None = None) -> list | Select:
        """
        Incomplete peer reviews assigned to the user.

        Join conditions stand in for the submission read check: the reviewed
        submission is active, its assignment is published with peer reviews on, and
        the reviewee still holds a non-terminated enrollment in the course.
        """
        options = options or PeerReviewOptions()
        due_after, due_before = options.due_window()
        assessor_asset = aliased(Submission, name="assessor_asset")
        asset = aliased(Submission, name="asset")

        def build(q: ShardQuery) -> Select:
            reviewee_enrollment = aliased(Enrollment, name="enrollments")
            stmt = (
                q.scope.join(asset, AssessmentRequest.asset_id == asset.id)
                .join(Assignment, asset.assignment_id == Assignment.id)
                .join(
                    assessor_asset,
                    and_(
                        AssessmentRequest.assessor_asset_id == assessor_asset.id,
                        assessor_asset.assignment_id == Assignment.id,
                    ),
                )
                .where(
                    AssessmentRequest.assessor_id == q.user_id,
                    assessor_asset.course_id.in_(q.course_ids),
                    asset.workflow_state != "deleted",
                    Assignment.workflow_state == AssignmentWorkflowState.PUBLISHED.value,
                    Assignment.peer_reviews.is_(True),
                    exists().where(
                        reviewee_enrollment.user_id == AssessmentRequest.user_id,
                        reviewee_enrollment.course_id == assessor_asset.course_id,
                        reviewee_enrollment.workflow_state.notin_(TERMINATED_ENROLLMENT_STATES),
                    ),
                    between(assessor_asset.cached_due_date, due_after, due_before),
                )
            )
            if not options.scope_only:
                stmt = stmt.where(AssessmentRequest.workflow_state == "assigned")
            return stmt.order_by(*ordering(assessor_asset.cached_due_date, AssessmentRequest))

        def collect(q: ShardQuery, stmt: Select) -> list:
            stmt = stmt.options(
                selectinload(AssessmentRequest.asset)
                .selectinload(Submission.assignment)
                .selectinload(Assignment.context)
                .selectinload(Course.account),
                selectinload(AssessmentRequest.assessor_asset),
            ).limit(q.limit)
            return [assessment_request_item(r, q.shard_id, self.user) for r in q.db.scalars(stmt)]

        return self.objects_needing(
            ObjectKind.ASSESSMENT_REQUEST,
            Purpose.REVIEWING,
            STUDENT,
            options.cache_params(),
            PEER_REVIEW_TTL_SECONDS,
            options,
            build,
            collect,
        )

    def discussion_topics_needing_viewing(self, options: ViewingOptions) -> list | Select:
        """Topics with a to-do date in the window; expired announcements are left out."""
        now = utcnow()

        def build(q: ShardQuery) -> Select:
            visibility = aliased(DiscussionTopicSectionVisibility)
            section_enrollment = aliased(Enrollment, name="section_enrollments")
            grader_enrollment = aliased(Enrollment, name="grader_enrollments")
            visible = or_(
                DiscussionTopic.is_section_specific.is_(False),
                exists(
                    select(visibility.id)
                    .join(section_enrollment, section_enrollment.course_section_id == visibility.course_section_id)
                    .where(
                        visibility.discussion_topic_id == DiscussionTopic.id,
                        section_enrollment.user_id == q.user_id,
                        section_enrollment.workflow_state == "active",
                    )
                ),
                exists().where(
                    DiscussionTopic.context_type == "Course",
                    grader_enrollment.course_id == DiscussionTopic.context_id,
                    grader_enrollment.user_id == q.user_id,
                    grader_enrollment.workflow_state == "active",
                    grader_enrollment.type.in_(GRADER_ENROLLMENT_TYPES),
                ),
            )
            return (
                q.scope.where(
                    DiscussionTopic.workflow_state == "active",
                    for_courses_and_groups(DiscussionTopic, q.course_ids, q.group_ids),
                    between(DiscussionTopic.todo_date, options.due_after, options.due_before),
                    visible,
                    ~announcement_expired(DiscussionTopic, now),
                )
                .order_by(*ordering(DiscussionTopic.todo_date, DiscussionTopic))
            )

        def collect(q: ShardQuery, stmt: Select) -> list:
            topics = list(q.db.scalars(stmt.limit(q.limit)))
            contexts = load_contexts(q.db, topics)
            return [
                discussion_topic_item(t, contexts[(t.context_type, t.context_id)], q.shard_id, self.user)
                for t in topics
            ]

        return self.objects_needing(
            ObjectKind.DISCUSSION_TOPIC,
            Purpose.VIEWING,
            STUDENT,
            options.cache_params(),
            VIEWING_TTL_SECONDS,
            options,
            build,
            collect,
        )

    def wiki_pages_needing_viewing(self, options: ViewingOptions) -> list | Select:
        """Active pages with a to-do date in the window; scheduled pages wait for ``publish_at``."""

        def build(q: ShardQuery) -> Select:
            return (
                q.scope.where(
                    WikiPage.workflow_state == "active",
                    or_(WikiPage.publish_at.is_(None), WikiPage.publish_at <= utcnow()),
                    for_courses_and_groups(WikiPage, q.course_ids, q.group_ids),
                    between(WikiPage.todo_date, options.due_after, options.due_before),
                )
                .order_by(*ordering(WikiPage.todo_date, WikiPage))
            )

        def collect(q: ShardQuery, stmt: Select) -> list:
            pages = list(q.db.scalars(stmt.limit(q.limit)))
            contexts = load_contexts(q.db, pages)
            return [wiki_page_item(p, contexts[(p.context_type, p.context_id)], q.shard_id, self.user) for p in pages]

        return self.objects_needing(
            ObjectKind.WIKI_PAGE,
            Purpose.VIEWING,
            STUDENT,
            options.cache_params(),
            VIEWING_TTL_SECONDS,
            options,
            build,
            collect,
        )
