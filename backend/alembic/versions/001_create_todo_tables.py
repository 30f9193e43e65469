"""Create to-do schema tables

Revision ID: 001
Revises: 
Create Date: 2026-10-18 10:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("short_name", sa.String(255), nullable=True),
        sa.Column("associated_shard_ids", sa.JSON(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "accounts",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("discussion_checkpoints_enabled", sa.Boolean(), nullable=False, server_default="false"),
    )

    op.create_table(
        "courses",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.BigInteger(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("course_code", sa.String(255), nullable=True),
        sa.Column("workflow_state", sa.String(50), nullable=False, server_default="available"),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_courses_account_id", "courses", ["account_id"])

    op.create_table(
        "course_sections",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("course_id", sa.BigInteger(), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
    )
    op.create_index("ix_course_sections_course_id", "course_sections", ["course_id"])

    op.create_table(
        "groups",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("course_id", sa.BigInteger(), sa.ForeignKey("courses.id"), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("workflow_state", sa.String(50), nullable=False, server_default="available"),
    )
    op.create_index("ix_groups_course_id", "groups", ["course_id"])

    op.create_table(
        "group_memberships",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("group_id", sa.BigInteger(), sa.ForeignKey("groups.id"), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("workflow_state", sa.String(50), nullable=False, server_default="accepted"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_group_memberships_group_id", "group_memberships", ["group_id"])
    op.create_index("ix_group_memberships_user_id", "group_memberships", ["user_id"])

    op.create_table(
        "enrollments",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("course_id", sa.BigInteger(), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("course_section_id", sa.BigInteger(), sa.ForeignKey("course_sections.id"), nullable=True),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("workflow_state", sa.String(50), nullable=False, server_default="active"),
        sa.Column("limit_privileges_to_course_section", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_enrollments_user_id", "enrollments", ["user_id"])
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])

    op.create_table(
        "role_overrides",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.BigInteger(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("role", sa.String(50), nullable=False),
        sa.Column("permission", sa.String(100), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("account_id", "role", "permission", name="uq_role_overrides_account_role_permission"),
    )
    op.create_index("ix_role_overrides_account_id", "role_overrides", ["account_id"])

    op.create_table(
        "assignments",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("type", sa.String(50), nullable=False, server_default="Assignment"),
        sa.Column("context_id", sa.BigInteger(), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("workflow_state", sa.String(50), nullable=False, server_default="published"),
        sa.Column("submission_types", sa.String(255), nullable=True),
        sa.Column("points_possible", sa.Float(), nullable=True),
        sa.Column("due_at", sa.DateTime(), nullable=True),
        sa.Column("unlock_at", sa.DateTime(), nullable=True),
        sa.Column("lock_at", sa.DateTime(), nullable=True),
        sa.Column("moderated_grading", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("final_grader_id", sa.BigInteger(), nullable=True),
        sa.Column("grades_published_at", sa.DateTime(), nullable=True),
        sa.Column("peer_reviews", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("peer_reviews_due_at", sa.DateTime(), nullable=True),
        sa.Column("only_visible_to_overrides", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("suppress_assignment", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("has_sub_assignments", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("parent_assignment_id", sa.BigInteger(), sa.ForeignKey("assignments.id"), nullable=True),
        sa.Column("sub_assignment_tag", sa.String(50), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_assignments_context_id", "assignments", ["context_id"])
    op.create_index("ix_assignments_parent_assignment_id", "assignments", ["parent_assignment_id"])

    op.create_table(
        "assignment_override_students",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("assignment_id", sa.BigInteger(), sa.ForeignKey("assignments.id"), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("due_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint(
            "assignment_id", "user_id", name="uq_assignment_override_students_assignment_user"
        ),
    )
    op.create_index("ix_assignment_override_students_assignment_id", "assignment_override_students", ["assignment_id"])
    op.create_index("ix_assignment_override_students_user_id", "assignment_override_students", ["user_id"])

    op.create_table(
        "submissions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("assignment_id", sa.BigInteger(), sa.ForeignKey("assignments.id"), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("course_id", sa.BigInteger(), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("workflow_state", sa.String(50), nullable=False, server_default="unsubmitted"),
        sa.Column("submission_type", sa.String(50), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=True),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("grade", sa.String(50), nullable=True),
        sa.Column("excused", sa.Boolean(), nullable=True),
        sa.Column("grade_matches_current_submission", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("cached_due_date", sa.DateTime(), nullable=True),
        sa.Column("posted_at", sa.DateTime(), nullable=True),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("attempt", sa.Integer(), nullable=True),
        sa.Column("anonymous_id", sa.String(5), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_submissions_assignment_id", "submissions", ["assignment_id"])
    op.create_index("ix_submissions_user_id", "submissions", ["user_id"])
    op.create_index("ix_submissions_course_id", "submissions", ["course_id"])

    op.create_table(
        "provisional_grades",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("submission_id", sa.BigInteger(), sa.ForeignKey("submissions.id"), nullable=False),
        sa.Column("scorer_id", sa.BigInteger(), nullable=False),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_provisional_grades_submission_id", "provisional_grades", ["submission_id"])

    op.create_table(
        "assessment_requests",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("asset_id", sa.BigInteger(), sa.ForeignKey("submissions.id"), nullable=False),
        sa.Column("assessor_asset_id", sa.BigInteger(), sa.ForeignKey("submissions.id"), nullable=False),
        sa.Column("assessor_id", sa.BigInteger(), nullable=False),
        sa.Column("workflow_state", sa.String(50), nullable=False, server_default="assigned"),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_assessment_requests_user_id", "assessment_requests", ["user_id"])
    op.create_index("ix_assessment_requests_asset_id", "assessment_requests", ["asset_id"])
    op.create_index("ix_assessment_requests_assessor_id", "assessment_requests", ["assessor_id"])

    op.create_table(
        "quizzes",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("context_id", sa.BigInteger(), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("quiz_type", sa.String(50), nullable=False, server_default="assignment"),
        sa.Column("workflow_state", sa.String(50), nullable=False, server_default="available"),
        sa.Column("due_at", sa.DateTime(), nullable=True),
        sa.Column("unlock_at", sa.DateTime(), nullable=True),
        sa.Column("lock_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_quizzes_context_id", "quizzes", ["context_id"])

    op.create_table(
        "quiz_submissions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("quiz_id", sa.BigInteger(), sa.ForeignKey("quizzes.id"), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("workflow_state", sa.String(50), nullable=False, server_default="untaken"),
        sa.UniqueConstraint("quiz_id", "user_id", name="uq_quiz_submissions_quiz_user"),
    )
    op.create_index("ix_quiz_submissions_quiz_id", "quiz_submissions", ["quiz_id"])
    op.create_index("ix_quiz_submissions_user_id", "quiz_submissions", ["user_id"])

    op.create_table(
        "discussion_topics",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("context_type", sa.String(50), nullable=False, server_default="Course"),
        sa.Column("context_id", sa.BigInteger(), nullable=False),
        sa.Column("type", sa.String(50), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("workflow_state", sa.String(50), nullable=False, server_default="active"),
        sa.Column("todo_date", sa.DateTime(), nullable=True),
        sa.Column("lock_at", sa.DateTime(), nullable=True),
        sa.Column("is_section_specific", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_discussion_topics_context_id", "discussion_topics", ["context_id"])

    op.create_table(
        "discussion_topic_section_visibilities",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("discussion_topic_id", sa.BigInteger(), sa.ForeignKey("discussion_topics.id"), nullable=False),
        sa.Column("course_section_id", sa.BigInteger(), sa.ForeignKey("course_sections.id"), nullable=False),
    )
    op.create_index(
        "ix_discussion_topic_section_visibilities_discussion_topic_id",
        "discussion_topic_section_visibilities",
        ["discussion_topic_id"],
    )

    op.create_table(
        "wiki_pages",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("context_type", sa.String(50), nullable=False, server_default="Course"),
        sa.Column("context_id", sa.BigInteger(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("workflow_state", sa.String(50), nullable=False, server_default="active"),
        sa.Column("todo_date", sa.DateTime(), nullable=True),
        sa.Column("publish_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_wiki_pages_context_id", "wiki_pages", ["context_id"])

    op.create_table(
        "ignores",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("asset_type", sa.String(50), nullable=False),
        sa.Column("asset_id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("purpose", sa.String(50), nullable=False),
        sa.Column("permanent", sa.Boolean(), nullable=False, server_default="false"),
        *_timestamps(),
        sa.UniqueConstraint("asset_id", "asset_type", "user_id", "purpose", name="uq_ignores_asset_user_purpose"),
    )
    op.create_index("ix_ignores_user_id", "ignores", ["user_id"])

    op.create_table(
        "system_flags",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("reason", sa.Text(), nullable=True),
    )


def downgrade() -> None:
    for table in (
        "system_flags",
        "ignores",
        "wiki_pages",
        "discussion_topic_section_visibilities",
        "discussion_topics",
        "quiz_submissions",
        "quizzes",
        "assessment_requests",
        "provisional_grades",
        "submissions",
        "assignment_override_students",
        "assignments",
        "role_overrides",
        "enrollments",
        "group_memberships",
        "groups",
        "course_sections",
        "courses",
        "accounts",
        "users",
    ):
        op.drop_table(table)
