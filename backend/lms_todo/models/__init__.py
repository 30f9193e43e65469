"""Database models."""

# Import all models here so Alembic can detect them
from lms_todo.models.assignment import (
    Assignment,
    AssignmentOverrideStudent,
    AssignmentWorkflowState,
    CheckpointLabel,
    SubAssignment,
)
from lms_todo.models.course import Account, Course, CourseSection, CourseWorkflowState, Group, GroupMembership
from lms_todo.models.discussion import DiscussionTopic, DiscussionTopicSectionVisibility
from lms_todo.models.enrollment import Enrollment, RoleOverride
from lms_todo.models.ignore import Ignore
from lms_todo.models.quiz import Quiz, QuizSubmission
from lms_todo.models.submission import AssessmentRequest, ProvisionalGrade, Submission
from lms_todo.models.system_flags import SystemFlag
from lms_todo.models.user import User
from lms_todo.models.wiki_page import WikiPage

__all__ = [
    "Account",
    "AssessmentRequest",
    "Assignment",
    "AssignmentOverrideStudent",
    "AssignmentWorkflowState",
    "CheckpointLabel",
    "Course",
    "CourseSection",
    "CourseWorkflowState",
    "DiscussionTopic",
    "DiscussionTopicSectionVisibility",
    "Enrollment",
    "Group",
    "GroupMembership",
    "Ignore",
    "ProvisionalGrade",
    "Quiz",
    "QuizSubmission",
    "RoleOverride",
    "SubAssignment",
    "Submission",
    "SystemFlag",
    "User",
    "WikiPage",
]
