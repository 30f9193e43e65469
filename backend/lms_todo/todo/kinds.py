"""Learning object kinds and to-do purposes."""

from enum import Enum


class UnknownObjectKindError(ValueError):
    """Raised for an object kind string no builder knows about."""


class Purpose(str, Enum):
    """Why a learning object is on a user's to-do list."""

    GRADING = "grading"
    MODERATION = "moderation"
    SUBMITTING = "submitting"
    REVIEWING = "reviewing"
    VIEWING = "viewing"
    SUBMITTED = "submitted"


class ObjectKind(str, Enum):
    """Learning object kinds a to-do list can be built from."""

    ASSIGNMENT = "Assignment"
    SUB_ASSIGNMENT = "SubAssignment"
    QUIZ = "Quizzes::Quiz"
    ASSESSMENT_REQUEST = "AssessmentRequest"
    DISCUSSION_TOPIC = "DiscussionTopic"
    WIKI_PAGE = "WikiPage"

    @classmethod
    def parse(cls, value: "ObjectKind | str") -> "ObjectKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownObjectKindError(f"Unknown learning object kind: {value!r}") from None

    @property
    def asset_type(self) -> str:
        """Asset type stored on Ignore rows (sub-assignments share the assignments table)."""
        if self is ObjectKind.SUB_ASSIGNMENT:
            return ObjectKind.ASSIGNMENT.value
        return self.value

    @property
    def is_assignment(self) -> bool:
        return self in (ObjectKind.ASSIGNMENT, ObjectKind.SUB_ASSIGNMENT)


# Asset string prefixes accepted by the ignore endpoint ("assignment_12", "quiz_3", ...)
ASSET_STRING_KINDS = {
    "assignment": ObjectKind.ASSIGNMENT,
    "quiz": ObjectKind.QUIZ,
    "assessment_request": ObjectKind.ASSESSMENT_REQUEST,
    "discussion_topic": ObjectKind.DISCUSSION_TOPIC,
    "wiki_page": ObjectKind.WIKI_PAGE,
}


def parse_asset_string(asset_string: str) -> tuple[ObjectKind, int]:
    """Split ``"assignment_12"`` into ``(ObjectKind.ASSIGNMENT, 12)``."""
    prefix, _, raw_id = asset_string.rpartition("_")
    if prefix not in ASSET_STRING_KINDS or not raw_id.isdigit():
        raise UnknownObjectKindError(f"Unknown asset string: {asset_string!r}")
    return ASSET_STRING_KINDS[prefix], int(raw_id)
