"""To-do list endpoints for the acting user."""

from typing import Annotated

from fastapi import APIRouter, Query
from sqlalchemy.orm import Session

from lms_todo.core.app_exceptions import bad_request, forbidden, not_found
from lms_todo.core.config import settings
from lms_todo.core.dependencies import CurrentUser, Shards
from lms_todo.db.shards import local_id_for, relative_id_for, shard_id_for, shard_of
from lms_todo.models.course import Group
from lms_todo.models.discussion import DiscussionTopic
from lms_todo.models.submission import AssessmentRequest
from lms_todo.models.wiki_page import WikiPage
from lms_todo.schemas.todo import IgnoreResponse, TodoItemCountResponse, TodoListResponse
from lms_todo.security.permissions import member_of, participates_in
from lms_todo.todo.ignores import ASSET_MODELS, ignore_item
from lms_todo.todo.items import load_contexts
from lms_todo.todo.kinds import Purpose, UnknownObjectKindError, parse_asset_string
from lms_todo.todo.needs_query import UserLearningObjectScopes
from lms_todo.todo.options import ContextRef, SubmittingOptions, UngradedQuizOptions
from lms_todo.todo.presenter import ToDoListPresenter

router = APIRouter()


def _parse_context_codes(context_codes: list[str] | None) -> list[ContextRef] | None:
    if context_codes is None:
        return None
    try:
        return [ContextRef.from_asset_string(code) for code in context_codes]
    except ValueError as e:
        raise bad_request("INVALID_CONTEXT_CODE", str(e)) from e


@router.get("/users/self/todo", response_model=TodoListResponse)
def get_todo_list(
    shards: Shards,
    current_user: CurrentUser,
    context_codes: Annotated[list[str] | None, Query()] = None,
):
    """
    Grouped to-do lists of the acting user.

    Each list holds every entry; the client shows the first ``visible_limit`` and
    reports ``hidden_counts`` for the rest.
    """
    presenter = ToDoListPresenter(shards, current_user, _parse_context_codes(context_codes))
    lists = {
        "needs_grading": presenter.needs_grading,
        "needs_moderation": presenter.needs_moderation,
        "needs_submitting": presenter.needs_submitting,
        "needs_reviewing": presenter.needs_reviewing,
    }
    return TodoListResponse(
        **{name: [entry.to_entry() for entry in entries] for name, entries in lists.items()},
        visible_limit=presenter.visible_limit,
        hidden_counts={name: presenter.hidden_count_for(entries) for name, entries in lists.items()},
        hidden_count=presenter.hidden_count,
        show_context=presenter.show_context(),
        any_assignments=presenter.any_assignments(),
    )


@router.get("/users/self/todo_item_count", response_model=TodoItemCountResponse)
def get_todo_item_count(shards: Shards, current_user: CurrentUser):
    """Counts for the to-do badge: submissions to grade and assignments to submit."""
    scopes = UserLearningObjectScopes(shards, current_user)
    limit = settings.TODO_PRESENTER_FETCH_LIMIT
    submitting = scopes.assignments_needing_submitting(SubmittingOptions(include_ungraded=True, limit=limit))
    quizzes = scopes.ungraded_quizzes(UngradedQuizOptions(needing_submitting=True, limit=limit))
    return TodoItemCountResponse(
        needs_grading_count=scopes.submissions_needing_grading_count(),
        assignments_needing_submitting=len(submitting) + len(quizzes),
    )


def _can_ignore(current_user, asset) -> bool:
    if isinstance(asset, AssessmentRequest):
        return asset.assessor_id == relative_id_for(current_user.id, shard_of(current_user), shard_of(asset))
    if isinstance(asset, (DiscussionTopic, WikiPage)):
        contexts = load_contexts(Session.object_session(asset), [asset])
        context = contexts.get((asset.context_type, asset.context_id))
    else:
        context = asset.context
    if context is None:
        return False
    if isinstance(context, Group):
        return member_of(current_user, context)
    return participates_in(current_user, context)


@router.delete("/users/self/todo/{asset_string}/{purpose}", response_model=IgnoreResponse)
def ignore_todo_item(
    asset_string: str,
    purpose: Purpose,
    shards: Shards,
    current_user: CurrentUser,
    permanent: bool = False,
):
    """
    Ignore an item on one of the acting user's to-do lists.

    A non-permanent ignore lasts until the next triggering change (new submission
    or new provisional grade); a permanent one sticks.
    """
    try:
        kind, asset_id = parse_asset_string(asset_string)
    except UnknownObjectKindError as e:
        raise bad_request("INVALID_ASSET_STRING", str(e)) from e

    shard_id = shard_id_for(asset_id, shards.default_shard_id)
    if shard_id not in shards.registry.shard_ids:
        raise not_found("Asset")
    asset = shards.session_for(shard_id).get(ASSET_MODELS[kind], local_id_for(asset_id))
    if asset is None:
        raise not_found("Asset")
    if not _can_ignore(current_user, asset):
        raise forbidden()

    ignore = ignore_item(current_user, asset, purpose, permanent=permanent)
    return IgnoreResponse(
        asset_type=ignore.asset_type,
        asset_id=asset_id,
        purpose=ignore.purpose,
        permanent=ignore.permanent,
    )
