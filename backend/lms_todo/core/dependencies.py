"""FastAPI dependencies for the acting user."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from lms_todo.common.request_context import record_user
from lms_todo.db.session import get_shards
from lms_todo.db.shards import ShardSessions, global_id
from lms_todo.models.user import User
from lms_todo.services.users import find_user


def get_current_user(
    x_user_id: Annotated[int | None, Header()] = None,
    shards: ShardSessions = Depends(get_shards),
) -> User:
    """Dependency returning the acting user named by the ``X-User-Id`` header.

    Session handling lives in front of this service; the header carries the
    authenticated user's id (local to the default shard, or global).
    """
    if x_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header missing",
        )

    user = find_user(shards, x_user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    record_user(global_id(user))
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
Shards = Annotated[ShardSessions, Depends(get_shards)]
