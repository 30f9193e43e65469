"""User lookup across shards."""

from lms_todo.db.shards import ShardSessions, local_id_for, shard_id_for
from lms_todo.models.user import User


def find_user(shards: ShardSessions, user_id: int) -> User | None:
    """Load a user by id (local to the default shard, or global) from its home shard."""
    shard_id = shard_id_for(user_id, shards.default_shard_id)
    if shard_id not in shards.registry.shard_ids:
        return None
    return shards.session_for(shard_id).get(User, local_id_for(user_id))
