"""Database session management."""

from typing import Generator

from lms_todo.core.config import settings
from lms_todo.db.shards import ShardRegistry, ShardSessions

_registry: ShardRegistry | None = None


def get_registry() -> ShardRegistry:
    """Process-wide shard registry built from settings on first use."""
    global _registry
    if _registry is None:
        _registry = ShardRegistry.from_settings(settings)
    return _registry


def get_shards() -> Generator[ShardSessions, None, None]:
    """Dependency to get request-scoped shard sessions."""
    shards = ShardSessions(get_registry())
    try:
        yield shards
    finally:
        shards.close()
