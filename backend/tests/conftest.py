"""Pytest configuration and shared fixtures."""

import os

os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from collections.abc import Generator  # noqa: E402

import fakeredis  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from lms_todo.db.base import Base  # noqa: E402
from lms_todo.db.engine import create_db_engine  # noqa: E402
from lms_todo.db.shards import ShardRegistry, ShardSessions  # noqa: E402
from lms_todo.system.flags import clear_flag_cache  # noqa: E402
from tests.helpers.seed import HOME_SHARD, OTHER_SHARD  # noqa: E402


@pytest.fixture
def registry() -> Generator[ShardRegistry, None, None]:
    """Two in-memory SQLite shards with the full schema."""
    engines = {shard_id: create_db_engine("sqlite://") for shard_id in (HOME_SHARD, OTHER_SHARD)}
    for engine in engines.values():
        Base.metadata.create_all(bind=engine)
    try:
        yield ShardRegistry(engines, default_shard_id=HOME_SHARD)
    finally:
        for engine in engines.values():
            engine.dispose()


@pytest.fixture
def shards(registry) -> Generator[ShardSessions, None, None]:
    with ShardSessions(registry).scoped() as sessions:
        yield sessions


@pytest.fixture
def db(shards) -> Session:
    """Session of the home (default) shard."""
    return shards.session_for(HOME_SHARD)


@pytest.fixture
def other_db(shards) -> Session:
    return shards.session_for(OTHER_SHARD)


@pytest.fixture
def fake_redis(monkeypatch) -> fakeredis.FakeRedis:
    """Route the to-do cache to an in-memory Redis server."""
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    monkeypatch.setattr("lms_todo.cache.redis.get_redis_client", lambda: client)
    return client


@pytest.fixture
def no_redis(monkeypatch) -> None:
    """Run with the cache disabled (every query recomputes)."""
    monkeypatch.setattr("lms_todo.cache.redis.get_redis_client", lambda: None)


@pytest.fixture(autouse=True)
def _reset_flag_cache():
    clear_flag_cache()
    yield
    clear_flag_cache()


@pytest.fixture
def client(shards, fake_redis) -> Generator[TestClient, None, None]:
    """Create a FastAPI test client bound to the test shards."""
    from lms_todo.db.session import get_shards
    from lms_todo.main import create_app

    app = create_app()

    def override_get_shards():
        yield shards

    app.dependency_overrides[get_shards] = override_get_shards
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
