"""Shard registry and global-id arithmetic.

Records are spread over independent databases ("shards"). Every id is either
*local* (relative to the shard the current session belongs to) or *global*
(``shard_id * SHARD_ID_RANGE + local_id``). Sessions opened through the registry
carry their shard id in ``session.info["shard_id"]`` so ORM objects can always be
mapped back to a global id.

Cross-shard work is expressed as an explicit partition map (shard id -> local ids)
processed in ascending shard order; there is no ambient "current shard".
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, object_session, sessionmaker

from lms_todo.common.request_context import record_fan_out
from lms_todo.core.config import Settings
from lms_todo.core.logging import get_logger
from lms_todo.db.engine import create_db_engine

logger = get_logger(__name__)

SHARD_ID_RANGE = 10_000_000_000_000


def local_id_for(id_: int) -> int:
    return id_ % SHARD_ID_RANGE


def shard_id_for(id_: int, current_shard_id: int) -> int:
    """Shard that owns ``id_``; local ids belong to ``current_shard_id``."""
    if id_ >= SHARD_ID_RANGE:
        return id_ // SHARD_ID_RANGE
    return current_shard_id


def global_id_for(id_: int, current_shard_id: int) -> int:
    if id_ >= SHARD_ID_RANGE:
        return id_
    return current_shard_id * SHARD_ID_RANGE + id_


def relative_id_for(id_: int, source_shard_id: int, target_shard_id: int) -> int:
    """Express an id (relative to ``source_shard_id``) as seen from ``target_shard_id``."""
    global_id = global_id_for(id_, source_shard_id)
    if global_id // SHARD_ID_RANGE == target_shard_id:
        return local_id_for(global_id)
    return global_id


def partition_by_shard(ids: Iterable[int], current_shard_id: int) -> dict[int, list[int]]:
    """Split ids into ``{shard_id: [local ids]}`` ordered by shard id."""
    partitions: dict[int, list[int]] = {}
    for id_ in ids:
        partitions.setdefault(shard_id_for(id_, current_shard_id), []).append(local_id_for(id_))
    return {shard_id: partitions[shard_id] for shard_id in sorted(partitions)}


def shard_of(obj) -> int:
    """Shard id of the session an ORM object is attached to."""
    session = object_session(obj)
    if session is None or "shard_id" not in session.info:
        raise ValueError(f"{type(obj).__name__} is not attached to a shard session")
    return session.info["shard_id"]


def global_id(obj) -> int:
    return global_id_for(obj.id, shard_of(obj))


class ShardRegistry:
    """Process-wide map of shard id -> engine/session factory."""

    def __init__(self, engines: dict[int, Engine], default_shard_id: int):
        if default_shard_id not in engines:
            raise ValueError(f"Default shard {default_shard_id} has no engine")
        self.engines = dict(sorted(engines.items()))
        self.default_shard_id = default_shard_id
        self._factories = {
            shard_id: sessionmaker(
                bind=engine,
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
                info={"shard_id": shard_id},
            )
            for shard_id, engine in self.engines.items()
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> ShardRegistry:
        engines = {
            shard_id: create_db_engine(url)
            for shard_id, url in settings.shard_database_urls().items()
        }
        return cls(engines, settings.DEFAULT_SHARD_ID)

    @property
    def shard_ids(self) -> list[int]:
        return list(self.engines)

    def open_session(self, shard_id: int) -> Session:
        try:
            factory = self._factories[shard_id]
        except KeyError:
            raise KeyError(f"Unknown shard {shard_id}") from None
        return factory()


class ShardSessions:
    """Request-scoped sessions, opened lazily, one per shard."""

    def __init__(self, registry: ShardRegistry):
        self.registry = registry
        self._sessions: dict[int, Session] = {}

    @property
    def default_shard_id(self) -> int:
        return self.registry.default_shard_id

    def session_for(self, shard_id: int) -> Session:
        session = self._sessions.get(shard_id)
        if session is None:
            session = self.registry.open_session(shard_id)
            self._sessions[shard_id] = session
        return session

    @property
    def default(self) -> Session:
        return self.session_for(self.default_shard_id)

    def fan_out(self, partitions: dict[int, object]) -> Iterator[tuple[int, Session, object]]:
        """Yield ``(shard_id, session, payload)`` in ascending shard order."""
        record_fan_out(partitions)
        for shard_id in sorted(partitions):
            yield shard_id, self.session_for(shard_id), partitions[shard_id]

    def commit(self) -> None:
        for session in self._sessions.values():
            session.commit()

    def close(self) -> None:
        for shard_id, session in self._sessions.items():
            try:
                session.close()
            except Exception as e:
                logger.warning(
                    "shard_session_close_failed",
                    extra={"event": "shard_session_close_failed", "shard_id": shard_id, "error": str(e)},
                )
        self._sessions.clear()

    @contextmanager
    def scoped(self) -> Iterator[ShardSessions]:
        try:
            yield self
        finally:
            self.close()
