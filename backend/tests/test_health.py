"""Tests for health and readiness endpoints."""

from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from lms_todo.core.config import settings
from lms_todo.db.shards import ShardSessions


class TestHealth:
    """Test liveness and readiness."""

    def test_health(self, client):
        response = client.get("/v1/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_ready_checks_every_shard(self, client):
        """Each shard database is checked; a reachable cache means ok."""
        with patch("lms_todo.api.v1.endpoints.health.is_redis_available", return_value=True):
            response = client.get("/v1/ready")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["checks"]["shard_1"]["status"] == "ok"
        assert body["checks"]["shard_2"]["status"] == "ok"
        assert body["checks"]["todo_cache"]["status"] == "ok"
        assert body["request_id"]

    def test_ready_degraded_without_cache(self, client):
        with patch.object(settings, "REDIS_REQUIRED", False):
            with patch("lms_todo.api.v1.endpoints.health.is_redis_available", return_value=False):
                body = client.get("/v1/ready").json()

        assert body["status"] == "degraded"
        assert body["checks"]["todo_cache"]["message"] == "To-do cache unavailable"

    def test_ready_down_when_cache_required(self, client):
        with patch.object(settings, "REDIS_REQUIRED", True):
            with patch("lms_todo.api.v1.endpoints.health.is_redis_available", return_value=False):
                body = client.get("/v1/ready").json()

        assert body["status"] == "down"

    def test_ready_caching_disabled(self, client):
        with patch.object(settings, "REDIS_ENABLED", False):
            body = client.get("/v1/ready").json()

        assert body["status"] == "ok"
        assert body["checks"]["todo_cache"]["message"] == "Caching disabled"

    def test_unreachable_shard_is_down(self, client, shards):
        real_session_for = ShardSessions.session_for

        def session_for(self, shard_id):
            if shard_id == 2:
                raise OperationalError("SELECT 1", {}, Exception("connection refused"))
            return real_session_for(self, shard_id)

        with patch("lms_todo.api.v1.endpoints.health.is_redis_available", return_value=True):
            with patch.object(ShardSessions, "session_for", session_for):
                body = client.get("/v1/ready").json()

        assert body["status"] == "down"
        assert body["checks"]["shard_1"]["status"] == "ok"
        assert body["checks"]["shard_2"] == {"status": "down", "message": "Shard 2 unreachable"}
