"""Tests for the shared Redis connection behind the to-do cache."""

import logging

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from lms_todo.core import redis_client
from lms_todo.core.config import settings
from lms_todo.core.redis_client import RedisUnavailableError, get_redis_client, is_redis_available

LOGGER = "lms_todo.core.redis_client"


@pytest.fixture(autouse=True)
def _fresh_client(monkeypatch):
    monkeypatch.setattr(redis_client, "_client", None)
    monkeypatch.setattr(redis_client, "_last_failure", None)
    monkeypatch.setattr(settings, "REDIS_ENABLED", True)
    monkeypatch.setattr(settings, "REDIS_REQUIRED", False)
    monkeypatch.setattr(settings, "REDIS_URL", "redis://cache.invalid:6379/0")


def _refuse(url):
    raise RedisConnectionError(f"cannot reach {url}")


def test_disabled_cache_has_no_client(monkeypatch):
    monkeypatch.setattr(settings, "REDIS_ENABLED", False)

    assert get_redis_client() is None
    assert is_redis_available() is False


def test_missing_url_disables_caching(monkeypatch):
    monkeypatch.setattr(settings, "REDIS_URL", None)

    assert get_redis_client() is None


def test_missing_url_fails_when_required(monkeypatch):
    monkeypatch.setattr(settings, "REDIS_URL", None)
    monkeypatch.setattr(settings, "REDIS_REQUIRED", True)

    with pytest.raises(RedisUnavailableError, match="REDIS_URL is not set"):
        get_redis_client()


def test_unreachable_redis_warns_once(monkeypatch, caplog):
    monkeypatch.setattr(redis_client, "_connect", _refuse)

    with caplog.at_level(logging.WARNING, logger=LOGGER):
        assert get_redis_client() is None
        assert get_redis_client() is None

    warnings = [r for r in caplog.records if r.message == "todo_cache_unavailable"]
    assert len(warnings) == 1
    assert "cache.invalid" in warnings[0].reason


def test_unreachable_redis_fails_when_required(monkeypatch):
    monkeypatch.setattr(redis_client, "_connect", _refuse)
    monkeypatch.setattr(settings, "REDIS_REQUIRED", True)

    with pytest.raises(RedisUnavailableError):
        get_redis_client()


def test_client_is_reused_after_connecting(monkeypatch):
    connected = []

    def connect(url):
        connected.append(url)
        return object()

    monkeypatch.setattr(redis_client, "_connect", connect)

    first = get_redis_client()

    assert get_redis_client() is first
    assert connected == ["redis://cache.invalid:6379/0"]
