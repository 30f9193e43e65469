"""Naive-UTC time helpers shared by queries and presenters."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    # Columns are stored as naive UTC so comparisons behave the same on every backend.
    return datetime.now(UTC).replace(tzinfo=None)
