"""Global test fixtures and utilities for arete tests"""
import pytest
from unittest.mock import AsyncMock, MagicMock
from datetime import datetime, timedelta, timezone

from arete.gamification.mock_store import InMemoryProgressStore
from arete.models.progress import UserProgress, XpTransaction
from arete.models.task import TaskRecord


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def store():
    """Fresh in-memory progress store"""
    return InMemoryProgressStore()


@pytest.fixture
def mock_db_cursor():
    """Mock database cursor with standard query results"""
    cursor = AsyncMock()
    cursor.fetchone = AsyncMock(return_value=None)
    cursor.fetchall = AsyncMock(return_value=[])
    cursor.execute = AsyncMock()
    return cursor


@pytest.fixture
def mock_database(mock_db_cursor):
    """Database whose connection() yields a connection around mock_db_cursor"""

    class _AsyncCM:
        def __init__(self, value):
            self.value = value

        async def __aenter__(self):
            return self.value

        async def __aexit__(self, exc_type, exc, tb):
            return False

    conn = MagicMock()
    conn.cursor = MagicMock(return_value=_AsyncCM(mock_db_cursor))
    conn.transaction = MagicMock(side_effect=lambda: _AsyncCM(None))
    conn.commit = AsyncMock()

    database = MagicMock()
    database.connection = MagicMock(side_effect=lambda: _AsyncCM(conn))
    database.conn = conn
    return database


# ============================================================================
# User & Progress Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "123456789"


@pytest.fixture
def fresh_progress(test_user_id):
    """Level 1 progress document with no history"""
    return UserProgress.initial(test_user_id)


@pytest.fixture
def fixed_now():
    """Fixed 'now' (a Wednesday) for date-dependent tests"""
    return datetime(2024, 3, 13, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def progress_with_history(test_user_id, fixed_now):
    """Progress with ten days of push and uncategorized transactions ending at fixed_now"""
    progress = UserProgress.initial(test_user_id)
    for days_ago in range(10):
        when = fixed_now - timedelta(days=days_ago)
        progress.xp_history.append(XpTransaction(date=when, amount=10, source="set_logged", category="push"))
        progress.xp_history.append(XpTransaction(date=when, amount=5, source="task_completion"))
    progress.total_xp = 150
    return progress


# ============================================================================
# Task Fixtures
# ============================================================================

@pytest.fixture
def make_task():
    """Factory for TaskRecord with sensible defaults"""

    def _make(task_id="t1", **overrides):
        data = {
            "id": task_id,
            "name": f"Task {task_id}",
            "created_at": datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc),
        }
        data.update(overrides)
        return TaskRecord(**data)

    return _make
