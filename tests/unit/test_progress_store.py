"""Unit tests for progress document stores (in-memory and PostgreSQL)"""
import pytest
from prometheus_client import REGISTRY

import psycopg

from arete.db.progress_store import PostgresProgressStore
from arete.exceptions import QueryError, StorageConnectionError
from arete.models.progress import UserProgress


def transactions_count(status):
    return REGISTRY.get_sample_value("storage_transactions_total", {"status": status}) or 0


# ============================================================================
# In-Memory Store Tests
# ============================================================================

@pytest.mark.asyncio
async def test_in_memory_transaction_commits_on_clean_exit(store, test_user_id):
    committed_before = transactions_count("committed")

    async with store.transaction(test_user_id) as progress:
        progress.total_xp = 42

    saved = await store.get(test_user_id)
    assert saved.total_xp == 42
    assert transactions_count("committed") == committed_before + 1


@pytest.mark.asyncio
async def test_in_memory_transaction_discards_on_exception(store, test_user_id):
    async with store.transaction(test_user_id) as progress:
        progress.total_xp = 10

    rolled_back_before = transactions_count("rolled_back")
    with pytest.raises(RuntimeError):
        async with store.transaction(test_user_id) as progress:
            progress.total_xp = 999
            progress.xp_history.clear()
            raise RuntimeError("abort")

    saved = await store.get(test_user_id)
    assert saved.total_xp == 10
    assert transactions_count("rolled_back") == rolled_back_before + 1


@pytest.mark.asyncio
async def test_in_memory_get_returns_copy(store, test_user_id):
    await store.get_or_create(test_user_id)

    copy = await store.get(test_user_id)
    copy.total_xp = 500

    assert (await store.get(test_user_id)).total_xp == 0


@pytest.mark.asyncio
async def test_in_memory_get_unknown_user(store):
    assert await store.get("nobody") is None


@pytest.mark.asyncio
async def test_in_memory_clear(store, test_user_id):
    await store.get_or_create(test_user_id)
    store.clear()

    assert await store.get(test_user_id) is None


@pytest.mark.asyncio
async def test_in_memory_locks_kept_per_user_until_clear(store):
    for user_id in ("a", "b", "c"):
        async with store.transaction(user_id):
            pass

    assert set(store._locks) == {"a", "b", "c"}

    store.clear()

    assert len(store._locks) == 0


# ============================================================================
# PostgreSQL Store Tests (mocked connection)
# ============================================================================

@pytest.mark.asyncio
async def test_postgres_transaction_loads_and_saves(mock_database, mock_db_cursor, test_user_id):
    mock_db_cursor.fetchone.return_value = {"document": UserProgress.initial(test_user_id).model_dump(mode="json")}
    store = PostgresProgressStore(mock_database)

    async with store.transaction(test_user_id) as progress:
        assert progress.user_id == test_user_id
        progress.total_xp = 75

    statements = [call.args[0] for call in mock_db_cursor.execute.call_args_list]
    assert "INSERT INTO user_progress" in statements[0]
    assert "FOR UPDATE" in statements[1]
    assert "UPDATE user_progress" in statements[2]

    saved_document = mock_db_cursor.execute.call_args_list[2].args[1][0].obj
    assert saved_document["total_xp"] == 75


@pytest.mark.asyncio
async def test_postgres_transaction_skips_update_on_exception(mock_database, mock_db_cursor, test_user_id):
    mock_db_cursor.fetchone.return_value = {"document": UserProgress.initial(test_user_id).model_dump(mode="json")}
    store = PostgresProgressStore(mock_database)

    with pytest.raises(ValueError):
        async with store.transaction(test_user_id) as progress:
            progress.total_xp = 75
            raise ValueError("abort")

    assert mock_db_cursor.execute.call_count == 2


@pytest.mark.asyncio
async def test_postgres_transaction_wraps_connection_errors(mock_database, mock_db_cursor, test_user_id):
    mock_db_cursor.execute.side_effect = psycopg.OperationalError("connection refused")
    store = PostgresProgressStore(mock_database)

    with pytest.raises(StorageConnectionError):
        async with store.transaction(test_user_id):
            pass


@pytest.mark.asyncio
async def test_postgres_get(mock_database, mock_db_cursor, test_user_id):
    store = PostgresProgressStore(mock_database)

    assert await store.get(test_user_id) is None

    mock_db_cursor.fetchone.return_value = {"document": {"user_id": test_user_id, "total_xp": 120, "level": 2}}
    progress = await store.get(test_user_id)
    assert progress.total_xp == 120
    assert progress.category_progress["legs"].level == 1


@pytest.mark.asyncio
async def test_postgres_get_wraps_query_errors(mock_database, mock_db_cursor, test_user_id):
    mock_db_cursor.execute.side_effect = psycopg.ProgrammingError("relation does not exist")
    store = PostgresProgressStore(mock_database)

    with pytest.raises(QueryError):
        await store.get(test_user_id)


@pytest.mark.asyncio
async def test_postgres_ensure_schema(mock_database, mock_db_cursor):
    store = PostgresProgressStore(mock_database)

    await store.ensure_schema()

    assert "CREATE TABLE IF NOT EXISTS user_progress" in mock_db_cursor.execute.call_args.args[0]
    mock_database.conn.commit.assert_awaited_once()
