"""Unit tests for the service container"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from arete.services import container as container_module
from arete.services.container import ServiceContainer
from arete.services.progress_service import ProgressService


def test_no_process_wide_container():
    assert not hasattr(container_module, "_container")
    assert not hasattr(container_module, "get_container")


def test_containers_are_independent(store):
    first = ServiceContainer(store=store)
    second = ServiceContainer(store=store)

    assert first.progress_service is not second.progress_service


def test_progress_service_is_lazy_singleton(store):
    container = ServiceContainer(store=store)

    first = container.progress_service
    second = container.progress_service

    assert isinstance(first, ProgressService)
    assert first is second
    assert first.store is store


@pytest.mark.asyncio
async def test_close_releases_database(store):
    database = MagicMock()
    database.close_pool = AsyncMock()
    container = ServiceContainer(store=store, database=database)

    await container.close()

    database.close_pool.assert_awaited_once()


@pytest.mark.asyncio
async def test_close_without_database(store):
    await ServiceContainer(store=store).close()
