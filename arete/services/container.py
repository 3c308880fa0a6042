"""
Service Container - Dependency Injection Container

Simple DI container for managing service instances and their dependencies.
Uses lazy loading to only instantiate services when first accessed.

The container is owned by whoever builds it (API startup, a script, a
test) and is passed explicitly to the code that needs services; there is
no process-wide instance.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    Infrastructure dependencies (store, database) are injected.
    """

    # Infrastructure dependencies (injected)
    store: object  # ProgressStore instance
    database: Optional[object] = None  # Database pool owner, when the store is Postgres-backed

    # Services (lazy-loaded via properties)
    _progress_service: Optional[object] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        logger.info("Service container initialized")

    @property
    def progress_service(self):
        """Get ProgressService instance (lazy-loaded)"""
        if self._progress_service is None:
            from arete.services.progress_service import ProgressService
            self._progress_service = ProgressService(self.store)
            logger.debug("ProgressService instantiated")
        return self._progress_service

    async def close(self) -> None:
        """Release infrastructure held by the container"""
        if self.database is not None:
            await self.database.close_pool()
