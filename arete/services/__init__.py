"""
Service Layer Package

Business logic services sitting between the API layer and the
progression engine / progress store.

Core Services:
- ProgressService: XP awards, achievements, categories, bodyweight, history
"""

from arete.services.container import ServiceContainer
from arete.services.progress_service import ProgressService

__all__ = [
    "ServiceContainer",
    "ProgressService",
]
