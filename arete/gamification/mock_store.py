"""
In-memory progress store

Used for development and tests. Documents live in a dict; each
transaction works on a deep copy and swaps it in only on clean exit, so a
failed operation leaves the committed document untouched.
"""

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from arete.db.progress_store import ProgressStore
from arete.models.progress import UserProgress, utcnow
from arete.observability.metrics import storage_transactions_total

logger = logging.getLogger(__name__)


class InMemoryProgressStore(ProgressStore):
    """
    Process-local store; documents are NOT persisted

    One asyncio.Lock is kept per user ever seen and only released by
    clear(), so memory grows with the number of distinct users. Fine for
    tests and development, not for a long-running multi-user process.
    """

    def __init__(self):
        self._documents: Dict[str, UserProgress] = {}
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def transaction(self, user_id: str) -> AsyncGenerator[UserProgress, None]:
        async with self._locks[user_id]:
            committed = self._documents.get(user_id)
            if committed is None:
                logger.debug(f"Creating progress document for user {user_id}")
                working = UserProgress.initial(user_id)
            else:
                working = committed.model_copy(deep=True)

            try:
                yield working
            except Exception:
                storage_transactions_total.labels(status="rolled_back").inc()
                raise

            working.last_updated = utcnow()
            self._commit(user_id, working)
            storage_transactions_total.labels(status="committed").inc()

    def _commit(self, user_id: str, progress: UserProgress) -> None:
        self._documents[user_id] = progress

    async def get(self, user_id: str) -> Optional[UserProgress]:
        committed = self._documents.get(user_id)
        return committed.model_copy(deep=True) if committed else None

    def clear(self) -> None:
        self._documents.clear()
        self._locks.clear()
