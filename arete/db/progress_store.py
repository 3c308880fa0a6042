"""
Progress document storage

One UserProgress document per user. Every read-modify-write of a document
goes through ProgressStore.transaction(), which serializes writers for the
same user and commits all-or-nothing:

    async with store.transaction(user_id) as progress:
        progress.total_xp += 10      # visible to others only on clean exit

An exception inside the block discards every change made to `progress`.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncGenerator, Optional

import psycopg
from psycopg.types.json import Jsonb

from arete.db.connection import Database
from arete.exceptions import wrap_storage_exception
from arete.models.progress import UserProgress, utcnow
from arete.observability.metrics import storage_transactions_total

logger = logging.getLogger(__name__)


class ProgressStore(ABC):
    """Persistence collaborator for user progress documents"""

    @abstractmethod
    def transaction(self, user_id: str) -> AsyncContextManager[UserProgress]:
        """Load (or lazily create) the user's document for an atomic update"""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[UserProgress]:
        """Current committed document, or None if the user has none yet"""

    async def get_or_create(self, user_id: str) -> UserProgress:
        async with self.transaction(user_id) as progress:
            return progress.model_copy(deep=True)


CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS user_progress (
    user_id TEXT PRIMARY KEY,
    document JSONB NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
)
"""


class PostgresProgressStore(ProgressStore):
    """
    JSONB document per user in table `user_progress`

    Writers for the same user are serialized by a row lock
    (SELECT ... FOR UPDATE) held for the whole transaction block.
    """

    def __init__(self, database: Database):
        self.database = database

    async def ensure_schema(self) -> None:
        try:
            async with self.database.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(CREATE_TABLE_SQL)
                await conn.commit()
            logger.info("user_progress table ready")
        except psycopg.Error as e:
            raise wrap_storage_exception(e, operation="ensure_schema")

    @asynccontextmanager
    async def transaction(self, user_id: str) -> AsyncGenerator[UserProgress, None]:
        try:
            async with self.database.connection() as conn:
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        await cur.execute(
                            """
                            INSERT INTO user_progress (user_id, document)
                            VALUES (%s, %s)
                            ON CONFLICT (user_id) DO NOTHING
                            """,
                            (user_id, Jsonb(UserProgress.initial(user_id).model_dump(mode="json")))
                        )
                        await cur.execute(
                            "SELECT document FROM user_progress WHERE user_id = %s FOR UPDATE",
                            (user_id,)
                        )
                        row = await cur.fetchone()
                        progress = UserProgress.model_validate(row["document"])

                        try:
                            yield progress
                        except Exception:
                            storage_transactions_total.labels(status="rolled_back").inc()
                            raise

                        progress.last_updated = utcnow()
                        await cur.execute(
                            """
                            UPDATE user_progress
                            SET document = %s, updated_at = now()
                            WHERE user_id = %s
                            """,
                            (Jsonb(progress.model_dump(mode="json")), user_id)
                        )
            storage_transactions_total.labels(status="committed").inc()
        except psycopg.Error as e:
            raise wrap_storage_exception(e, operation="progress_transaction", user_id=user_id)

    async def get(self, user_id: str) -> Optional[UserProgress]:
        try:
            async with self.database.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        "SELECT document FROM user_progress WHERE user_id = %s",
                        (user_id,)
                    )
                    row = await cur.fetchone()
        except psycopg.Error as e:
            raise wrap_storage_exception(e, operation="get_progress", user_id=user_id)

        if not row:
            return None
        return UserProgress.model_validate(row["document"])
