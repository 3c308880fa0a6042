#!/usr/bin/env python3
"""
XP History Maintenance Script

Summarizes and purges old XP transactions for one user's progress
document in Postgres.

Actions:
- summarize: rebuild daily summaries from the transaction history
- purge: drop transactions older than --keep-days (summaries rebuilt first)
- auto: both, then print storage stats

Usage:
    python scripts/history_maintenance.py auto --user-id 123 --keep-days 90
    python scripts/history_maintenance.py stats --user-id 123

Requirements:
    - Database connection configured (DATABASE_URL env var)
"""
import argparse
import asyncio
import json
import logging
import sys
from datetime import timedelta
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from arete import __version__
from arete.config import HISTORY_KEEP_DAYS, LOG_LEVEL, validate_config
from arete.db.connection import Database
from arete.db.progress_store import PostgresProgressStore
from arete.exceptions import AreteError
from arete.gamification.progress_history import build_all_daily_summaries, purge_old_history
from arete.models.progress import utcnow
from arete.observability.metrics import init_metrics
from arete.services.container import ServiceContainer

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Summarize and purge XP history")
    parser.add_argument("action", choices=["summarize", "purge", "auto", "stats"])
    parser.add_argument("--user-id", required=True)
    parser.add_argument("--keep-days", type=int, default=HISTORY_KEEP_DAYS)
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, container: ServiceContainer) -> None:
    store = container.store
    service = container.progress_service

    if args.action == "summarize":
        async with store.transaction(args.user_id) as progress:
            created = build_all_daily_summaries(progress)
        logger.info(f"Created {created} daily summaries for user {args.user_id}")

    elif args.action == "purge":
        threshold = utcnow() - timedelta(days=args.keep_days)
        async with store.transaction(args.user_id) as progress:
            purged = purge_old_history(progress, threshold, keep_summaries=True)
        logger.info(f"Purged {purged} transactions for user {args.user_id}")

    elif args.action == "auto":
        result = await service.manage_history_storage(args.user_id, keep_detailed_days=args.keep_days)
        logger.info(f"Summarized: {result['summarized']}, purged: {result['purged']}")
        print(json.dumps(result["stats"], indent=2))

    else:
        stats = await service.get_history_storage_stats(args.user_id)
        print(json.dumps(stats, indent=2))


async def main():
    """Run history maintenance"""
    args = parse_args()
    init_metrics(__version__)
    database = Database()
    store = PostgresProgressStore(database)
    container = ServiceContainer(store=store, database=database)

    try:
        validate_config()
        logger.info("Initializing database connection...")
        await database.init_pool()
        await store.ensure_schema()
        await run(args, container)
    except AreteError as e:
        logger.error(f"History maintenance failed: {e}")
        sys.exit(1)
    finally:
        await container.close()


if __name__ == "__main__":
    asyncio.run(main())
