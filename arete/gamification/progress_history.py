"""
Progress History

Storage management and chart data for a user's XP history:
- xp_history holds every transaction (system of record, recent data)
- daily_summaries holds one rollup per UTC day (long-range queries)

Summaries are derived from transactions and may be rebuilt at any time;
old transactions can then be purged. Functions take the progress document
and mutate it in place where noted; the caller owns the transaction.
"""

from typing import Dict, Optional
from datetime import date, datetime, timedelta
import logging

from arete.config import SHORT_RANGE_HISTORY
from arete.exceptions import InvalidArgumentError
from arete.gamification.category_progress import parse_category
from arete.models.progress import ProgressCategory, UserProgress, XpDailySummary, utcnow
from arete.utils.datetime_helpers import day_start_utc, utc_day, week_start_sunday

logger = logging.getLogger(__name__)

TIME_RANGES = ("day", "week", "month", "year", "all")
GROUP_BY = ("day", "week", "month")

# Rough per-entry sizes used for storage estimates
TRANSACTION_SIZE_BYTES = 200
SUMMARY_SIZE_BYTES = 350
PURGE_RECOMMENDATION_THRESHOLD = 1000


def summarize_daily_xp(progress: UserProgress, day: date) -> XpDailySummary:
    """Rollup of the transactions that fall on one UTC day"""
    summary = XpDailySummary(date=day_start_utc(day))
    for tx in progress.xp_history:
        if utc_day(tx.date) != day:
            continue
        summary.total_xp += tx.amount
        summary.sources[tx.source] = summary.sources.get(tx.source, 0) + tx.amount
        if tx.category is not None:
            key = ProgressCategory(tx.category).value
            summary.categories[key] = summary.categories.get(key, 0) + tx.amount
    return summary


def build_all_daily_summaries(progress: UserProgress) -> int:
    """
    Rebuild summaries for every day that has transactions (mutates progress)

    Days whose transactions were already purged keep their existing
    summary. Summaries end up sorted by date.

    Returns:
        Number of summaries created (replaced ones are not counted)
    """
    if not progress.xp_history:
        return 0

    days = sorted({utc_day(tx.date) for tx in progress.xp_history})
    existing = {utc_day(summary.date): index for index, summary in enumerate(progress.daily_summaries)}

    created = 0
    for day in days:
        summary = summarize_daily_xp(progress, day)
        if day in existing:
            progress.daily_summaries[existing[day]] = summary
        else:
            progress.daily_summaries.append(summary)
            created += 1

    progress.daily_summaries.sort(key=lambda summary: summary.date)
    logger.debug(f"Built {len(days)} daily summaries for user {progress.user_id} ({created} new)")
    return created


def purge_old_history(progress: UserProgress, older_than: datetime, keep_summaries: bool = True) -> int:
    """
    Drop transactions from days before `older_than` (mutates progress)

    The cutoff is rounded down to UTC midnight so a day is either kept whole
    or purged whole; a rebuilt summary never covers a partly purged day.

    With keep_summaries the summaries are rebuilt first so no XP
    disappears from long-range views; without it old summaries are dropped
    too.

    Returns:
        Number of transactions purged
    """
    older_than = day_start_utc(utc_day(older_than))
    if keep_summaries:
        build_all_daily_summaries(progress)

    original_count = len(progress.xp_history)
    progress.xp_history = [tx for tx in progress.xp_history if tx.date >= older_than]
    purged = original_count - len(progress.xp_history)

    if not keep_summaries:
        original_summaries = len(progress.daily_summaries)
        progress.daily_summaries = [s for s in progress.daily_summaries if s.date >= older_than]
        logger.info(
            f"Purged {original_summaries - len(progress.daily_summaries)} old summaries "
            f"for user {progress.user_id}"
        )

    if purged:
        logger.info(f"Purged {purged} transactions older than {older_than.isoformat()} for user {progress.user_id}")
    return purged


def _range_start(time_range: str, now: datetime) -> Optional[datetime]:
    if time_range == "day":
        return day_start_utc(now.date())
    elif time_range == "week":
        return now - timedelta(days=7)
    elif time_range == "month":
        return now - timedelta(days=30)
    elif time_range == "year":
        return now - timedelta(days=365)
    return None


def _group_start(day: date, group_by: str) -> date:
    if group_by == "week":
        return week_start_sunday(day)
    elif group_by == "month":
        return day.replace(day=1)
    return day


def get_optimized_history(
    progress: UserProgress,
    time_range: str = "month",
    group_by: str = "day",
    category: str = "all",
    now: Optional[datetime] = None
) -> Dict[str, any]:
    """
    XP series for charts

    Short ranges (SHORT_RANGE_HISTORY, day/week by default) read the
    transaction history; longer ranges read daily summaries.

    Returns:
        {
            'time_range': str,
            'group_by': str,
            'category': str,
            'data': [{'date': str, 'xp': int, 'cumulative_xp': int}],
            'total_xp': int,
            'data_points': int
        }
    """
    if time_range not in TIME_RANGES:
        raise InvalidArgumentError(f"Unknown time range '{time_range}'", field="time_range", value=time_range)
    if group_by not in GROUP_BY:
        raise InvalidArgumentError(f"Unknown grouping '{group_by}'", field="group_by", value=group_by)
    category_key = "all" if category == "all" else parse_category(category).value

    now = now or utcnow()
    start = _range_start(time_range, now)
    use_transactions = time_range in SHORT_RANGE_HISTORY

    groups: Dict[date, int] = {}
    if use_transactions:
        for tx in progress.xp_history:
            if start is not None and tx.date < start:
                continue
            if category_key != "all" and (tx.category is None or ProgressCategory(tx.category).value != category_key):
                continue
            key = _group_start(utc_day(tx.date), group_by)
            groups[key] = groups.get(key, 0) + tx.amount
    else:
        for summary in progress.daily_summaries:
            if start is not None and summary.date < start:
                continue
            xp = summary.total_xp if category_key == "all" else summary.categories.get(category_key, 0)
            if category_key != "all" and xp == 0:
                continue
            key = _group_start(utc_day(summary.date), group_by)
            groups[key] = groups.get(key, 0) + xp

    data = []
    cumulative_xp = 0
    for key in sorted(groups):
        cumulative_xp += groups[key]
        data.append({
            "date": day_start_utc(key).isoformat(),
            "xp": groups[key],
            "cumulative_xp": cumulative_xp,
        })

    return {
        "time_range": time_range,
        "group_by": group_by,
        "category": category_key,
        "data": data,
        "total_xp": cumulative_xp,
        "data_points": len(data),
    }


def _kb(size_bytes: int) -> str:
    return f"{size_bytes / 1024:.1f} KB"


def get_history_storage_stats(progress: UserProgress) -> Dict[str, any]:
    """
    Size estimates and maintenance recommendation for a user's history

    Returns:
        {
            'transactions': {'count', 'estimated_size'},
            'summaries': {'count', 'estimated_size'},
            'total': {'estimated_size'},
            'date_range': {'earliest', 'latest', 'span_days'},
            'recommendations': {'should_summarize', 'should_purge', 'next_action'}
        }
    """
    transactions = progress.xp_history
    summaries = progress.daily_summaries

    transaction_size = len(transactions) * TRANSACTION_SIZE_BYTES
    summary_size = len(summaries) * SUMMARY_SIZE_BYTES

    earliest = min((tx.date for tx in transactions), default=None)
    latest = max((tx.date for tx in transactions), default=None)
    span_days = 0
    if earliest and latest:
        span = latest - earliest
        span_days = span.days + (1 if span.seconds or span.microseconds else 0)

    should_purge = len(transactions) > PURGE_RECOMMENDATION_THRESHOLD
    should_summarize = len(transactions) > 0 and len(summaries) == 0
    if should_purge:
        next_action = "purge"
    elif not summaries:
        next_action = "summarize"
    else:
        next_action = "none"

    return {
        "transactions": {"count": len(transactions), "estimated_size": _kb(transaction_size)},
        "summaries": {"count": len(summaries), "estimated_size": _kb(summary_size)},
        "total": {"estimated_size": _kb(transaction_size + summary_size)},
        "date_range": {
            "earliest": earliest.isoformat() if earliest else None,
            "latest": latest.isoformat() if latest else None,
            "span_days": span_days,
        },
        "recommendations": {
            "should_summarize": should_summarize,
            "should_purge": should_purge,
            "next_action": next_action,
        },
    }


def manage_history_storage(
    progress: UserProgress,
    keep_detailed_days: int = 90,
    auto_summarize: bool = True,
    auto_purge: bool = True,
    now: Optional[datetime] = None
) -> Dict[str, int]:
    """Summarize and purge in one maintenance pass (mutates progress)"""
    summarized = build_all_daily_summaries(progress) if auto_summarize else 0
    purged = 0
    if auto_purge:
        threshold = (now or utcnow()) - timedelta(days=keep_detailed_days)
        purged = purge_old_history(progress, threshold, keep_summaries=True)
    return {"summarized": summarized, "purged": purged}
