"""
XP Award Coordinator

Single entry point for crediting XP from any domain event. One award is
one atomic store transaction:

1. Load the user's progress (created lazily on first award)
2. Snapshot previous total/level
3. Apply: total XP, global level, category pool/level/milestone, history entry
4. Achievement scan; unlocked rewards are applied through step 3 with
   source "achievement_unlock" and are never rescanned
5. Assemble the XpAwardResult

A failure at any step commits nothing. award_xp_shares() runs steps 2-3 once
per share of a multi-category event (a workout) and the scan once, still in
a single transaction.

Level curve: see level_curve.py (same curve for global and category levels).
"""

from typing import Dict, List, Optional, Tuple
from datetime import datetime, timedelta
import logging
import math
import time

from arete.config import AUTO_AWARD_ACHIEVEMENT_XP
from arete.db.progress_store import ProgressStore
from arete.exceptions import InvalidArgumentError, NotFoundError
from arete.gamification.achievement_system import (
    EXERCISE_UNLOCKS,
    award_achievements,
    check_achievements,
    check_exercise_unlocks,
)
from arete.gamification.category_progress import apply_category_xp, parse_category
from arete.gamification.level_curve import (
    get_level_info,
    level_from_xp,
    progress_percent_within_level,
    xp_to_next_level,
)
from arete.models.progress import (
    AchievementAwardInfo,
    CategoryAwardInfo,
    ProgressCategory,
    UserProgress,
    XpAwardResult,
    XpTransaction,
    utcnow,
)
from arete.observability.metrics import record_award, xp_award_duration_seconds

logger = logging.getLogger(__name__)


def validate_user_id(user_id) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise NotFoundError(
            f"Invalid user identifier: {user_id!r}",
            record_type="User",
            record_id=str(user_id)
        )
    return user_id


def validate_xp_amount(amount, user_id: Optional[str] = None) -> int:
    """Accept non-negative integers (integral floats are converted)"""
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise InvalidArgumentError("XP amount must be an integer", field="amount", value=amount, user_id=user_id)
    if isinstance(amount, float):
        if math.isnan(amount) or not amount.is_integer():
            raise InvalidArgumentError("XP amount must be an integer", field="amount", value=amount, user_id=user_id)
        amount = int(amount)
    if amount < 0:
        raise InvalidArgumentError("XP amount must not be negative", field="amount", value=amount, user_id=user_id)
    return amount


def _propagate_exercise_unlocks(progress: UserProgress) -> List[str]:
    """Record newly unlocked advanced exercises on their category"""
    newly_unlocked = []
    for exercise_id in check_exercise_unlocks(progress.category_levels()):
        target = progress.category_progress[EXERCISE_UNLOCKS[exercise_id]["category"]]
        if exercise_id not in target.unlocked_exercises:
            target.unlocked_exercises.append(exercise_id)
            newly_unlocked.append(exercise_id)
            logger.info(f"User {progress.user_id} unlocked exercise {exercise_id}")
    return newly_unlocked


def apply_activity_update(
    progress: UserProgress,
    longest_streak: Optional[int] = None,
    nutrition_streak: Optional[int] = None,
    completed_workouts: int = 0
) -> None:
    """Fold a domain event into the counters achievement rules read"""
    activity = progress.activity
    if longest_streak is not None:
        activity.longest_streak = max(activity.longest_streak, longest_streak)
    if nutrition_streak is not None:
        activity.nutrition_streak = max(activity.nutrition_streak, nutrition_streak)
    if completed_workouts:
        activity.completed_workouts += completed_workouts


def apply_xp(
    progress: UserProgress,
    amount: int,
    source: str,
    category=None,
    details: Optional[str] = None,
    when: Optional[datetime] = None
) -> Optional[Dict[str, any]]:
    """
    Credit `amount` to `progress` in place (no validation, no achievement scan)

    Returns:
        apply_category_xp() result when a category is given, else None
    """
    when = when or utcnow()

    progress.total_xp += amount
    progress.level = level_from_xp(progress.total_xp)

    category_info = None
    tx_category = None
    if category is not None:
        category_info = apply_category_xp(progress, category, amount)
        tx_category = ProgressCategory(category_info["category"])
        _propagate_exercise_unlocks(progress)

    progress.xp_history.append(XpTransaction(
        date=when,
        amount=amount,
        source=source,
        category=tx_category,
        details=details,
    ))

    return category_info


def _build_result(
    progress: UserProgress,
    previous_xp: int,
    previous_level: int,
    amount: int,
    category: Optional[ProgressCategory],
    category_info: Optional[Dict[str, any]],
    achievements: Optional[AchievementAwardInfo] = None
) -> XpAwardResult:
    return XpAwardResult(
        previous_xp=previous_xp,
        previous_level=previous_level,
        total_xp=progress.total_xp,
        current_level=progress.level,
        xp_added=amount,
        leveled_up=progress.level > previous_level,
        xp_to_next_level=xp_to_next_level(progress.total_xp, progress.level),
        progress_percent=progress_percent_within_level(progress.total_xp, progress.level),
        achievements=achievements,
        category=CategoryAwardInfo(
            name=category,
            previous_xp=category_info["previous_xp"],
            current_xp=category_info["current_xp"],
            previous_level=category_info["previous_level"],
            current_level=category_info["current_level"],
            leveled_up=category_info["leveled_up"],
            milestone=category_info["milestone"],
        ) if category_info else None,
    )


def _scan_achievements(progress: UserProgress, credit_xp: bool, when: datetime) -> Optional[AchievementAwardInfo]:
    satisfied = check_achievements(progress)
    if not satisfied:
        return None
    awarded = award_achievements(progress, satisfied, credit_xp=credit_xp, when=when)
    if not awarded["unlocked"]:
        return None
    return AchievementAwardInfo(
        unlocked=awarded["unlocked"],
        count=len(awarded["unlocked"]),
        total_xp_awarded=awarded["total_xp_awarded"],
    )


async def award_xp(
    store: ProgressStore,
    user_id: str,
    amount: int,
    source: str,
    category=None,
    details: Optional[str] = None,
    *,
    auto_award_achievements: Optional[bool] = None,
    activity: Optional[Dict[str, int]] = None
) -> XpAwardResult:
    """
    Award XP to a user, update levels and unlock achievements

    Args:
        store: Progress store
        user_id: User identifier
        amount: Non-negative XP amount
        source: Event tag (task_completion, workout_completion, ...)
        category: Optional movement category (core/push/pull/legs)
        details: Free-text description kept in the history entry
        auto_award_achievements: Credit achievement XP now (claimed) or leave
            it pending for a claim; defaults to AUTO_AWARD_ACHIEVEMENT_XP
        activity: Counter updates for apply_activity_update(), applied in
            the same transaction before the achievement scan

    Raises:
        NotFoundError: Invalid user identifier
        InvalidArgumentError: Negative/NaN/non-integer amount, unknown category
        StorageError: Persistence failure (nothing was recorded)
    """
    results = await award_xp_shares(
        store,
        user_id,
        [(amount, category)],
        source,
        details,
        auto_award_achievements=auto_award_achievements,
        activity=activity,
    )
    return results[0]


async def award_xp_shares(
    store: ProgressStore,
    user_id: str,
    shares: List[Tuple[int, Optional[str]]],
    source: str,
    details: Optional[str] = None,
    *,
    auto_award_achievements: Optional[bool] = None,
    activity: Optional[Dict[str, int]] = None
) -> List[XpAwardResult]:
    """
    Credit several (amount, category) shares of one event in one transaction

    Each share gets its own history entry and result; achievements are
    scanned once after the last share and reported on the last result.
    Either every share is recorded or none is.

    Raises:
        Same as award_xp(); an empty share list is an InvalidArgumentError
    """
    validate_user_id(user_id)
    if not shares:
        raise InvalidArgumentError("At least one XP share is required", field="shares", value=shares, user_id=user_id)
    parsed = [
        (validate_xp_amount(amount, user_id), parse_category(category) if category is not None else None)
        for amount, category in shares
    ]
    if not isinstance(source, str) or not source:
        raise InvalidArgumentError("XP source is required", field="source", value=source, user_id=user_id)

    credit_xp = AUTO_AWARD_ACHIEVEMENT_XP if auto_award_achievements is None else auto_award_achievements
    started = time.perf_counter()

    async with store.transaction(user_id) as progress:
        event_previous_level = progress.level
        when = utcnow()
        if activity:
            apply_activity_update(progress, **activity)

        results = []
        for index, (amount, category) in enumerate(parsed):
            previous_xp = progress.total_xp
            previous_level = progress.level
            category_info = apply_xp(progress, amount, source, category, details, when)

            achievements = None
            if index == len(parsed) - 1:
                achievements = _scan_achievements(progress, credit_xp, when)
            results.append(_build_result(
                progress, previous_xp, previous_level, amount, category, category_info, achievements
            ))

    xp_award_duration_seconds.observe(time.perf_counter() - started)

    for result in results:
        record_award(result, source)
        if result.category and result.category.milestone:
            logger.info(f"User {user_id} reached category milestone {result.category.milestone}")

    final = results[-1]
    logger.info(
        f"Awarded {sum(result.xp_added for result in results)} XP to user {user_id} for {source}. "
        f"Total: {final.total_xp} XP, Level: {final.current_level}"
    )
    if final.current_level > event_previous_level:
        logger.info(f"User {user_id} leveled up from {event_previous_level} to {final.current_level}!")

    return results


async def get_user_progress(store: ProgressStore, user_id: str) -> UserProgress:
    """Current progress document, created with defaults if absent"""
    validate_user_id(user_id)
    return await store.get_or_create(user_id)


async def get_user_level_info(store: ProgressStore, user_id: str) -> Dict[str, any]:
    """
    Global and per-category level view

    Returns:
        {
            'user_id': str,
            'level': int,
            'total_xp': int,
            'xp_to_next_level': int,
            'next_level_xp': int,
            'progress_percent': int,
            'categories': {category: {'level': int, 'xp': int, 'xp_to_next_level': int}}
        }
    """
    progress = await get_user_progress(store, user_id)
    info = get_level_info(progress.total_xp)
    info["user_id"] = user_id
    info["categories"] = {
        name: {
            "level": state.level,
            "xp": state.xp,
            "xp_to_next_level": xp_to_next_level(state.xp, state.level),
        }
        for name, state in progress.category_progress.items()
    }
    return info


async def get_xp_history(
    store: ProgressStore,
    user_id: str,
    days: int = 30,
    now: Optional[datetime] = None
) -> List[Dict[str, any]]:
    """XP transactions from the last `days` days, newest first"""
    if days < 1:
        raise InvalidArgumentError("days must be positive", field="days", value=days, user_id=user_id)

    progress = await get_user_progress(store, user_id)
    cutoff = (now or utcnow()) - timedelta(days=days)

    recent = [tx for tx in progress.xp_history if tx.date >= cutoff]
    recent.sort(key=lambda tx: tx.date, reverse=True)
    return [tx.model_dump(mode="json") for tx in recent]
