"""
ProgressService - Progression Business Logic

Async facade the API layer calls for every progress-related action:
turns domain events into XP awards, exposes achievements, category and
history views, and runs history maintenance.

All storage access goes through the injected ProgressStore; transient
storage failures (StorageConnectionError) are retried with backoff.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from arete.config import AUTO_AWARD_ACHIEVEMENT_XP, HISTORY_KEEP_DAYS, STORAGE_MAX_RETRIES
from arete.db.progress_store import ProgressStore
from arete.exceptions import AreteError
from arete.gamification import achievement_system, category_progress, progress_history, xp_system
from arete.gamification.task_statistics import get_task_statistics
from arete.gamification.xp_rules import ethos, soma, trophe
from arete.models.progress import BodyweightEntry, UserProgress, XpAwardResult
from arete.models.task import TaskRecord
from arete.observability.metrics import achievements_unlocked_total, record_error, xp_awarded_total
from arete.resilience.retry import retry_with_backoff
from arete.validators import BodyweightInput, HistoryQueryInput, MaintenanceInput, validate_or_raise

logger = logging.getLogger(__name__)


class ProgressService:
    """
    Service for progression features.

    Responsibilities:
    - XP awarding for training, habit and nutrition events
    - Achievement listing and claiming
    - Category statistics and balance
    - Bodyweight log
    - XP history views and storage maintenance
    """

    def __init__(
        self,
        store: ProgressStore,
        auto_award_achievements: bool = AUTO_AWARD_ACHIEVEMENT_XP,
        max_retries: int = STORAGE_MAX_RETRIES
    ):
        """
        Initialize ProgressService.

        Args:
            store: Progress document store
            auto_award_achievements: Credit achievement XP on unlock (else on claim)
            max_retries: Retries for transient storage failures
        """
        self.store = store
        self.auto_award_achievements = auto_award_achievements
        self.max_retries = max_retries
        logger.debug("ProgressService initialized")

    async def _run(self, func, *args, **kwargs):
        try:
            return await retry_with_backoff(func, *args, max_retries=self.max_retries, **kwargs)
        except AreteError as e:
            record_error(e, component="progress_service")
            raise

    async def _read(self, user_id: str) -> UserProgress:
        """Committed progress, or a fresh unsaved document for unknown users"""
        xp_system.validate_user_id(user_id)
        progress = await self._run(self.store.get, user_id)
        return progress if progress is not None else UserProgress.initial(user_id)

    # ==========================================
    # XP awards
    # ==========================================

    async def award_xp(
        self,
        user_id: str,
        amount: int,
        source: str,
        category: Optional[str] = None,
        details: Optional[str] = None,
        activity: Optional[Dict[str, int]] = None
    ) -> XpAwardResult:
        return await self._run(
            xp_system.award_xp,
            self.store,
            user_id,
            amount,
            source,
            category,
            details,
            auto_award_achievements=self.auto_award_achievements,
            activity=activity,
        )

    async def get_user_progress(self, user_id: str) -> UserProgress:
        return await self._run(xp_system.get_user_progress, self.store, user_id)

    async def get_level_info(self, user_id: str) -> Dict[str, Any]:
        return await self._run(xp_system.get_user_level_info, self.store, user_id)

    async def process_workout_completion(
        self,
        user_id: str,
        difficulty: str = "medium",
        categories: Optional[List[str]] = None,
        workout_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Award workout XP: full XP to the first category, 30% to the others.

        All shares are recorded in one transaction, so a failed workout
        credits nothing and can be retried as a whole.

        Returns:
            {
                'xp_awarded': int,
                'awards': [XpAwardResult] (one per category),
                'result': XpAwardResult (last award, final totals)
            }
        """
        workout_xp = soma.calculate_workout_xp(difficulty, categories)
        details = f"Completed workout: {workout_name}" if workout_name else "Completed workout"

        distribution = soma.calculate_workout_distribution(workout_xp["primary_xp"], categories or [])
        if not distribution:
            distribution = [{"category": None, "xp": workout_xp["primary_xp"], "is_primary": True}]

        awards = await self._run(
            xp_system.award_xp_shares,
            self.store,
            user_id,
            [(entry["xp"], entry["category"]) for entry in distribution],
            "workout_completion",
            details,
            auto_award_achievements=self.auto_award_achievements,
            activity={"completed_workouts": 1},
        )

        return {
            "xp_awarded": sum(entry["xp"] for entry in distribution),
            "awards": awards,
            "result": awards[-1],
        }

    async def process_exercise_progress(
        self,
        user_id: str,
        category: str,
        mastery_level: float = 1,
        reps: Optional[int] = None,
        exercise_difficulty: float = 5,
        bodyweight: Optional[float] = None,
        exercise_name: Optional[str] = None
    ) -> XpAwardResult:
        """Exercise progression XP; uses the latest logged bodyweight when none is given"""
        if bodyweight is None:
            bodyweight = await self._latest_bodyweight_kg(user_id)

        amount = soma.calculate_exercise_xp(mastery_level, bodyweight, reps, exercise_difficulty)
        details = f"Exercise progress: {exercise_name}" if exercise_name else None
        return await self.award_xp(user_id, amount, "exercise_progress", category, details)

    async def process_set_logged(
        self,
        user_id: str,
        category: str,
        exercise_difficulty: float,
        reps: Optional[int] = None,
        hold_time: Optional[float] = None,
        bodyweight: Optional[float] = None
    ) -> XpAwardResult:
        if bodyweight is None:
            bodyweight = await self._latest_bodyweight_kg(user_id)

        amount = soma.calculate_set_xp(exercise_difficulty, reps, hold_time, bodyweight)
        return await self.award_xp(user_id, amount, "set_logged", category)

    async def process_mastery_milestone(
        self,
        user_id: str,
        category: str,
        tier: str,
        exercise_name: Optional[str] = None
    ) -> XpAwardResult:
        amount = soma.calculate_mastery_xp(tier)
        details = f"{tier.title()} mastery" + (f": {exercise_name}" if exercise_name else "")
        return await self.award_xp(user_id, amount, "exercise_mastery", category, details)

    async def process_task_completion(
        self,
        user_id: str,
        task_name: str,
        streak_count: int = 0
    ) -> XpAwardResult:
        """Task XP with streak bonus; the streak also feeds streak achievements"""
        amount = ethos.calculate_task_xp(streak_count)
        return await self.award_xp(
            user_id,
            amount,
            "task_completion",
            details=ethos.describe_task_completion(task_name, streak_count),
            activity={"longest_streak": streak_count},
        )

    async def process_meal_logged(
        self,
        user_id: str,
        daily_meal_count: int,
        daily_macro_progress: float = 0,
        total_meals_logged: Optional[int] = None,
        nutrition_streak: Optional[int] = None
    ) -> XpAwardResult:
        context = trophe.MealEventContext(
            daily_meal_count=daily_meal_count,
            daily_macro_progress=daily_macro_progress,
            milestone_hit=trophe.meal_milestone_for(total_meals_logged) if total_meals_logged else None,
        )
        amount = trophe.calculate_meal_logging_xp(context)
        activity = {"nutrition_streak": nutrition_streak} if nutrition_streak is not None else None
        return await self.award_xp(
            user_id,
            amount,
            "meal_logged",
            details=f"Meal {daily_meal_count} of the day",
            activity=activity,
        )

    async def process_food_contribution(self, user_id: str, food_name: Optional[str] = None) -> XpAwardResult:
        details = f"Added food: {food_name}" if food_name else None
        return await self.award_xp(user_id, trophe.calculate_food_contribution_xp(), "food_contribution", details=details)

    # ==========================================
    # Achievements
    # ==========================================

    async def claim_achievement(self, user_id: str, achievement_id: str) -> Dict[str, Any]:
        """
        Credit a pending achievement.

        Returns:
            {
                'achievement_id': str,
                'xp_awarded': int,
                'already_claimed': bool,
                'status': str,
                'total_xp': int,
                'level': int
            }
        """
        xp_system.validate_user_id(user_id)
        achievement_system.get_achievement_definition(achievement_id)

        async def claim() -> Dict[str, Any]:
            async with self.store.transaction(user_id) as progress:
                result = achievement_system.claim_achievement(progress, achievement_id)
                result["total_xp"] = progress.total_xp
                result["level"] = progress.level
            return result

        result = await self._run(claim)
        if result["xp_awarded"]:
            xp_awarded_total.labels(source=achievement_system.ACHIEVEMENT_SOURCE).inc(result["xp_awarded"])
        return result

    async def get_achievements(self, user_id: str, include_locked: bool = True) -> Dict[str, Any]:
        progress = await self._read(user_id)
        result = achievement_system.get_achievements_with_status(progress, include_locked=include_locked)
        result["recommendations"] = achievement_system.get_achievement_recommendations(progress)
        return result

    async def check_and_award_achievements(self, user_id: str) -> List[Dict[str, Any]]:
        """Rescan achievements outside an award (e.g. after a rule change)"""
        xp_system.validate_user_id(user_id)

        async def scan() -> List[Dict[str, Any]]:
            async with self.store.transaction(user_id) as progress:
                satisfied = achievement_system.check_achievements(progress)
                awarded = achievement_system.award_achievements(
                    progress, satisfied, credit_xp=self.auto_award_achievements
                )
            return awarded["unlocked"]

        unlocked = await self._run(scan)
        for achievement in unlocked:
            achievements_unlocked_total.labels(achievement_id=achievement["id"]).inc()
        return unlocked

    # ==========================================
    # Categories
    # ==========================================

    async def get_category_statistics(self, user_id: str, category: str) -> Dict[str, Any]:
        progress = await self._read(user_id)
        return category_progress.get_category_statistics(category, progress)

    async def get_categories_comparison(self, user_id: str) -> Dict[str, Any]:
        progress = await self._read(user_id)
        comparison = category_progress.get_categories_comparison(progress)
        comparison["summary"] = category_progress.get_category_progress_summary(progress)
        comparison["muscle_up"] = achievement_system.get_unlock_progress(
            "MUSCLE_UP", progress.category_levels(), progress.total_xp, progress.activity.longest_streak
        )
        return comparison

    # ==========================================
    # Bodyweight
    # ==========================================

    async def record_bodyweight(
        self,
        user_id: str,
        weight: float,
        unit: str = "kg",
        date: Optional[datetime] = None,
        notes: Optional[str] = None
    ) -> Dict[str, Any]:
        xp_system.validate_user_id(user_id)
        data = {"weight": weight, "unit": unit, "notes": notes}
        if date is not None:
            data["date"] = date
        validated = validate_or_raise(BodyweightInput, **data)
        entry = BodyweightEntry(
            date=validated.date,
            weight=validated.weight,
            unit=validated.unit,
            notes=validated.notes,
        )

        async def record() -> None:
            async with self.store.transaction(user_id) as progress:
                progress.bodyweight.append(entry)
                progress.bodyweight.sort(key=lambda e: e.date)

        await self._run(record)
        logger.info(f"Recorded bodyweight {entry.weight}{entry.unit.value} for user {user_id}")
        return entry.model_dump(mode="json")

    async def _latest_bodyweight_kg(self, user_id: str) -> Optional[float]:
        latest = (await self._read(user_id)).latest_bodyweight()
        return latest.weight_kg() if latest else None

    # ==========================================
    # History
    # ==========================================

    async def get_history(
        self,
        user_id: str,
        time_range: str = "month",
        group_by: str = "day",
        category: str = "all",
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        query = validate_or_raise(HistoryQueryInput, time_range=time_range, group_by=group_by, category=category)
        progress = await self._read(user_id)
        category_key = query.category if query.category == "all" else query.category.value
        return progress_history.get_optimized_history(
            progress, query.time_range, query.group_by, category_key, now
        )

    async def get_history_storage_stats(self, user_id: str) -> Dict[str, Any]:
        progress = await self._read(user_id)
        return progress_history.get_history_storage_stats(progress)

    async def manage_history_storage(
        self,
        user_id: str,
        keep_detailed_days: int = HISTORY_KEEP_DAYS,
        auto_summarize: bool = True,
        auto_purge: bool = True,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Summarize and purge old transactions for one user.

        Returns:
            {'summarized': int, 'purged': int, 'stats': storage stats after the pass}
        """
        xp_system.validate_user_id(user_id)
        options = validate_or_raise(
            MaintenanceInput,
            keep_detailed_days=keep_detailed_days,
            auto_summarize=auto_summarize,
            auto_purge=auto_purge,
        )

        async def maintain() -> Dict[str, Any]:
            async with self.store.transaction(user_id) as progress:
                result = progress_history.manage_history_storage(
                    progress,
                    keep_detailed_days=options.keep_detailed_days,
                    auto_summarize=options.auto_summarize,
                    auto_purge=options.auto_purge,
                    now=now,
                )
                result["stats"] = progress_history.get_history_storage_stats(progress)
            return result

        result = await self._run(maintain)
        logger.info(
            f"History maintenance for user {user_id}: "
            f"{result['summarized']} summaries created, {result['purged']} transactions purged"
        )
        return result

    # ==========================================
    # Task statistics
    # ==========================================

    def get_task_statistics(self, tasks: List[TaskRecord], today=None) -> Dict[str, Any]:
        """Statistics over task records the caller already fetched"""
        return get_task_statistics(tasks, today)
