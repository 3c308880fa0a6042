"""
Achievement System

Evaluates a fixed, ordered set of achievement rules against a progress
snapshot and records unlocks:
- Ethos (task streaks, completed workouts, nutrition streaks)
- Soma (category level 5 in each movement category)
- Cross-domain (global level, total XP, balanced and consistent training)

Features:
- Definitions validated once at import (ConfigurationError on bad rules)
- Per-achievement isolation: a failing rule is logged and skipped
- Exactly-once XP crediting: an achievement id is unlocked at most once,
  and its XP moves it from pending to claimed at most once
"""

from typing import Dict, List, Optional
from datetime import datetime
import logging

from arete.exceptions import ConfigurationError, InvalidArgumentError, NotFoundError
from arete.gamification.category_progress import VALID_CATEGORIES
from arete.models.achievement import (
    AchievementDefinition,
    AchievementRequirement,
    AchievementType,
    CategoriesAboveLevelRequirement,
    CategoryLevelRequirement,
)
from arete.models.progress import AchievementRecord, AchievementStatus, UserProgress, utcnow

logger = logging.getLogger(__name__)

ACHIEVEMENT_SOURCE = "achievement_unlock"


def _category_level_5(category: str, title: str, description: str, icon: str, color: str) -> AchievementDefinition:
    return AchievementDefinition(
        id=f"{category}_level_5",
        title=title,
        description=description,
        type=AchievementType.STRENGTH,
        xp_reward=50,
        icon=icon,
        badge_color=color,
        requirements=AchievementRequirement(
            category_level=CategoryLevelRequirement(category=category, level=5)
        ),
    )


ACHIEVEMENTS: List[AchievementDefinition] = [
    # Ethos
    AchievementDefinition(
        id="streak_7", title="Week Warrior", description="Maintain a 7-day workout streak",
        type=AchievementType.CONSISTENCY, xp_reward=70, icon="calendar",
        requirements=AchievementRequirement(streak_count=7),
    ),
    AchievementDefinition(
        id="streak_30", title="Monthly Devotion", description="Maintain a 30-day workout streak",
        type=AchievementType.CONSISTENCY, xp_reward=300, icon="calendar",
        requirements=AchievementRequirement(streak_count=30),
    ),
    AchievementDefinition(
        id="workouts_10", title="Workout Beginner", description="Complete 10 workouts",
        type=AchievementType.CONSISTENCY, xp_reward=50, icon="list-checks",
        requirements=AchievementRequirement(completed_workouts=10),
    ),
    AchievementDefinition(
        id="workouts_50", title="Workout Regular", description="Complete 50 workouts",
        type=AchievementType.CONSISTENCY, xp_reward=100, icon="list-checks",
        requirements=AchievementRequirement(completed_workouts=50),
    ),
    AchievementDefinition(
        id="workouts_100", title="Workout Expert", description="Complete 100 workouts",
        type=AchievementType.CONSISTENCY, xp_reward=200, icon="list-checks",
        requirements=AchievementRequirement(completed_workouts=100),
    ),
    AchievementDefinition(
        id="nutrition_streak_7", title="Nutrition Aware",
        description="Track your nutrition for 7 consecutive days",
        type=AchievementType.NUTRITION, xp_reward=70, icon="utensils",
        requirements=AchievementRequirement(nutrition_streak=7),
    ),
    AchievementDefinition(
        id="nutrition_streak_30", title="Nutrition Master",
        description="Track your nutrition for 30 consecutive days",
        type=AchievementType.NUTRITION, xp_reward=150, icon="utensils",
        requirements=AchievementRequirement(nutrition_streak=30),
    ),
    # Soma
    _category_level_5("core", "Core Strength", "Reach level 5 in core exercises", "disc", "bg-blue-500"),
    _category_level_5("push", "Push Power", "Reach level 5 in pushing exercises", "arrow-up", "bg-red-500"),
    _category_level_5("pull", "Pull Proficiency", "Reach level 5 in pulling exercises", "arrow-down", "bg-green-500"),
    _category_level_5("legs", "Leg Legend", "Reach level 5 in leg exercises", "activity", "bg-purple-500"),
    # Cross-domain
    AchievementDefinition(
        id="global_level_5", title="Fitness Enthusiast", description="Reach level 5 in your fitness journey",
        type=AchievementType.MILESTONE, xp_reward=50, icon="award",
        requirements=AchievementRequirement(level=5),
    ),
    AchievementDefinition(
        id="global_level_10", title="Fitness Devotee", description="Reach level 10 in your fitness journey",
        type=AchievementType.MILESTONE, xp_reward=100, icon="award",
        requirements=AchievementRequirement(level=10),
    ),
    AchievementDefinition(
        id="global_level_25", title="Fitness Master", description="Reach level 25 in your fitness journey",
        type=AchievementType.MILESTONE, xp_reward=250, icon="award",
        requirements=AchievementRequirement(level=25),
    ),
    AchievementDefinition(
        id="xp_1000", title="Dedicated Athlete", description="Accumulate 1,000 XP in your fitness journey",
        type=AchievementType.MILESTONE, xp_reward=100, icon="zap",
        requirements=AchievementRequirement(total_xp=1000),
    ),
    AchievementDefinition(
        id="xp_5000", title="Fitness Veteran", description="Accumulate 5,000 XP in your fitness journey",
        type=AchievementType.MILESTONE, xp_reward=250, icon="zap",
        requirements=AchievementRequirement(total_xp=5000),
    ),
    AchievementDefinition(
        id="balanced_warrior", title="Balanced Warrior",
        description="Balanced development across all movement patterns",
        type=AchievementType.MILESTONE, xp_reward=150, icon="scale",
        requirements=AchievementRequirement(
            categories_min_level={"core": 3, "push": 3, "pull": 3, "legs": 3}
        ),
    ),
    AchievementDefinition(
        id="consistency_master", title="Consistency Master",
        description="High performance with unwavering consistency",
        type=AchievementType.MILESTONE, xp_reward=300, icon="crown",
        requirements=AchievementRequirement(
            total_xp=5000,
            streak_count=30,
            categories_above_level=CategoriesAboveLevelRequirement(level=5, count=2),
        ),
    ),
]

# Unlocks that span several categories or domains; MUSCLE_UP is an exercise,
# the other two mirror the balanced_warrior and consistency_master rules
CROSS_DOMAIN_UNLOCKS: Dict[str, Dict[str, any]] = {
    "MUSCLE_UP": {
        "min_levels": {"pull": 5, "core": 3, "push": 3},
        "description": "Requires pull dominance with core and push support",
    },
    "BALANCED_WARRIOR": {
        "min_levels": {"core": 3, "push": 3, "pull": 3, "legs": 3},
        "description": "Balanced development across all movement patterns",
    },
    "CONSISTENCY_MASTER": {
        "requirements": {
            "total_xp": 5000,
            "streak_days": 30,
            "categories_above_level": {"level": 5, "count": 2},
        },
        "description": "High performance with unwavering consistency",
    },
}

EXERCISE_UNLOCKS: Dict[str, Dict[str, any]] = {
    "muscle_up": {"unlock_key": "MUSCLE_UP", "category": "pull"},
}


def validate_achievement_definitions(definitions: List[AchievementDefinition]) -> None:
    """
    Reject rule sets that cannot be evaluated safely

    Raises:
        ConfigurationError: duplicate id, empty or negative reward rules,
            unknown category, unknown or cyclic requires_achievements
    """
    by_id: Dict[str, AchievementDefinition] = {}
    for definition in definitions:
        if definition.id in by_id:
            raise ConfigurationError(f"Duplicate achievement id '{definition.id}'", config_key=definition.id)
        by_id[definition.id] = definition

        if definition.xp_reward < 0:
            raise ConfigurationError(
                f"Achievement '{definition.id}' has a negative XP reward",
                config_key=definition.id
            )

        requirements = definition.requirements
        if requirements.is_empty():
            raise ConfigurationError(f"Achievement '{definition.id}' has no requirements", config_key=definition.id)

        categories = list(requirements.categories_min_level or {})
        if requirements.category_level is not None:
            categories.append(requirements.category_level.category)
        for category in categories:
            if category not in VALID_CATEGORIES:
                raise ConfigurationError(
                    f"Achievement '{definition.id}' references unknown category '{category}'",
                    config_key=definition.id
                )

    for definition in definitions:
        for required_id in definition.requirements.requires_achievements:
            if required_id not in by_id:
                raise ConfigurationError(
                    f"Achievement '{definition.id}' requires unknown achievement '{required_id}'",
                    config_key=definition.id
                )

    # Depth-first search for requires_achievements cycles
    visiting, done = set(), set()

    def visit(achievement_id: str, path: List[str]) -> None:
        if achievement_id in done:
            return
        if achievement_id in visiting:
            cycle = " -> ".join(path + [achievement_id])
            raise ConfigurationError(f"Cyclic achievement requirements: {cycle}", config_key=achievement_id)
        visiting.add(achievement_id)
        for required_id in by_id[achievement_id].requirements.requires_achievements:
            visit(required_id, path + [achievement_id])
        visiting.discard(achievement_id)
        done.add(achievement_id)

    for achievement_id in by_id:
        visit(achievement_id, [])


validate_achievement_definitions(ACHIEVEMENTS)

ACHIEVEMENTS_BY_ID: Dict[str, AchievementDefinition] = {a.id: a for a in ACHIEVEMENTS}


def get_achievement_definition(achievement_id: str) -> AchievementDefinition:
    definition = ACHIEVEMENTS_BY_ID.get(achievement_id)
    if definition is None:
        raise NotFoundError(
            f"Achievement '{achievement_id}' does not exist",
            record_type="Achievement",
            record_id=achievement_id
        )
    return definition


def check_achievements(
    progress: UserProgress,
    definitions: Optional[List[AchievementDefinition]] = None
) -> List[AchievementDefinition]:
    """
    Definitions not yet unlocked whose condition holds, in definition order

    A rule that raises is logged and skipped; the rest are still evaluated.
    """
    satisfied = []
    for definition in definitions if definitions is not None else ACHIEVEMENTS:
        if progress.has_achievement(definition.id):
            continue
        try:
            if definition.unlock_condition(progress):
                satisfied.append(definition)
        except Exception as e:
            logger.error(
                f"Achievement rule {definition.id} failed for user {progress.user_id}: {e}",
                exc_info=True
            )
    return satisfied


def _credit_achievement_xp(
    progress: UserProgress,
    definition: AchievementDefinition,
    record: AchievementRecord,
    when: datetime
) -> int:
    # Imported here: xp_system imports this module
    from arete.gamification.xp_system import apply_xp

    apply_xp(
        progress,
        definition.xp_reward,
        ACHIEVEMENT_SOURCE,
        details=f"Achievement unlocked: {definition.title}",
        when=when,
    )
    record.status = AchievementStatus.CLAIMED
    record.claimed_at = when
    record.xp_awarded = definition.xp_reward
    return definition.xp_reward


def award_achievements(
    progress: UserProgress,
    achievements: List[AchievementDefinition],
    credit_xp: bool = True,
    when: Optional[datetime] = None
) -> Dict[str, any]:
    """
    Record unlocks on `progress` (mutated in place)

    Args:
        progress: User progress document
        achievements: Definitions to unlock, usually from check_achievements()
        credit_xp: Credit each reward now (claimed) or leave it pending for claim_achievement()
        when: Unlock timestamp (defaults to now)

    Returns:
        {
            'updated_progress': UserProgress,
            'total_xp_awarded': int,
            'unlocked': [definition summary + status/unlocked_at]
        }

    Ids already present in progress.achievements are skipped, so calling
    this twice for the same achievement never credits XP twice.
    """
    when = when or utcnow()
    unlocked = []
    total_xp_awarded = 0

    for definition in achievements:
        if progress.has_achievement(definition.id):
            logger.debug(f"Achievement {definition.id} already unlocked for user {progress.user_id}")
            continue

        record = AchievementRecord(status=AchievementStatus.PENDING, unlocked_at=when)
        progress.achievements[definition.id] = record

        if credit_xp:
            total_xp_awarded += _credit_achievement_xp(progress, definition, record, when)

        unlocked.append({
            **definition.summary(),
            "status": record.status.value,
            "unlocked_at": when.isoformat(),
        })

        logger.info(
            f"User {progress.user_id} unlocked achievement: {definition.id} "
            f"({definition.title}) +{definition.xp_reward} XP [{record.status.value}]"
        )

    return {
        "updated_progress": progress,
        "total_xp_awarded": total_xp_awarded,
        "unlocked": unlocked,
    }


def claim_achievement(
    progress: UserProgress,
    achievement_id: str,
    when: Optional[datetime] = None
) -> Dict[str, any]:
    """
    Credit a pending achievement's XP, once

    Returns:
        {
            'achievement_id': str,
            'xp_awarded': int (0 if it was already claimed),
            'already_claimed': bool,
            'status': 'claimed'
        }

    Raises:
        NotFoundError: Unknown achievement id
        InvalidArgumentError: Achievement not unlocked yet
    """
    definition = get_achievement_definition(achievement_id)
    record = progress.achievements.get(achievement_id)
    if record is None:
        raise InvalidArgumentError(
            f"Achievement '{achievement_id}' is not unlocked yet",
            field="achievement_id",
            value=achievement_id,
            user_id=progress.user_id
        )

    if record.status == AchievementStatus.CLAIMED:
        return {
            "achievement_id": achievement_id,
            "xp_awarded": 0,
            "already_claimed": True,
            "status": record.status.value,
        }

    xp_awarded = _credit_achievement_xp(progress, definition, record, when or utcnow())
    logger.info(f"User {progress.user_id} claimed achievement {achievement_id} for {xp_awarded} XP")

    return {
        "achievement_id": achievement_id,
        "xp_awarded": xp_awarded,
        "already_claimed": False,
        "status": record.status.value,
    }


def _meets_min_levels(category_levels: Dict[str, int], min_levels: Dict[str, int]) -> bool:
    return all(category_levels.get(category, 1) >= level for category, level in min_levels.items())


def check_cross_domain_unlocks(
    category_levels: Dict[str, int],
    total_xp: int,
    longest_streak: int
) -> List[str]:
    """Ids of the cross-domain achievements whose requirements are met"""
    unlocked = []

    if _meets_min_levels(category_levels, CROSS_DOMAIN_UNLOCKS["BALANCED_WARRIOR"]["min_levels"]):
        unlocked.append("balanced_warrior")

    requirements = CROSS_DOMAIN_UNLOCKS["CONSISTENCY_MASTER"]["requirements"]
    above = requirements["categories_above_level"]
    categories_above = sum(1 for level in category_levels.values() if level >= above["level"])
    if (
        total_xp >= requirements["total_xp"]
        and longest_streak >= requirements["streak_days"]
        and categories_above >= above["count"]
    ):
        unlocked.append("consistency_master")

    return unlocked


def check_exercise_unlocks(category_levels: Dict[str, int]) -> List[str]:
    """Advanced exercises unlocked by the current category levels"""
    return [
        exercise_id
        for exercise_id, unlock in EXERCISE_UNLOCKS.items()
        if _meets_min_levels(category_levels, CROSS_DOMAIN_UNLOCKS[unlock["unlock_key"]]["min_levels"])
    ]


def get_unlock_progress(
    unlock_key: str,
    category_levels: Dict[str, int],
    total_xp: int = 0,
    longest_streak: int = 0
) -> Dict[str, any]:
    """
    How close a user is to a cross-domain unlock, without unlocking it

    Returns:
        {
            'progress': int (percentage of requirements met),
            'missing': [str] (e.g. "pull: level 3/5", "XP: 1200/5000")
        }
    """
    unlock = CROSS_DOMAIN_UNLOCKS.get(unlock_key)
    if unlock is None:
        raise InvalidArgumentError(
            f"Unknown unlock '{unlock_key}'. Expected one of {', '.join(CROSS_DOMAIN_UNLOCKS)}",
            field="unlock_key",
            value=unlock_key
        )

    missing = []
    total = 0
    met = 0

    for category, required in unlock.get("min_levels", {}).items():
        total += 1
        current = category_levels.get(category, 1)
        if current >= required:
            met += 1
        else:
            missing.append(f"{category}: level {current}/{required}")

    requirements = unlock.get("requirements", {})
    if "total_xp" in requirements:
        total += 1
        if total_xp >= requirements["total_xp"]:
            met += 1
        else:
            missing.append(f"XP: {total_xp}/{requirements['total_xp']}")
    if "streak_days" in requirements:
        total += 1
        if longest_streak >= requirements["streak_days"]:
            met += 1
        else:
            missing.append(f"Streak: {longest_streak}/{requirements['streak_days']} days")
    if "categories_above_level" in requirements:
        total += 1
        above = requirements["categories_above_level"]
        count = sum(1 for level in category_levels.values() if level >= above["level"])
        if count >= above["count"]:
            met += 1
        else:
            missing.append(f"Categories at level {above['level']}+: {count}/{above['count']}")

    return {
        "progress": met * 100 // total if total > 0 else 0,
        "missing": missing,
    }


def get_achievement_progress(progress: UserProgress, definition: AchievementDefinition) -> Dict[str, any]:
    """
    Progress toward one achievement

    Returns:
        {
            'percentage': int,
            'requirements_met': int,
            'requirements_total': int
        }
    """
    ratios = definition.requirements.progress_ratios(progress)
    if not ratios:
        return {"percentage": 0, "requirements_met": 0, "requirements_total": 0}

    return {
        "percentage": int(sum(ratios) / len(ratios) * 100),
        "requirements_met": sum(1 for r in ratios if r >= 1.0),
        "requirements_total": len(ratios),
    }


def get_achievements_with_status(progress: UserProgress, include_locked: bool = True) -> Dict[str, any]:
    """
    User's achievements with status

    Returns:
        {
            'unlocked': [...] (most recent first),
            'locked': [...] with progress, closest first (if include_locked),
            'pending_count': int,
            'total_unlocked': int,
            'total_achievements': int,
            'total_xp_from_achievements': int
        }
    """
    unlocked = []
    total_xp = 0
    pending = 0

    for definition in ACHIEVEMENTS:
        record = progress.achievements.get(definition.id)
        if record is None:
            continue
        unlocked.append({
            **definition.summary(),
            "status": record.status.value,
            "unlocked_at": record.unlocked_at,
            "claimed_at": record.claimed_at,
        })
        total_xp += record.xp_awarded
        if record.status == AchievementStatus.PENDING:
            pending += 1

    unlocked.sort(key=lambda a: a["unlocked_at"], reverse=True)

    result = {
        "unlocked": unlocked,
        "pending_count": pending,
        "total_unlocked": len(unlocked),
        "total_achievements": len(ACHIEVEMENTS),
        "total_xp_from_achievements": total_xp,
    }

    if include_locked:
        locked = [
            {**definition.summary(), "progress": get_achievement_progress(progress, definition)}
            for definition in ACHIEVEMENTS
            if not progress.has_achievement(definition.id)
        ]
        locked.sort(key=lambda a: a["progress"]["percentage"], reverse=True)
        result["locked"] = locked

    return result


def get_achievement_recommendations(progress: UserProgress, limit: int = 3) -> List[Dict[str, any]]:
    """Locked achievements at least half way done, closest first"""
    locked = get_achievements_with_status(progress, include_locked=True)["locked"]
    return [a for a in locked if a["progress"]["percentage"] >= 50][:limit]
