"""
Soma (training) XP rules

Pure calculators that turn workout, exercise and set events into XP
amounts. They never touch storage; the caller hands the result to
award_xp() with the right category.
"""

import math
from typing import Dict, List, Optional

from arete.exceptions import InvalidArgumentError
from arete.gamification.category_progress import parse_category

WORKOUT_COMPLETION_XP = 50
DIFFICULTY_MULTIPLIERS = {
    "easy": 0.75,
    "medium": 1.0,
    "hard": 1.5,
}

EXERCISE_BASE_XP = 25
EXERCISE_MASTERY_XP = 100
SECONDARY_CATEGORY_MULTIPLIER = 0.3
MASTERY_MULTIPLIERS = {
    "bronze": 1.0,
    "silver": 1.5,
    "gold": 2.0,
    "platinum": 3.0,
}

# Bodyweight bonuses only apply above this weight (kg)
BODYWEIGHT_BASELINE_KG = 70


def calculate_workout_xp(difficulty: str = "medium", categories: Optional[List[str]] = None) -> Dict[str, int]:
    """
    XP for a completed workout

    Returns:
        {
            'primary_xp': int (first category),
            'secondary_xp': int (each further category),
            'total_categories': int
        }
    """
    if difficulty not in DIFFICULTY_MULTIPLIERS:
        raise InvalidArgumentError(
            f"Unknown difficulty '{difficulty}'. Expected one of {', '.join(DIFFICULTY_MULTIPLIERS)}",
            field="difficulty",
            value=difficulty
        )

    primary_xp = math.floor(WORKOUT_COMPLETION_XP * DIFFICULTY_MULTIPLIERS[difficulty])
    secondary_xp = math.floor(primary_xp * SECONDARY_CATEGORY_MULTIPLIER)

    return {
        "primary_xp": primary_xp,
        "secondary_xp": secondary_xp,
        "total_categories": len(categories) if categories else 1,
    }


def calculate_exercise_xp(
    mastery_level: float = 1,
    bodyweight: Optional[float] = None,
    reps: Optional[int] = None,
    exercise_difficulty: float = 5
) -> int:
    """XP for exercise progression; heavier athletes earn a per-rep bonus"""
    xp_amount = EXERCISE_BASE_XP * mastery_level * (exercise_difficulty / 5)

    if bodyweight and reps and bodyweight > BODYWEIGHT_BASELINE_KG:
        bonus = math.floor((bodyweight - BODYWEIGHT_BASELINE_KG) * 0.1 * reps)
        xp_amount += max(0, bonus)

    return math.floor(xp_amount)


def calculate_set_xp(
    exercise_difficulty: float,
    reps: Optional[int] = None,
    hold_time: Optional[float] = None,
    bodyweight: Optional[float] = None
) -> int:
    """
    XP for one logged set, never less than 1

    difficulty * 2 + reps * 0.5 + hold_time (s) * 0.1, plus 0.05 per kg of
    bodyweight above 70.
    """
    xp_amount = exercise_difficulty * 2
    if reps:
        xp_amount += reps * 0.5
    if hold_time:
        xp_amount += hold_time * 0.1
    if bodyweight and bodyweight > BODYWEIGHT_BASELINE_KG:
        xp_amount += (bodyweight - BODYWEIGHT_BASELINE_KG) * 0.05

    return math.floor(max(1, xp_amount))


def calculate_mastery_xp(tier: str = "bronze") -> int:
    if tier not in MASTERY_MULTIPLIERS:
        raise InvalidArgumentError(
            f"Unknown mastery tier '{tier}'. Expected one of {', '.join(MASTERY_MULTIPLIERS)}",
            field="tier",
            value=tier
        )
    return math.floor(EXERCISE_MASTERY_XP * MASTERY_MULTIPLIERS[tier])


def calculate_workout_distribution(base_xp: int, categories: List[str]) -> List[Dict[str, any]]:
    """
    Split a workout's XP across its categories

    The first category gets base_xp, every other one gets 30% of it.
    """
    if not categories:
        return []

    secondary_xp = math.floor(base_xp * SECONDARY_CATEGORY_MULTIPLIER)
    distribution = []
    for index, category in enumerate(categories):
        distribution.append({
            "category": parse_category(category).value,
            "xp": base_xp if index == 0 else secondary_xp,
            "is_primary": index == 0,
        })
    return distribution
