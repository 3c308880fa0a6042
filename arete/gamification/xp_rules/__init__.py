"""Domain XP calculators: soma (training), ethos (habits), trophe (nutrition)"""

from arete.gamification.xp_rules.soma import (
    calculate_workout_xp,
    calculate_exercise_xp,
    calculate_set_xp,
    calculate_mastery_xp,
    calculate_workout_distribution,
)
from arete.gamification.xp_rules.ethos import calculate_task_xp
from arete.gamification.xp_rules.trophe import (
    MealEventContext,
    calculate_meal_logging_xp,
    calculate_food_contribution_xp,
)

__all__ = [
    "calculate_workout_xp",
    "calculate_exercise_xp",
    "calculate_set_xp",
    "calculate_mastery_xp",
    "calculate_workout_distribution",
    "calculate_task_xp",
    "MealEventContext",
    "calculate_meal_logging_xp",
    "calculate_food_contribution_xp",
]
