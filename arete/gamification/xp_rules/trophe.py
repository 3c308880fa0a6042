"""
Trophe (nutrition) XP rules

- Meal logged: 5 XP, only for the first 5 meals of a day
- Macro bonus: +15 at 80% of daily targets, +25 at 100% (no daily cap)
- Usage milestones: 100 / 500 / 1000 meals logged
- Food added to the shared database: 10 XP
"""

from typing import Optional
import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

MEAL_LOGGED_XP = 5
DAILY_MEAL_LIMIT = 5
FOOD_ADDED_XP = 10

MACRO_TARGET_HIT_XP = 15
PERFECT_MACRO_DAY_XP = 25

USAGE_MILESTONES = {
    "meals_logged_100": 50,
    "meals_logged_500": 150,
    "meals_logged_1000": 300,
}


class MealEventContext(BaseModel):
    """What the nutrition subsystem knows when a meal is logged"""
    daily_meal_count: int = Field(..., ge=1)
    daily_macro_progress: float = Field(default=0, ge=0)
    milestone_hit: Optional[str] = None

    @property
    def exceeds_daily_meal_limit(self) -> bool:
        return self.daily_meal_count > DAILY_MEAL_LIMIT


def meal_milestone_for(total_meals_logged: int) -> Optional[str]:
    """Usage milestone reached exactly at this meal count, if any"""
    key = f"meals_logged_{total_meals_logged}"
    return key if key in USAGE_MILESTONES else None


def calculate_meal_logging_xp(context: MealEventContext) -> int:
    total_xp = 0

    if not context.exceeds_daily_meal_limit:
        total_xp += MEAL_LOGGED_XP
    else:
        logger.debug(f"No base meal XP: meal {context.daily_meal_count} exceeds daily limit ({DAILY_MEAL_LIMIT})")

    if context.daily_macro_progress >= 100:
        total_xp += PERFECT_MACRO_DAY_XP
    elif context.daily_macro_progress >= 80:
        total_xp += MACRO_TARGET_HIT_XP

    if context.milestone_hit:
        total_xp += USAGE_MILESTONES.get(context.milestone_hit, 0)

    return total_xp


def calculate_food_contribution_xp() -> int:
    return FOOD_ADDED_XP
