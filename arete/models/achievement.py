"""Achievement models for gamification"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from arete.models.progress import UserProgress


class AchievementType(str, Enum):
    """Achievement types"""
    STRENGTH = "strength"
    CONSISTENCY = "consistency"
    NUTRITION = "nutrition"
    MILESTONE = "milestone"


class CategoryLevelRequirement(BaseModel):
    category: str
    level: int = Field(..., ge=1)


class CategoriesAboveLevelRequirement(BaseModel):
    level: int = Field(..., ge=1)
    count: int = Field(..., ge=1)


class AchievementRequirement(BaseModel):
    """
    Unlock requirements; every field that is set must hold

    Streak and workout counters come from UserProgress.activity, which the
    service layer keeps current from task and workout events.
    """
    model_config = ConfigDict(frozen=True)

    level: Optional[int] = None
    total_xp: Optional[int] = None
    category_level: Optional[CategoryLevelRequirement] = None
    categories_min_level: Optional[dict[str, int]] = None
    categories_above_level: Optional[CategoriesAboveLevelRequirement] = None
    streak_count: Optional[int] = None
    nutrition_streak: Optional[int] = None
    completed_workouts: Optional[int] = None
    requires_achievements: tuple[str, ...] = ()

    def is_empty(self) -> bool:
        return not any(
            value for value in self.model_dump().values()
        )

    def progress_ratios(self, progress: UserProgress) -> list[float]:
        """Per-requirement completion ratio in [0, 1]"""
        ratios = []

        def ratio(current: float, required: float) -> float:
            if required <= 0:
                return 1.0
            return min(1.0, max(0.0, current / required))

        if self.level is not None:
            ratios.append(ratio(progress.level, self.level))
        if self.total_xp is not None:
            ratios.append(ratio(progress.total_xp, self.total_xp))
        if self.category_level is not None:
            current = progress.category_progress[self.category_level.category].level
            ratios.append(ratio(current, self.category_level.level))
        if self.categories_min_level:
            for category, level in self.categories_min_level.items():
                ratios.append(ratio(progress.category_progress[category].level, level))
        if self.categories_above_level is not None:
            above = sum(
                1 for level in progress.category_levels().values()
                if level >= self.categories_above_level.level
            )
            ratios.append(ratio(above, self.categories_above_level.count))
        if self.streak_count is not None:
            ratios.append(ratio(progress.activity.longest_streak, self.streak_count))
        if self.nutrition_streak is not None:
            ratios.append(ratio(progress.activity.nutrition_streak, self.nutrition_streak))
        if self.completed_workouts is not None:
            ratios.append(ratio(progress.activity.completed_workouts, self.completed_workouts))
        for achievement_id in self.requires_achievements:
            ratios.append(1.0 if progress.has_achievement(achievement_id) else 0.0)

        return ratios

    def is_met(self, progress: UserProgress) -> bool:
        ratios = self.progress_ratios(progress)
        return bool(ratios) and all(r >= 1.0 for r in ratios)


class AchievementDefinition(BaseModel):
    """Static achievement definition (not user-owned)"""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    type: AchievementType
    xp_reward: int = Field(..., ge=0)
    icon: str
    requirements: AchievementRequirement
    badge_color: Optional[str] = None

    def unlock_condition(self, progress: UserProgress) -> bool:
        return self.requirements.is_met(progress)

    def summary(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "icon": self.icon,
            "xp_reward": self.xp_reward,
            "type": self.type.value,
            "badge_color": self.badge_color,
        }
