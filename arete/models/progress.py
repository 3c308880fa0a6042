"""User progress document models"""
from enum import Enum
from datetime import datetime, timezone
from typing import Optional, Any

from pydantic import BaseModel, ConfigDict, Field


class ProgressCategory(str, Enum):
    """Movement categories that partition training XP"""
    CORE = "core"
    PUSH = "push"
    PULL = "pull"
    LEGS = "legs"


class WeightUnit(str, Enum):
    KG = "kg"
    LB = "lb"


class AchievementStatus(str, Enum):
    """Unlocked achievement state; XP is credited exactly once, on reaching CLAIMED"""
    PENDING = "pending"
    CLAIMED = "claimed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _zero_categories() -> dict[str, int]:
    return {category.value: 0 for category in ProgressCategory}


class CategoryProgress(BaseModel):
    """Level and XP pool of one movement category"""
    level: int = Field(default=1, ge=1)
    xp: int = Field(default=0, ge=0)
    unlocked_exercises: list[str] = Field(default_factory=list)


class XpTransaction(BaseModel):
    """Immutable XP history entry"""
    model_config = ConfigDict(frozen=True)

    date: datetime
    amount: int
    source: str
    category: Optional[ProgressCategory] = None
    details: Optional[str] = None


class XpDailySummary(BaseModel):
    """Pre-aggregated XP for one UTC day"""
    date: datetime
    total_xp: int = 0
    categories: dict[str, int] = Field(default_factory=_zero_categories)
    sources: dict[str, int] = Field(default_factory=dict)


class BodyweightEntry(BaseModel):
    date: datetime
    weight: float = Field(..., gt=0)
    unit: WeightUnit = WeightUnit.KG
    notes: Optional[str] = None

    def weight_kg(self) -> float:
        if self.unit == WeightUnit.LB:
            return self.weight * 0.45359237
        return self.weight


class AchievementRecord(BaseModel):
    """A user's unlocked achievement"""
    status: AchievementStatus = AchievementStatus.PENDING
    unlocked_at: datetime
    claimed_at: Optional[datetime] = None
    xp_awarded: int = 0


class ActivityCounters(BaseModel):
    """Cross-domain counters read by achievement unlock rules"""
    longest_streak: int = Field(default=0, ge=0)
    nutrition_streak: int = Field(default=0, ge=0)
    completed_workouts: int = Field(default=0, ge=0)


class UserProgress(BaseModel):
    """
    Progress document, one per user

    `level` always equals level_from_xp(total_xp); the XP award coordinator
    is the only writer of XP fields.
    """
    user_id: str
    total_xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    category_progress: dict[str, CategoryProgress] = Field(
        default_factory=lambda: {category.value: CategoryProgress() for category in ProgressCategory}
    )
    category_xp: dict[str, int] = Field(default_factory=_zero_categories)
    xp_history: list[XpTransaction] = Field(default_factory=list)
    daily_summaries: list[XpDailySummary] = Field(default_factory=list)
    bodyweight: list[BodyweightEntry] = Field(default_factory=list)
    achievements: dict[str, AchievementRecord] = Field(default_factory=dict)
    activity: ActivityCounters = Field(default_factory=ActivityCounters)
    created_at: datetime = Field(default_factory=utcnow)
    last_updated: datetime = Field(default_factory=utcnow)

    @classmethod
    def initial(cls, user_id: str) -> "UserProgress":
        """Fresh progress: level 1, zero XP everywhere, empty history"""
        return cls(user_id=user_id)

    def category_levels(self) -> dict[str, int]:
        return {name: cp.level for name, cp in self.category_progress.items()}

    def has_achievement(self, achievement_id: str) -> bool:
        return achievement_id in self.achievements

    def latest_bodyweight(self) -> Optional[BodyweightEntry]:
        if not self.bodyweight:
            return None
        return max(self.bodyweight, key=lambda entry: entry.date)


class CategoryAwardInfo(BaseModel):
    name: ProgressCategory
    previous_xp: int
    current_xp: int
    previous_level: int
    current_level: int
    leveled_up: bool
    milestone: Optional[str] = None


class AchievementAwardInfo(BaseModel):
    unlocked: list[dict[str, Any]]
    count: int
    total_xp_awarded: int


class XpAwardResult(BaseModel):
    """Summary returned to the caller of award_xp"""
    previous_xp: int
    previous_level: int
    total_xp: int
    current_level: int
    xp_added: int
    leveled_up: bool
    xp_to_next_level: int
    progress_percent: int
    achievements: Optional[AchievementAwardInfo] = None
    category: Optional[CategoryAwardInfo] = None
