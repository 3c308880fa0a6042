"""Task records read by the statistics aggregator"""
from enum import Enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class RecurrencePattern(str, Enum):
    ONCE = "once"
    DAILY = "daily"
    WEEKDAYS = "weekdays"
    WEEKENDS = "weekends"
    WEEKLY = "weekly"
    CUSTOM = "custom"


class DomainCategory(str, Enum):
    """Top-level life areas: habits, nutrition, training"""
    ETHOS = "ethos"
    TROPHE = "trophe"
    SOMA = "soma"


class TaskRecord(BaseModel):
    """
    A tracked task as owned by the task subsystem

    custom_recurrence_days uses 0 = Sunday ... 6 = Saturday.
    """
    id: str
    name: str
    category: str = "uncategorized"
    domain_category: Optional[DomainCategory] = None
    labels: list[str] = Field(default_factory=list)
    priority: str = "medium"
    created_at: datetime
    recurrence_pattern: RecurrencePattern = RecurrencePattern.DAILY
    custom_recurrence_days: list[int] = Field(default_factory=list)
    current_streak: int = Field(default=0, ge=0)
    best_streak: int = Field(default=0, ge=0)
    total_completions: int = Field(default=0, ge=0)
    completion_history: list[datetime] = Field(default_factory=list)

    @field_validator("custom_recurrence_days")
    @classmethod
    def validate_custom_days(cls, v: list[int]) -> list[int]:
        for day in v:
            if day < 0 or day > 6:
                raise ValueError("custom recurrence days must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v))
