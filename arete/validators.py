"""
Centralized Pydantic Input Validation Layer

Validated input models the API layer builds from request bodies before
calling the engine, so the engine only ever sees typed, in-range values.

XpAwardInput and safe_validate are for the API boundary only: they turn a
request body into an award or a user-facing error message. The service
layer uses validate_or_raise for the inputs it validates itself, and
award_xp() does its own amount checks (it also accepts integral floats,
which the strict request model rejects).

Validation Categories:
1. XP Awards - non-negative integer amount, known category, source tag
2. Bodyweight - positive weight, no future dates
3. History Queries - known time range / grouping / category
4. Maintenance - retention window bounds
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional, Union
from pydantic import BaseModel, Field, ValidationError, field_validator

from arete.exceptions import InvalidArgumentError
from arete.models.progress import ProgressCategory, WeightUnit

logger = logging.getLogger(__name__)


# ============================================================================
# XP AWARD VALIDATION
# ============================================================================

class XpAwardInput(BaseModel):
    """
    Validate an XP award request

    Constraints:
    - amount: integer 0-100000 (no floats, no booleans)
    - source: 1-64 characters, trimmed
    - category: core/push/pull/legs or omitted
    - details: up to 500 characters
    """
    user_id: str = Field(..., min_length=1, max_length=128)
    amount: int = Field(..., ge=0, le=100_000, strict=True)
    source: str = Field(..., min_length=1, max_length=64)
    category: Optional[ProgressCategory] = None
    details: Optional[str] = Field(default=None, max_length=500)

    @field_validator('user_id', 'source')
    @classmethod
    def strip_text(cls, v: str) -> str:
        trimmed = v.strip()
        if not trimmed:
            raise ValueError("Value cannot be only whitespace")
        return trimmed


# ============================================================================
# BODYWEIGHT VALIDATION
# ============================================================================

class BodyweightInput(BaseModel):
    """
    Validate a bodyweight entry

    Constraints:
    - weight: 20-500 (kg or lb)
    - date: not more than a day in the future (clock skew), defaults to now
    - notes: up to 500 characters
    """
    weight: float = Field(..., ge=20, le=500)
    unit: WeightUnit = WeightUnit.KG
    date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator('date')
    @classmethod
    def validate_not_future(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        if v > datetime.now(timezone.utc) + timedelta(days=1):
            raise ValueError("Date cannot be in the future")
        return v


# ============================================================================
# HISTORY QUERY VALIDATION
# ============================================================================

class HistoryQueryInput(BaseModel):
    """Validate a progress history query"""
    time_range: Literal["day", "week", "month", "year", "all"] = "month"
    group_by: Literal["day", "week", "month"] = "day"
    category: Union[Literal["all"], ProgressCategory] = "all"


# ============================================================================
# MAINTENANCE VALIDATION
# ============================================================================

class MaintenanceInput(BaseModel):
    """
    Validate history maintenance options

    Constraints:
    - keep_detailed_days: 1-3650 days
    """
    keep_detailed_days: int = Field(default=90, ge=1, le=3650)
    auto_summarize: bool = True
    auto_purge: bool = True


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def format_validation_error(e: Exception) -> str:
    """
    Format Pydantic validation error for user-friendly display

    Returns:
        "Invalid <Field>: <message>" for the first error
    """
    if not isinstance(e, ValidationError):
        return f"Error: {str(e)}"

    errors = e.errors()
    if not errors:
        return "Validation failed"

    first_error = errors[0]
    loc = first_error.get('loc') or ('input',)
    field = loc[0]
    msg = first_error.get('msg', 'Invalid value')

    if isinstance(field, str):
        field_name = field.replace('_', ' ').title()
    else:
        field_name = 'Input'

    return f"Invalid {field_name}: {msg}"


def safe_validate(model_class: type[BaseModel], **data) -> tuple[Optional[BaseModel], Optional[str]]:
    """
    Safely validate data and return (validated_model, error_message)

    Returns:
        - If valid: (instance, None)
        - If invalid: (None, user_friendly_error)
    """
    try:
        instance = model_class(**data)
        return instance, None
    except ValidationError as e:
        error_msg = format_validation_error(e)
        logger.warning(f"Validation failed for {model_class.__name__}: {error_msg}")
        return None, error_msg


def validate_or_raise(model_class: type[BaseModel], **data) -> BaseModel:
    """
    Validate data, converting a ValidationError into InvalidArgumentError

    Raises:
        InvalidArgumentError: With the first failing field and its value
    """
    try:
        return model_class(**data)
    except ValidationError as e:
        first_error = e.errors()[0] if e.errors() else {}
        loc = first_error.get('loc') or ('input',)
        raise InvalidArgumentError(
            format_validation_error(e),
            field=str(loc[0]),
            value=first_error.get('input'),
            cause=e
        )
