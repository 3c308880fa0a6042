"""
Level Curve

Pure functions mapping cumulative XP to a level and back. The same curve
is used for the global level and for each movement category's own pool.

Curve:
- level(xp) = floor(1 + (xp / 100) ^ 0.8)
- threshold(level) = ceil(level ^ 1.25 * 100)
"""

import math
from typing import Dict

from arete.exceptions import InvalidArgumentError

LEVEL_EXPONENT = 0.8
THRESHOLD_EXPONENT = 1.25
XP_SCALE = 100


def _check_xp(xp, field: str = "xp") -> None:
    if isinstance(xp, bool) or not isinstance(xp, (int, float)):
        raise InvalidArgumentError(f"{field} must be a number", field=field, value=xp)
    if math.isnan(xp) or xp < 0:
        raise InvalidArgumentError(f"{field} must be a non-negative number", field=field, value=xp)


def level_from_xp(xp: int) -> int:
    """Level reached with `xp` cumulative XP (1 at zero XP, never decreasing)"""
    _check_xp(xp)
    return math.floor(1 + (xp / XP_SCALE) ** LEVEL_EXPONENT)


def xp_required_for_level(level: int) -> int:
    """Threshold XP for `level`; used as the "next level" target"""
    if isinstance(level, bool) or not isinstance(level, int) or level < 1:
        raise InvalidArgumentError("level must be an integer >= 1", field="level", value=level)
    return math.ceil(level ** THRESHOLD_EXPONENT * XP_SCALE)


def xp_to_next_level(current_xp: int, current_level: int) -> int:
    _check_xp(current_xp, "current_xp")
    return max(0, xp_required_for_level(current_level + 1) - current_xp)


def progress_percent_within_level(current_xp: int, current_level: int) -> int:
    """
    How far current_xp sits between the current and next level thresholds

    Returns an integer percentage clamped to [0, 100]. The lower threshold
    of a level can sit above the XP that reaches it (level 2 is reached at
    100 XP, its threshold is 238), so the clamp matters at low XP.
    """
    _check_xp(current_xp, "current_xp")
    floor_xp = xp_required_for_level(current_level)
    ceiling_xp = xp_required_for_level(current_level + 1)
    span = ceiling_xp - floor_xp
    if span <= 0:
        return 100

    percent = math.floor((current_xp - floor_xp) / span * 100)
    return max(0, min(100, percent))


def get_level_info(total_xp: int) -> Dict[str, int]:
    """
    Level view for a total XP value

    Returns:
        {
            'level': int,
            'total_xp': int,
            'xp_to_next_level': int,
            'next_level_xp': int,
            'progress_percent': int
        }
    """
    level = level_from_xp(total_xp)
    return {
        "level": level,
        "total_xp": total_xp,
        "xp_to_next_level": xp_to_next_level(total_xp, level),
        "next_level_xp": xp_required_for_level(level + 1),
        "progress_percent": progress_percent_within_level(total_xp, level),
    }
