"""Unit tests for the level curve (arete/gamification/level_curve.py)"""
import pytest

from arete.exceptions import InvalidArgumentError
from arete.gamification.level_curve import (
    get_level_info,
    level_from_xp,
    progress_percent_within_level,
    xp_required_for_level,
    xp_to_next_level,
)


# ============================================================================
# Level Calculation Tests
# ============================================================================

def test_level_from_xp_zero_is_level_1():
    assert level_from_xp(0) == 1


def test_level_from_xp_boundaries():
    """Level 2 is reached at exactly 100 XP"""
    assert level_from_xp(99) == 1
    assert level_from_xp(100) == 2
    assert level_from_xp(120) == 2
    assert level_from_xp(500) == 4
    assert level_from_xp(1000) == 7


def test_level_from_xp_is_monotonic():
    levels = [level_from_xp(xp) for xp in range(0, 20000, 37)]
    assert levels == sorted(levels)


@pytest.mark.parametrize("bad_xp", [-1, float("nan"), "100", None, True])
def test_level_from_xp_rejects_invalid_input(bad_xp):
    with pytest.raises(InvalidArgumentError):
        level_from_xp(bad_xp)


# ============================================================================
# Threshold Tests
# ============================================================================

def test_xp_required_for_level():
    assert xp_required_for_level(1) == 100
    assert xp_required_for_level(2) == 238
    assert xp_required_for_level(3) == 395
    assert xp_required_for_level(4) == 566


def test_xp_required_for_level_rejects_level_below_1():
    with pytest.raises(InvalidArgumentError):
        xp_required_for_level(0)


def test_xp_to_next_level():
    assert xp_to_next_level(120, 2) == 275
    assert xp_to_next_level(500, 4) == 248


def test_xp_to_next_level_never_negative():
    assert xp_to_next_level(10000, 2) == 0


# ============================================================================
# Progress Percentage Tests
# ============================================================================

def test_progress_percent_is_clamped_at_zero_below_threshold():
    """Level 2 starts at 100 XP but its threshold is 238"""
    assert progress_percent_within_level(120, 2) == 0
    assert progress_percent_within_level(0, 1) == 0


def test_progress_percent_between_thresholds():
    assert progress_percent_within_level(300, 2) == 39


def test_progress_percent_is_clamped_at_100():
    assert progress_percent_within_level(5000, 2) == 100


def test_get_level_info():
    info = get_level_info(120)

    assert info == {
        "level": 2,
        "total_xp": 120,
        "xp_to_next_level": 275,
        "next_level_xp": 395,
        "progress_percent": 0,
    }
