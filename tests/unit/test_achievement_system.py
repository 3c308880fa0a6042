"""Unit tests for achievement checking and unlocking (arete/gamification/achievement_system.py)"""
import pytest
from unittest.mock import MagicMock

from arete.exceptions import ConfigurationError, InvalidArgumentError, NotFoundError
from arete.gamification.achievement_system import (
    ACHIEVEMENTS,
    ACHIEVEMENTS_BY_ID,
    award_achievements,
    check_achievements,
    check_cross_domain_unlocks,
    check_exercise_unlocks,
    claim_achievement,
    get_achievement_definition,
    get_achievement_progress,
    get_achievement_recommendations,
    get_achievements_with_status,
    get_unlock_progress,
    validate_achievement_definitions,
)
from arete.models.achievement import (
    AchievementDefinition,
    AchievementRequirement,
    AchievementType,
    CategoryLevelRequirement,
)
from arete.models.progress import AchievementStatus


def make_definition(achievement_id, xp_reward=10, **requirements):
    return AchievementDefinition(
        id=achievement_id,
        title=achievement_id.title(),
        description="test",
        type=AchievementType.MILESTONE,
        xp_reward=xp_reward,
        icon="award",
        requirements=AchievementRequirement(**requirements),
    )


# ============================================================================
# Definition Validation Tests
# ============================================================================

def test_builtin_definitions_are_valid():
    validate_achievement_definitions(ACHIEVEMENTS)

    assert len(ACHIEVEMENTS) == 18
    assert len(ACHIEVEMENTS_BY_ID) == len(ACHIEVEMENTS)
    assert {"balanced_warrior", "consistency_master", "pull_level_5"} <= set(ACHIEVEMENTS_BY_ID)


def test_validate_rejects_duplicate_ids():
    with pytest.raises(ConfigurationError):
        validate_achievement_definitions([make_definition("a", level=2), make_definition("a", level=3)])


def test_validate_rejects_unknown_category():
    bad = make_definition("arms_5", category_level=CategoryLevelRequirement(category="arms", level=5))

    with pytest.raises(ConfigurationError):
        validate_achievement_definitions([bad])


def test_validate_rejects_empty_requirements():
    with pytest.raises(ConfigurationError):
        validate_achievement_definitions([make_definition("nothing")])


def test_validate_rejects_negative_reward():
    definition = make_definition("negative", level=2)
    negative = AchievementDefinition.model_construct(**{**dict(definition), "xp_reward": -5})

    with pytest.raises(ConfigurationError):
        validate_achievement_definitions([negative])


def test_validate_rejects_unknown_required_achievement():
    with pytest.raises(ConfigurationError):
        validate_achievement_definitions([make_definition("a", requires_achievements=("ghost",))])


def test_validate_rejects_requirement_cycles():
    definitions = [
        make_definition("a", requires_achievements=("b",)),
        make_definition("b", requires_achievements=("c",)),
        make_definition("c", requires_achievements=("a",)),
    ]

    with pytest.raises(ConfigurationError) as exc_info:
        validate_achievement_definitions(definitions)

    assert "Cyclic" in exc_info.value.message


def test_get_achievement_definition_unknown():
    with pytest.raises(NotFoundError):
        get_achievement_definition("does_not_exist")


# ============================================================================
# Check Tests
# ============================================================================

def test_check_achievements_in_definition_order(fresh_progress):
    fresh_progress.total_xp = 1000
    fresh_progress.level = 7

    satisfied = check_achievements(fresh_progress)

    assert [d.id for d in satisfied] == ["global_level_5", "xp_1000"]


def test_check_achievements_skips_unlocked(fresh_progress):
    fresh_progress.total_xp = 1000
    fresh_progress.level = 7
    award_achievements(fresh_progress, [ACHIEVEMENTS_BY_ID["xp_1000"]], credit_xp=False)

    satisfied = check_achievements(fresh_progress)

    assert [d.id for d in satisfied] == ["global_level_5"]


def test_check_achievements_isolates_failing_rule(fresh_progress):
    broken = MagicMock(id="broken")
    broken.unlock_condition.side_effect = KeyError("missing counter")
    working = MagicMock(id="working")
    working.unlock_condition.return_value = True

    satisfied = check_achievements(fresh_progress, [broken, working])

    assert satisfied == [working]


def test_requirements_with_prerequisite(fresh_progress):
    chained = make_definition("chained", level=1, requires_achievements=("xp_1000",))

    assert chained.unlock_condition(fresh_progress) is False
    award_achievements(fresh_progress, [ACHIEVEMENTS_BY_ID["xp_1000"]], credit_xp=False)
    assert chained.unlock_condition(fresh_progress) is True


# ============================================================================
# Award & Claim Tests
# ============================================================================

def test_award_achievements_credits_xp(fresh_progress):
    result = award_achievements(fresh_progress, [ACHIEVEMENTS_BY_ID["streak_7"]], credit_xp=True)

    assert result["total_xp_awarded"] == 70
    assert result["unlocked"][0]["id"] == "streak_7"
    assert result["unlocked"][0]["status"] == "claimed"
    assert result["updated_progress"] is fresh_progress
    assert fresh_progress.total_xp == 70
    assert fresh_progress.xp_history[-1].source == "achievement_unlock"


def test_award_achievements_is_idempotent(fresh_progress):
    definition = ACHIEVEMENTS_BY_ID["streak_7"]
    award_achievements(fresh_progress, [definition], credit_xp=True)

    second = award_achievements(fresh_progress, [definition], credit_xp=True)

    assert second["unlocked"] == []
    assert second["total_xp_awarded"] == 0
    assert fresh_progress.total_xp == 70


def test_claim_pending_achievement_once(fresh_progress):
    award_achievements(fresh_progress, [ACHIEVEMENTS_BY_ID["workouts_10"]], credit_xp=False)
    assert fresh_progress.total_xp == 0
    assert fresh_progress.achievements["workouts_10"].status == AchievementStatus.PENDING

    first = claim_achievement(fresh_progress, "workouts_10")
    second = claim_achievement(fresh_progress, "workouts_10")

    assert first == {"achievement_id": "workouts_10", "xp_awarded": 50, "already_claimed": False, "status": "claimed"}
    assert second["already_claimed"] is True
    assert second["xp_awarded"] == 0
    assert fresh_progress.total_xp == 50
    assert fresh_progress.achievements["workouts_10"].xp_awarded == 50


def test_claim_unknown_achievement(fresh_progress):
    with pytest.raises(NotFoundError):
        claim_achievement(fresh_progress, "nope")


def test_claim_locked_achievement(fresh_progress):
    with pytest.raises(InvalidArgumentError):
        claim_achievement(fresh_progress, "streak_30")


# ============================================================================
# Cross-Domain Unlock Tests
# ============================================================================

def test_check_cross_domain_unlocks_balanced():
    levels = {"core": 3, "push": 3, "pull": 3, "legs": 3}

    assert check_cross_domain_unlocks(levels, 0, 0) == ["balanced_warrior"]


def test_check_cross_domain_unlocks_consistency():
    levels = {"core": 5, "push": 5, "pull": 1, "legs": 1}

    assert check_cross_domain_unlocks(levels, 5000, 30) == ["consistency_master"]
    assert check_cross_domain_unlocks(levels, 5000, 29) == []


def test_check_exercise_unlocks():
    assert check_exercise_unlocks({"pull": 5, "core": 3, "push": 3, "legs": 1}) == ["muscle_up"]
    assert check_exercise_unlocks({"pull": 4, "core": 3, "push": 3, "legs": 1}) == []


def test_get_unlock_progress_muscle_up():
    result = get_unlock_progress("MUSCLE_UP", {"pull": 3, "core": 3, "push": 1, "legs": 1})

    assert result["progress"] == 33
    assert result["missing"] == ["pull: level 3/5", "push: level 1/3"]


def test_get_unlock_progress_consistency_master():
    levels = {"core": 1, "push": 1, "pull": 1, "legs": 1}

    result = get_unlock_progress("CONSISTENCY_MASTER", levels, total_xp=1200, longest_streak=10)

    assert result["progress"] == 0
    assert result["missing"] == ["XP: 1200/5000", "Streak: 10/30 days", "Categories at level 5+: 0/2"]


def test_get_unlock_progress_unknown_key():
    with pytest.raises(InvalidArgumentError):
        get_unlock_progress("BACKFLIP", {})


# ============================================================================
# Status & Recommendation Tests
# ============================================================================

def test_get_achievement_progress_partial(fresh_progress):
    fresh_progress.total_xp = 500

    result = get_achievement_progress(fresh_progress, ACHIEVEMENTS_BY_ID["xp_1000"])

    assert result == {"percentage": 50, "requirements_met": 0, "requirements_total": 1}


def test_get_achievements_with_status_fresh_user(fresh_progress):
    status = get_achievements_with_status(fresh_progress)

    assert status["total_unlocked"] == 0
    assert status["total_achievements"] == 18
    assert status["pending_count"] == 0
    assert len(status["locked"]) == 18


def test_get_achievements_with_status_counts_pending(fresh_progress):
    award_achievements(fresh_progress, [ACHIEVEMENTS_BY_ID["streak_7"]], credit_xp=True)
    award_achievements(fresh_progress, [ACHIEVEMENTS_BY_ID["workouts_10"]], credit_xp=False)

    status = get_achievements_with_status(fresh_progress, include_locked=False)

    assert status["total_unlocked"] == 2
    assert status["pending_count"] == 1
    assert status["total_xp_from_achievements"] == 70
    assert "locked" not in status


def test_get_achievement_recommendations(fresh_progress):
    fresh_progress.total_xp = 600

    recommendations = get_achievement_recommendations(fresh_progress)

    assert [a["id"] for a in recommendations] == ["xp_1000"]
