"""
Progression engine for Arete

This module implements:
- XP and leveling (global and per movement category)
- Category milestones, ranks and balance
- Achievement system with cross-domain unlocks
- Task completion statistics
- XP history summaries and storage maintenance
"""

from arete.gamification.xp_system import award_xp, award_xp_shares, get_user_progress, get_user_level_info
from arete.gamification.level_curve import level_from_xp, xp_required_for_level, get_level_info
from arete.gamification.achievement_system import (
    check_achievements,
    award_achievements,
    claim_achievement,
    get_achievements_with_status,
)
from arete.gamification.mock_store import InMemoryProgressStore

__all__ = [
    "award_xp",
    "award_xp_shares",
    "get_user_progress",
    "get_user_level_info",
    "level_from_xp",
    "xp_required_for_level",
    "get_level_info",
    "check_achievements",
    "award_achievements",
    "claim_achievement",
    "get_achievements_with_status",
    "InMemoryProgressStore",
]
