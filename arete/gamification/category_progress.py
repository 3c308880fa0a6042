"""
Category Progress Tracker

Per-category XP pools and levels for the four movement categories
(core, push, pull, legs), milestone detection and read-only statistics.

Each category levels on its own XP pool using the global level curve.
"""

from typing import Dict, List, Optional
import logging

from arete.exceptions import InvalidArgumentError
from arete.gamification.level_curve import level_from_xp, xp_to_next_level
from arete.models.progress import ProgressCategory, UserProgress, XpTransaction

logger = logging.getLogger(__name__)

VALID_CATEGORIES: List[str] = [category.value for category in ProgressCategory]

CATEGORY_METADATA: Dict[str, Dict[str, any]] = {
    "core": {
        "name": "Core",
        "description": "Core stability and abdominal strength",
        "icon": "disc",
        "color": "bg-blue-500",
        "primary_muscles": ["Rectus Abdominis", "Obliques", "Transverse Abdominis", "Erector Spinae"],
        "xp_scaling": 1.0,
    },
    "push": {
        "name": "Push",
        "description": "Pushing movements - chest, shoulders, triceps",
        "icon": "arrow-up",
        "color": "bg-red-500",
        "primary_muscles": ["Pectoralis", "Deltoids", "Triceps"],
        "xp_scaling": 1.0,
    },
    "pull": {
        "name": "Pull",
        "description": "Pulling movements - back and biceps",
        "icon": "arrow-down",
        "color": "bg-green-500",
        "primary_muscles": ["Latissimus Dorsi", "Rhomboids", "Trapezius", "Biceps"],
        "xp_scaling": 1.0,
    },
    "legs": {
        "name": "Legs",
        "description": "Lower body strength and mobility",
        "icon": "activity",
        "color": "bg-purple-500",
        "primary_muscles": ["Quadriceps", "Hamstrings", "Gluteus", "Calves"],
        "xp_scaling": 1.1,
    },
}

# Milestone events, ascending
CATEGORY_MILESTONES = [
    (500, "beginner"),
    (1500, "intermediate"),
    (3000, "advanced"),
    (6000, "expert"),
    (10000, "master"),
]

# Display ranks; Grandmaster is a rank only, not a milestone event
CATEGORY_RANKS = [
    {"name": "Novice", "threshold": 0, "icon": "user"},
    {"name": "Beginner", "threshold": 500, "icon": "award"},
    {"name": "Intermediate", "threshold": 1500, "icon": "shield"},
    {"name": "Advanced", "threshold": 3000, "icon": "star"},
    {"name": "Expert", "threshold": 6000, "icon": "crown"},
    {"name": "Master", "threshold": 10000, "icon": "gem"},
    {"name": "Grandmaster", "threshold": 20000, "icon": "trophy"},
]


def is_valid_category(category) -> bool:
    if isinstance(category, ProgressCategory):
        return True
    return isinstance(category, str) and category in VALID_CATEGORIES


def parse_category(category) -> ProgressCategory:
    """Normalize a category string/enum, raising InvalidArgumentError if unknown"""
    if not is_valid_category(category):
        raise InvalidArgumentError(
            f"Unknown category '{category}'. Expected one of {', '.join(VALID_CATEGORIES)}",
            field="category",
            value=category
        )
    return ProgressCategory(category)


def milestones_crossed(category: str, previous_xp: int, new_xp: int) -> List[str]:
    """All milestones with previous_xp < threshold <= new_xp, ascending"""
    name = ProgressCategory(category).value
    return [
        f"{name}_{label}"
        for threshold, label in CATEGORY_MILESTONES
        if previous_xp < threshold <= new_xp
    ]


def check_category_milestone(category: str, previous_xp: int, new_xp: int) -> Optional[str]:
    """
    Milestone reached by moving a category pool from previous_xp to new_xp

    Only the highest threshold crossed is reported; a jump over several
    thresholds skips the intermediate ones.

    Returns:
        "{category}_{name}" (e.g. "push_beginner") or None
    """
    crossed = milestones_crossed(category, previous_xp, new_xp)
    return crossed[-1] if crossed else None


def apply_category_xp(progress: UserProgress, category, amount: int) -> Dict[str, any]:
    """
    Add XP to one category pool and recompute its level

    Mutates `progress` (category_progress[c] and category_xp[c]).

    Returns:
        {
            'category': str,
            'previous_xp': int,
            'current_xp': int,
            'previous_level': int,
            'current_level': int,
            'leveled_up': bool,
            'milestone': str or None
        }
    """
    name = parse_category(category).value
    state = progress.category_progress[name]

    previous_xp = state.xp
    previous_level = state.level

    state.xp = previous_xp + amount
    state.level = level_from_xp(state.xp)
    progress.category_xp[name] = progress.category_xp.get(name, 0) + amount

    crossed = milestones_crossed(name, previous_xp, state.xp)
    milestone = crossed[-1] if crossed else None
    if len(crossed) > 1:
        logger.info(f"Category {name} skipped milestones {crossed[:-1]} for user {progress.user_id}")

    return {
        "category": name,
        "previous_xp": previous_xp,
        "current_xp": state.xp,
        "previous_level": previous_level,
        "current_level": state.level,
        "leveled_up": state.level > previous_level,
        "milestone": milestone,
    }


def get_category_rank(xp: int) -> Dict[str, any]:
    """
    Display rank for a category XP total

    Returns:
        {
            'rank': str,
            'icon': str,
            'next_rank': str or None,
            'progress_percent': int,
            'xp_to_next_rank': int,
            'current_threshold': int,
            'next_threshold': int or None
        }
    """
    index = 0
    for i, rank in enumerate(CATEGORY_RANKS):
        if xp >= rank["threshold"]:
            index = i

    current = CATEGORY_RANKS[index]
    following = CATEGORY_RANKS[index + 1] if index + 1 < len(CATEGORY_RANKS) else None

    progress_percent = 100
    xp_to_next_rank = 0
    if following:
        range_size = following["threshold"] - current["threshold"]
        progress_percent = min(100, (xp - current["threshold"]) * 100 // range_size)
        xp_to_next_rank = following["threshold"] - xp

    return {
        "rank": current["name"],
        "icon": current["icon"],
        "next_rank": following["name"] if following else None,
        "progress_percent": progress_percent,
        "xp_to_next_rank": xp_to_next_rank,
        "current_threshold": current["threshold"],
        "next_threshold": following["threshold"] if following else None,
    }


def get_recent_category_activity(
    category: str,
    xp_history: List[XpTransaction],
    limit: int = 5
) -> List[Dict[str, any]]:
    """Most recent transactions tagged with `category`, newest first"""
    name = parse_category(category)
    tagged = [tx for tx in xp_history if tx.category == name]
    tagged.sort(key=lambda tx: tx.date, reverse=True)

    return [
        {
            "date": tx.date.isoformat(),
            "amount": tx.amount,
            "source": tx.source,
            "details": tx.details,
        }
        for tx in tagged[:limit]
    ]


def _percent_of_total(category_xp: int, total_xp: int) -> int:
    if total_xp <= 0:
        return 0
    return round(category_xp / total_xp * 100)


def get_category_statistics(category: str, progress: UserProgress) -> Dict[str, any]:
    """
    Read-only statistics for one category; never mutates `progress`

    Returns:
        {
            'category', 'level', 'xp', 'xp_to_next_level', 'rank', 'icon',
            'next_rank', 'percent_of_total', 'percent_to_next_rank',
            'xp_to_next_rank', 'recent_activity', 'unlocked_exercises', 'metadata'
        }
    """
    name = parse_category(category).value
    xp = progress.category_xp.get(name, 0)
    state = progress.category_progress.get(name)
    level = state.level if state else 1
    rank = get_category_rank(xp)

    return {
        "category": name,
        "level": level,
        "xp": xp,
        "xp_to_next_level": xp_to_next_level(xp, level),
        "rank": rank["rank"],
        "icon": rank["icon"],
        "next_rank": rank["next_rank"],
        "percent_of_total": _percent_of_total(xp, progress.total_xp),
        "percent_to_next_rank": rank["progress_percent"],
        "xp_to_next_rank": rank["xp_to_next_rank"],
        "recent_activity": get_recent_category_activity(name, progress.xp_history),
        "unlocked_exercises": len(state.unlocked_exercises) if state else 0,
        "metadata": dict(CATEGORY_METADATA[name]),
    }


def get_balance_message(balance_score: float) -> str:
    if balance_score >= 90:
        return "Excellent balance across all movement patterns!"
    elif balance_score >= 70:
        return "Good overall balance with room for minor improvements."
    elif balance_score >= 50:
        return "Decent balance, but some categories need attention."
    elif balance_score >= 30:
        return "Significant imbalance detected. Focus on weaker areas."
    return "Major imbalance. Consider a more balanced training approach."


def get_categories_comparison(progress: UserProgress) -> Dict[str, any]:
    """
    Compare the four categories: strongest, weakest and a 0-100 balance score

    A perfectly balanced user has 25% of total XP in each category; the
    score drops by 4 points per percentage point of average deviation.
    """
    categories = []
    for name in VALID_CATEGORIES:
        xp = progress.category_xp.get(name, 0)
        metadata = CATEGORY_METADATA[name]
        categories.append({
            "category": name,
            "name": metadata["name"],
            "icon": metadata["icon"],
            "color": metadata["color"],
            "xp": xp,
            "level": progress.category_progress[name].level,
            "rank": get_category_rank(xp)["rank"],
            "percent_of_total": _percent_of_total(xp, progress.total_xp),
        })

    by_xp = sorted(categories, key=lambda c: c["xp"], reverse=True)

    balance_score = 0.0
    if progress.total_xp > 0:
        deviations = [abs(c["percent_of_total"] - 25) for c in categories]
        average_deviation = sum(deviations) / len(deviations)
        balance_score = max(0.0, min(100.0, 100 - average_deviation * 4))

    return {
        "categories": categories,
        "strongest": by_xp[0],
        "weakest": by_xp[-1],
        "balance_score": round(balance_score),
        "balance_message": get_balance_message(balance_score),
        "average_level": sum(c["level"] for c in categories) / len(categories),
    }


def get_category_progress_summary(progress: UserProgress) -> List[Dict[str, any]]:
    """Dashboard rows, one per category"""
    summary = []
    for name in VALID_CATEGORIES:
        xp = progress.category_xp.get(name, 0)
        rank = get_category_rank(xp)
        metadata = CATEGORY_METADATA[name]
        summary.append({
            "category": name,
            "name": metadata["name"],
            "icon": metadata["icon"],
            "color": metadata["color"],
            "level": progress.category_progress[name].level,
            "xp": xp,
            "rank": rank["rank"],
            "progress_percent": rank["progress_percent"],
            "xp_to_next": rank["xp_to_next_rank"],
        })
    return summary
