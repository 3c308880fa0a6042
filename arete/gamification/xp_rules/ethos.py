"""
Ethos (habits) XP rules

Task completion XP: 10 base, +2 per streak day (bonus capped at 50), and
a one-off bonus on the day a streak reaches 7, 30 or 100.
"""

BASE_COMPLETION_XP = 10
STREAK_BONUS_PER_DAY = 2
MAX_STREAK_BONUS = 50
STREAK_MILESTONE_BONUSES = {
    7: 25,
    30: 100,
    100: 500,
}


def calculate_task_xp(streak_count: int = 0) -> int:
    streak_count = max(0, streak_count or 0)
    xp_amount = BASE_COMPLETION_XP
    xp_amount += min(streak_count * STREAK_BONUS_PER_DAY, MAX_STREAK_BONUS)
    xp_amount += STREAK_MILESTONE_BONUSES.get(streak_count, 0)
    return xp_amount


def describe_task_completion(task_name: str, streak_count: int = 0) -> str:
    if streak_count:
        return f"Completed task: {task_name} ({streak_count} day streak)"
    return f"Completed task: {task_name}"
