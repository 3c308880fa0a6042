"""
Task Statistics

Streaks, completion rates and distributions computed from task records
the caller has already fetched. Pure functions, no I/O.

Completion rates are recurrence-aware: every calendar day of the window
is walked, tasks due that day are counted, and a task counts as completed
when one of its completion timestamps falls on that UTC day.
"""

from calendar import monthrange
from datetime import date, timedelta
from typing import Dict, List, Optional, Set
import logging

from arete.exceptions import InvalidArgumentError
from arete.models.task import DomainCategory, RecurrencePattern, TaskRecord
from arete.utils.datetime_helpers import (
    iter_days,
    now_utc,
    sunday_based_weekday,
    utc_day,
    week_start_sunday,
)

logger = logging.getLogger(__name__)

COMPLETION_PERIODS = ("daily", "weekly", "monthly", "yearly", "all-time")
TREND_PERIOD_DAYS = {"day": 1, "week": 7, "month": 30, "year": 365}
MAX_STREAK_DAYS = 90


def _today(today: Optional[date]) -> date:
    return today if today is not None else now_utc().date()


def _completion_days(task: TaskRecord) -> Set[date]:
    return {utc_day(completed) for completed in task.completion_history}


def is_task_due_on(task: TaskRecord, day: date) -> bool:
    """
    Whether `task` is due on `day` under its recurrence pattern

    A task is never due before the day it was created. `weekly` tasks are
    due on the weekday they were created; `custom` days use 0 = Sunday.
    """
    created = utc_day(task.created_at)
    if day < created:
        return False

    pattern = task.recurrence_pattern
    if pattern == RecurrencePattern.ONCE:
        return day == created
    elif pattern == RecurrencePattern.DAILY:
        return True
    elif pattern == RecurrencePattern.WEEKDAYS:
        return day.weekday() < 5
    elif pattern == RecurrencePattern.WEEKENDS:
        return day.weekday() >= 5
    elif pattern == RecurrencePattern.WEEKLY:
        return day.weekday() == created.weekday()
    elif pattern == RecurrencePattern.CUSTOM:
        return sunday_based_weekday(day) in task.custom_recurrence_days

    logger.warning(f"Unknown recurrence pattern {pattern} for task {task.id}")
    return False


def _period_window(
    tasks: List[TaskRecord],
    period: str,
    reference_date: date,
    today: date
) -> tuple:
    if period == "daily":
        return reference_date, reference_date
    elif period == "weekly":
        return reference_date, reference_date + timedelta(days=6)
    elif period == "monthly":
        last_day = monthrange(reference_date.year, reference_date.month)[1]
        return reference_date.replace(day=1), reference_date.replace(day=last_day)
    elif period == "yearly":
        return date(reference_date.year, 1, 1), date(reference_date.year, 12, 31)
    elif period == "all-time":
        if not tasks:
            return today, today
        return min(utc_day(task.created_at) for task in tasks), today

    raise InvalidArgumentError(
        f"Unknown period '{period}'. Expected one of {', '.join(COMPLETION_PERIODS)}",
        field="period",
        value=period
    )


def calculate_completion_rate(
    tasks: List[TaskRecord],
    period: str,
    reference_date: Optional[date] = None,
    today: Optional[date] = None
) -> Dict[str, any]:
    """
    Due-vs-completed rate over a calendar window

    Args:
        tasks: Task records with completion history
        period: daily, weekly (7 days from reference_date), monthly, yearly, all-time
        reference_date: Day inside (or start of, for weekly) the window
        today: Days after today are not counted

    Returns:
        {
            'total': int (due task-days),
            'completed': int,
            'rate': float (0-100, 2 decimals),
            'period': str,
            'start_date': str,
            'end_date': str
        }
    """
    today = _today(today)
    reference_date = reference_date or today
    start, end = _period_window(tasks, period, reference_date, today)
    end = min(end, today)
    if end < start:
        # Window lies after today: empty, reported as its first day
        end = start
        days = []
    else:
        days = list(iter_days(start, end))

    completions = {task.id: _completion_days(task) for task in tasks}
    total = 0
    completed = 0
    for day in days:
        for task in tasks:
            if not is_task_due_on(task, day):
                continue
            total += 1
            if day in completions[task.id]:
                completed += 1

    rate = round(completed / total * 100, 2) if total > 0 else 0.0

    return {
        "total": total,
        "completed": completed,
        "rate": rate,
        "period": period,
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
    }


def calculate_daily_completion_rate(tasks, day: date, today: Optional[date] = None):
    return calculate_completion_rate(tasks, "daily", day, today)


def calculate_weekly_completion_rate(tasks, week_start: date, today: Optional[date] = None):
    return calculate_completion_rate(tasks, "weekly", week_start, today)


def calculate_monthly_completion_rate(tasks, month: int, year: int, today: Optional[date] = None):
    return calculate_completion_rate(tasks, "monthly", date(year, month, 1), today)


def calculate_yearly_completion_rate(tasks, year: int, today: Optional[date] = None):
    return calculate_completion_rate(tasks, "yearly", date(year, 1, 1), today)


def calculate_all_time_completion_rate(tasks, today: Optional[date] = None):
    return calculate_completion_rate(tasks, "all-time", None, today)


def _best_streak(task: TaskRecord) -> int:
    # total_completions stands in for the best streak ever reached
    return max(task.current_streak, task.total_completions)


def _streak_entry(value: int, task: Optional[TaskRecord]) -> Dict[str, any]:
    return {
        "value": value,
        "task_id": str(task.id) if task else "",
        "task_name": task.name if task else "",
    }


def get_streak_summary(tasks: List[TaskRecord]) -> Dict[str, any]:
    """
    Current and best streak overview

    Ties for highest/lowest go to the first task in input order. Empty
    input returns zeros with empty ids.
    """
    if not tasks:
        return {
            "current_streaks": {
                "average": 0,
                "highest": _streak_entry(0, None),
                "lowest": _streak_entry(0, None),
            },
            "best_streaks": {
                "average": 0,
                "highest": _streak_entry(0, None),
            },
        }

    highest = tasks[0]
    lowest = tasks[0]
    best = tasks[0]
    for task in tasks[1:]:
        if task.current_streak > highest.current_streak:
            highest = task
        if task.current_streak < lowest.current_streak:
            lowest = task
        if _best_streak(task) > _best_streak(best):
            best = task

    average_current = sum(task.current_streak for task in tasks) / len(tasks)
    average_best = sum(_best_streak(task) for task in tasks) / len(tasks)

    return {
        "current_streaks": {
            "average": round(average_current, 2),
            "highest": _streak_entry(highest.current_streak, highest),
            "lowest": _streak_entry(lowest.current_streak, lowest),
        },
        "best_streaks": {
            "average": round(average_best, 2),
            "highest": _streak_entry(_best_streak(best), best),
        },
    }


def get_category_distribution(tasks: List[TaskRecord]) -> List[Dict[str, any]]:
    """
    Task counts per category, largest first (ties keep first-seen order)

    A task counts as completed when it has ever been completed.
    """
    counts: Dict[str, Dict[str, int]] = {}
    for task in tasks:
        category = task.category or "uncategorized"
        stats = counts.setdefault(category, {"count": 0, "completed_count": 0})
        stats["count"] += 1
        if task.total_completions > 0:
            stats["completed_count"] += 1

    distribution = [
        {
            "category": category,
            "count": stats["count"],
            "completed_count": stats["completed_count"],
            "completion_rate": round(stats["completed_count"] / stats["count"] * 100, 2),
        }
        for category, stats in counts.items()
    ]
    # sorted() is stable, so equal counts keep insertion order
    return sorted(distribution, key=lambda entry: entry["count"], reverse=True)


def _task_frequency(task: TaskRecord) -> Dict[str, any]:
    return {
        "task_id": str(task.id),
        "task_name": task.name,
        "category": task.category or "uncategorized",
        "completed_count": task.total_completions,
        "priority": task.priority or "medium",
        "domain_category": task.domain_category.value if task.domain_category else None,
        "labels": list(task.labels),
    }


def get_most_frequently_completed_tasks(tasks: List[TaskRecord], limit: int = 5) -> List[Dict[str, any]]:
    active = [task for task in tasks if task.total_completions > 0]
    active.sort(key=lambda task: task.total_completions, reverse=True)
    return [_task_frequency(task) for task in active[:limit]]


def get_least_frequently_completed_tasks(tasks: List[TaskRecord], limit: int = 5) -> List[Dict[str, any]]:
    """Least completed among tasks with at least one completion"""
    active = [task for task in tasks if task.total_completions > 0]
    active.sort(key=lambda task: task.total_completions)
    return [_task_frequency(task) for task in active[:limit]]


def get_performance_trend(
    tasks: List[TaskRecord],
    period: str = "week",
    from_date: Optional[date] = None,
    to_date: Optional[date] = None
) -> List[Dict[str, any]]:
    """
    Per-domain (ethos, trophe, soma) task counts and completions in a window

    When from_date is omitted the window is the `period` (day, week,
    month, year) ending at to_date.
    """
    to_date = _today(to_date)
    if from_date is None:
        if period not in TREND_PERIOD_DAYS:
            raise InvalidArgumentError(
                f"Unknown trend period '{period}'",
                field="period",
                value=period
            )
        from_date = to_date - timedelta(days=TREND_PERIOD_DAYS[period] - 1)

    trend = []
    for domain in DomainCategory:
        domain_tasks = [task for task in tasks if task.domain_category == domain]
        completed = sum(
            1
            for task in domain_tasks
            for completed_at in task.completion_history
            if from_date <= utc_day(completed_at) <= to_date
        )
        trend.append({
            "domain": domain.value,
            "from_date": from_date.isoformat(),
            "to_date": to_date.isoformat(),
            "total_tasks": len(domain_tasks),
            "completed": completed,
        })
    return trend


def calculate_task_streak(task: TaskRecord, today: Optional[date] = None) -> int:
    """
    Consecutive due days completed, walking back from today

    Stops at the first due day without a completion, at the creation day,
    or after 90 days. One-off tasks score 0 or 1.
    """
    if not task.completion_history:
        return 0
    if task.recurrence_pattern == RecurrencePattern.ONCE:
        return 1

    completions = _completion_days(task)
    created = utc_day(task.created_at)
    check_day = _today(today)
    streak = 0

    for _ in range(MAX_STREAK_DAYS):
        if check_day < created:
            break
        if is_task_due_on(task, check_day):
            if check_day not in completions:
                break
            streak += 1
        check_day -= timedelta(days=1)

    return streak


def get_task_statistics(tasks: List[TaskRecord], today: Optional[date] = None) -> Dict[str, any]:
    """Everything the statistics endpoint reports, in one pass over the inputs"""
    today = _today(today)
    all_time = calculate_all_time_completion_rate(tasks, today)

    return {
        "completion_rates": {
            "daily": calculate_daily_completion_rate(tasks, today, today),
            "weekly": calculate_weekly_completion_rate(tasks, week_start_sunday(today), today),
            "monthly": calculate_monthly_completion_rate(tasks, today.month, today.year, today),
            "yearly": calculate_yearly_completion_rate(tasks, today.year, today),
            "all_time": all_time,
        },
        "streaks": get_streak_summary(tasks),
        "category_distribution": get_category_distribution(tasks),
        "most_frequently_completed": get_most_frequently_completed_tasks(tasks),
        "least_frequently_completed": get_least_frequently_completed_tasks(tasks),
        "overall_completion_rate": all_time["rate"],
        "domain_breakdown": get_performance_trend(tasks, "week", to_date=today),
    }
