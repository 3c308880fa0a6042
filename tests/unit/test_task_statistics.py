"""Unit tests for task streaks and completion statistics (arete/gamification/task_statistics.py)"""
import pytest
from datetime import date, datetime, timezone

from arete.exceptions import InvalidArgumentError
from arete.gamification.task_statistics import (
    calculate_all_time_completion_rate,
    calculate_completion_rate,
    calculate_daily_completion_rate,
    calculate_monthly_completion_rate,
    calculate_task_streak,
    calculate_weekly_completion_rate,
    get_category_distribution,
    get_least_frequently_completed_tasks,
    get_most_frequently_completed_tasks,
    get_performance_trend,
    get_streak_summary,
    get_task_statistics,
    is_task_due_on,
)
from arete.models.task import DomainCategory, RecurrencePattern


def completed_on(*days):
    """Completion timestamps at 09:00 UTC on each March 2024 day given"""
    return [datetime(2024, 3, day, 9, 0, tzinfo=timezone.utc) for day in days]


# ============================================================================
# Streak Summary Tests
# ============================================================================

def test_get_streak_summary_empty():
    summary = get_streak_summary([])

    assert summary["current_streaks"]["average"] == 0
    assert summary["current_streaks"]["highest"] == {"value": 0, "task_id": "", "task_name": ""}
    assert summary["current_streaks"]["lowest"] == {"value": 0, "task_id": "", "task_name": ""}
    assert summary["best_streaks"]["average"] == 0
    assert summary["best_streaks"]["highest"]["task_id"] == ""


def test_get_streak_summary_ties_go_to_first_task(make_task):
    tasks = [
        make_task("a", current_streak=3),
        make_task("b", current_streak=3),
        make_task("c", current_streak=1),
    ]

    summary = get_streak_summary(tasks)

    assert summary["current_streaks"]["highest"]["task_id"] == "a"
    assert summary["current_streaks"]["lowest"]["task_id"] == "c"
    assert summary["current_streaks"]["average"] == 2.33


def test_get_streak_summary_best_uses_total_completions(make_task):
    tasks = [
        make_task("a", current_streak=5, total_completions=2),
        make_task("b", current_streak=1, total_completions=12),
    ]

    summary = get_streak_summary(tasks)

    assert summary["best_streaks"]["highest"] == {"value": 12, "task_id": "b", "task_name": "Task b"}
    assert summary["best_streaks"]["average"] == 8.5


# ============================================================================
# Category Distribution Tests
# ============================================================================

def test_get_category_distribution_sorted_and_stable(make_task):
    tasks = [
        make_task("1", category="diet", total_completions=1),
        make_task("2", category="fitness"),
        make_task("3", category="fitness", total_completions=4),
        make_task("4", category="sleep"),
    ]

    distribution = get_category_distribution(tasks)

    assert [entry["category"] for entry in distribution] == ["fitness", "diet", "sleep"]
    assert distribution[0] == {"category": "fitness", "count": 2, "completed_count": 1, "completion_rate": 50.0}
    assert distribution[1]["completion_rate"] == 100.0
    assert distribution[2]["completion_rate"] == 0.0


def test_get_category_distribution_empty():
    assert get_category_distribution([]) == []


# ============================================================================
# Recurrence Tests
# ============================================================================

def test_is_task_due_on_never_before_creation(make_task):
    task = make_task()  # created Friday 2024-03-01

    assert is_task_due_on(task, date(2024, 2, 29)) is False
    assert is_task_due_on(task, date(2024, 3, 1)) is True


def test_is_task_due_on_once(make_task):
    task = make_task(recurrence_pattern=RecurrencePattern.ONCE)

    assert is_task_due_on(task, date(2024, 3, 1)) is True
    assert is_task_due_on(task, date(2024, 3, 2)) is False


def test_is_task_due_on_weekdays_and_weekends(make_task):
    weekdays = make_task(recurrence_pattern=RecurrencePattern.WEEKDAYS)
    weekends = make_task(recurrence_pattern=RecurrencePattern.WEEKENDS)
    saturday = date(2024, 3, 2)
    monday = date(2024, 3, 4)

    assert is_task_due_on(weekdays, saturday) is False
    assert is_task_due_on(weekdays, monday) is True
    assert is_task_due_on(weekends, saturday) is True
    assert is_task_due_on(weekends, monday) is False


def test_is_task_due_on_weekly_uses_creation_weekday(make_task):
    task = make_task(recurrence_pattern=RecurrencePattern.WEEKLY)

    assert is_task_due_on(task, date(2024, 3, 8)) is True
    assert is_task_due_on(task, date(2024, 3, 7)) is False


def test_is_task_due_on_custom_days_are_sunday_based(make_task):
    task = make_task(recurrence_pattern=RecurrencePattern.CUSTOM, custom_recurrence_days=[0, 3])

    assert is_task_due_on(task, date(2024, 3, 3)) is True   # Sunday
    assert is_task_due_on(task, date(2024, 3, 6)) is True   # Wednesday
    assert is_task_due_on(task, date(2024, 3, 4)) is False  # Monday


def test_custom_recurrence_days_validated(make_task):
    with pytest.raises(ValueError):
        make_task(recurrence_pattern=RecurrencePattern.CUSTOM, custom_recurrence_days=[7])


# ============================================================================
# Completion Rate Tests
# ============================================================================

def test_weekly_completion_rate_stops_at_today(make_task):
    task = make_task(completion_history=completed_on(1, 2, 3), total_completions=3)

    result = calculate_weekly_completion_rate([task], date(2024, 3, 1), today=date(2024, 3, 5))

    assert result["total"] == 5
    assert result["completed"] == 3
    assert result["rate"] == 60.0
    assert result["start_date"] == "2024-03-01"
    assert result["end_date"] == "2024-03-05"


def test_weekly_completion_rate_window_after_today(make_task):
    task = make_task(completion_history=completed_on(1, 2, 3), total_completions=3)

    result = calculate_weekly_completion_rate([task], date(2024, 3, 10), today=date(2024, 3, 5))

    assert result["total"] == 0
    assert result["rate"] == 0.0
    assert result["start_date"] == "2024-03-10"
    assert result["end_date"] == "2024-03-10"


def test_monthly_completion_rate(make_task):
    task = make_task(completion_history=completed_on(1, 2, 3), total_completions=3)

    result = calculate_monthly_completion_rate([task], 3, 2024, today=date(2024, 3, 5))

    assert result["period"] == "monthly"
    assert result["rate"] == 60.0


def test_daily_completion_rate_nothing_due(make_task):
    task = make_task()

    result = calculate_daily_completion_rate([task], date(2024, 2, 1), today=date(2024, 3, 5))

    assert result["total"] == 0
    assert result["rate"] == 0.0


def test_all_time_completion_rate_starts_at_earliest_creation(make_task):
    tasks = [
        make_task("a", completion_history=completed_on(1, 2), total_completions=2),
        make_task(
            "b",
            created_at=datetime(2024, 3, 2, tzinfo=timezone.utc),
            recurrence_pattern=RecurrencePattern.ONCE,
            completion_history=completed_on(2),
            total_completions=1,
        ),
    ]

    result = calculate_all_time_completion_rate(tasks, today=date(2024, 3, 3))

    assert result["start_date"] == "2024-03-01"
    assert result["total"] == 4  # daily task x3 + once task x1
    assert result["completed"] == 3
    assert result["rate"] == 75.0


def test_completion_rate_unknown_period(make_task):
    with pytest.raises(InvalidArgumentError):
        calculate_completion_rate([make_task()], "fortnightly", date(2024, 3, 1), date(2024, 3, 5))


# ============================================================================
# Task Streak Tests
# ============================================================================

def test_calculate_task_streak_consecutive_days(make_task):
    task = make_task(completion_history=completed_on(3, 4, 5))

    assert calculate_task_streak(task, today=date(2024, 3, 5)) == 3


def test_calculate_task_streak_stops_at_creation(make_task):
    task = make_task(completion_history=completed_on(1, 2, 3, 4, 5))

    assert calculate_task_streak(task, today=date(2024, 3, 5)) == 5


def test_calculate_task_streak_today_not_done(make_task):
    task = make_task(completion_history=completed_on(3, 4, 5))

    assert calculate_task_streak(task, today=date(2024, 3, 6)) == 0


def test_calculate_task_streak_skips_days_not_due(make_task):
    # Weekend days are not due, so Fri -> Mon is unbroken
    task = make_task(
        recurrence_pattern=RecurrencePattern.WEEKDAYS,
        completion_history=completed_on(1, 4),
    )

    assert calculate_task_streak(task, today=date(2024, 3, 4)) == 2


def test_calculate_task_streak_once_and_empty(make_task):
    assert calculate_task_streak(make_task()) == 0
    once = make_task(recurrence_pattern=RecurrencePattern.ONCE, completion_history=completed_on(1))
    assert calculate_task_streak(once, today=date(2024, 3, 10)) == 1


# ============================================================================
# Frequency & Trend Tests
# ============================================================================

def test_most_and_least_frequently_completed(make_task):
    tasks = [
        make_task("a", total_completions=3),
        make_task("b", total_completions=0),
        make_task("c", total_completions=9, domain_category=DomainCategory.SOMA),
    ]

    most = get_most_frequently_completed_tasks(tasks)
    least = get_least_frequently_completed_tasks(tasks)

    assert [t["task_id"] for t in most] == ["c", "a"]
    assert [t["task_id"] for t in least] == ["a", "c"]
    assert most[0]["domain_category"] == "soma"


def test_get_performance_trend_per_domain(make_task):
    tasks = [
        make_task("a", domain_category=DomainCategory.SOMA, completion_history=completed_on(1, 4, 5)),
        make_task("b", domain_category=DomainCategory.ETHOS, completion_history=completed_on(5)),
    ]

    trend = get_performance_trend(tasks, "week", to_date=date(2024, 3, 10))

    by_domain = {entry["domain"]: entry for entry in trend}
    assert by_domain["soma"]["completed"] == 2  # 3/1 falls outside the 7-day window
    assert by_domain["soma"]["from_date"] == "2024-03-04"
    assert by_domain["ethos"]["completed"] == 1
    assert by_domain["trophe"]["total_tasks"] == 0


def test_get_performance_trend_unknown_period():
    with pytest.raises(InvalidArgumentError):
        get_performance_trend([], "decade", to_date=date(2024, 3, 5))


def test_get_task_statistics_shape(make_task):
    stats = get_task_statistics([make_task(completion_history=completed_on(1), total_completions=1)], date(2024, 3, 5))

    assert set(stats["completion_rates"]) == {"daily", "weekly", "monthly", "yearly", "all_time"}
    assert stats["overall_completion_rate"] == 20.0
    assert len(stats["domain_breakdown"]) == 3
