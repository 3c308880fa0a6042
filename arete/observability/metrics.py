"""
Prometheus metrics definitions for the progression engine.

Metrics are grouped by concern:
- XP metrics: XP credited per source, award latency
- Progression metrics: level-ups, category milestones, achievement unlocks
- Storage metrics: transactions, retries
- Error metrics: errors by type and component

The hosting API process exposes them (e.g. prometheus_client.start_http_server).
"""

import logging
from prometheus_client import Counter, Histogram, Info

logger = logging.getLogger(__name__)

# =============================================================================
# XP Metrics
# =============================================================================

xp_awarded_total = Counter(
    "xp_awarded_total",
    "Total XP credited",
    ["source"],  # source: task_completion/workout_completion/achievement_unlock/...
)

xp_award_duration_seconds = Histogram(
    "xp_award_duration_seconds",
    "Time to apply one XP award, including achievement checks",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
)

# =============================================================================
# Progression Metrics
# =============================================================================

level_ups_total = Counter(
    "level_ups_total",
    "Total level-ups",
    ["scope"],  # scope: global/core/push/pull/legs
)

category_milestones_total = Counter(
    "category_milestones_total",
    "Total category milestones reached",
    ["category"],
)

achievements_unlocked_total = Counter(
    "achievements_unlocked_total",
    "Total achievements unlocked",
    ["achievement_id"],
)

# =============================================================================
# Storage Metrics
# =============================================================================

storage_transactions_total = Counter(
    "storage_transactions_total",
    "Total progress document transactions",
    ["status"],  # status: committed/rolled_back
)

storage_retries_total = Counter(
    "storage_retries_total",
    "Total retries of retriable storage failures",
    ["operation"],
)

# =============================================================================
# Error Metrics
# =============================================================================

errors_total = Counter(
    "errors_total",
    "Total errors by type and component",
    ["error_type", "component"],  # component: engine/service/storage
)

# =============================================================================
# Application Info
# =============================================================================

app_info = Info(
    "app_info",
    "Application information",
)


def init_metrics(version: str = "dev"):
    """
    Initialize metrics with application information.

    Call once at process startup.
    """
    import sys

    app_info.info(
        {
            "version": version,
            "python_version": f"{sys.version_info.major}.{sys.version_info.minor}",
        }
    )

    logger.info("Prometheus metrics initialized")


# =============================================================================
# Helper Functions
# =============================================================================


def record_award(result, source: str) -> None:
    """Record counters for one committed XP award (an XpAwardResult)"""
    xp_awarded_total.labels(source=source).inc(result.xp_added)
    if result.leveled_up:
        level_ups_total.labels(scope="global").inc()

    if result.category is not None:
        if result.category.leveled_up:
            level_ups_total.labels(scope=result.category.name.value).inc()
        if result.category.milestone:
            category_milestones_total.labels(category=result.category.name.value).inc()

    if result.achievements is not None:
        for achievement in result.achievements.unlocked:
            achievements_unlocked_total.labels(achievement_id=achievement["id"]).inc()
        if result.achievements.total_xp_awarded:
            xp_awarded_total.labels(source="achievement_unlock").inc(result.achievements.total_xp_awarded)


def record_error(error: Exception, component: str) -> None:
    errors_total.labels(error_type=type(error).__name__, component=component).inc()


def record_retry(operation: str) -> None:
    storage_retries_total.labels(operation=operation).inc()
