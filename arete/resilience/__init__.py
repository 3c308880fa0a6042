"""Resilience patterns for storage calls

Retry with exponential backoff for transient storage failures.
"""

from arete.resilience.retry import retry_with_backoff, with_retry, is_retryable_error

__all__ = [
    "retry_with_backoff",
    "with_retry",
    "is_retryable_error",
]
