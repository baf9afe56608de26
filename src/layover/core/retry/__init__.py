"""
Retry framework for transient HTTP failures.

Retry re-sends requests, RetryPolicy decides when and how long to wait, and
is_retriable_error separates fatal transport errors from transient ones.
"""

from layover.core.retry.classify import NON_RETRIABLE_ERRORS, is_retriable_error
from layover.core.retry.manager import Retry, parse_retry_after
from layover.core.retry.policy import (
    DEFAULT_RETRY_POLICY,
    NO_RETRY_POLICY,
    RETRIABLE_STATUS_CODES,
    ExponentialBackoff,
    RetryPolicy,
    StatusCodePolicy,
)

__all__ = [
    # Policy
    "RetryPolicy",
    "ExponentialBackoff",
    "StatusCodePolicy",
    "DEFAULT_RETRY_POLICY",
    "NO_RETRY_POLICY",
    "RETRIABLE_STATUS_CODES",
    # Transport
    "Retry",
    "parse_retry_after",
    # Classification
    "is_retriable_error",
    "NON_RETRIABLE_ERRORS",
]
