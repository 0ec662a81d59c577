"""Predicates that classify a raised error as retryable or fatal."""

from __future__ import annotations

import asyncio
from typing import Callable, Tuple, Type

from fanout.utils.error_handler import FatalError, OperationCancelledError, RetryableError

RetryPredicate = Callable[[BaseException], bool]

TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (
    RetryableError,
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
)


def is_retryable(error: BaseException) -> bool:
    """Default classification: transient network-style failures are retried."""
    if isinstance(error, (FatalError, OperationCancelledError)):
        return False
    return isinstance(error, TRANSIENT_ERRORS)


def retry_on(*exception_types: Type[BaseException]) -> RetryPredicate:
    """Retry only the given exception types (cancellation is never retried)."""

    def predicate(error: BaseException) -> bool:
        if isinstance(error, OperationCancelledError):
            return False
        return isinstance(error, exception_types)

    return predicate


def retry_unless(*exception_types: Type[BaseException]) -> RetryPredicate:
    """Retry everything except the given exception types and cancellation."""

    def predicate(error: BaseException) -> bool:
        return not isinstance(error, exception_types + (OperationCancelledError,))

    return predicate


def never_retry(error: BaseException) -> bool:
    return False
