from ..monitoring.events import RetryContext
from .classify import is_retryable, never_retry, retry_on, retry_unless
from .decorators import retry
from .operation import RetryingOperation

__all__ = [
    "retry",
    "RetryingOperation",
    "RetryContext",
    "is_retryable",
    "retry_on",
    "retry_unless",
    "never_retry",
]
