import logging

from ._executor import Attempt, run_with_timeout, run_with_timeout_async
from .errors import FailedResult, RetryError, error_chain, is_failure
from .job import Job, RetrySettings, always_abort, never_abort
from .retry import (
    decide,
    retry,
    retry_failures,
    retry_statements,
    retry_with_timeout,
    retry_with_timeout_async,
)
from .types import (
    NO_RESULT,
    TIMEOUT,
    Decision,
    Failure,
    NoResult,
    RetryErrorKind,
    Success,
    Timeout,
)

__all__ = [
    "Attempt",
    "Decision",
    "FailedResult",
    "Failure",
    "Job",
    "NO_RESULT",
    "NoResult",
    "RetryError",
    "RetryErrorKind",
    "RetrySettings",
    "Success",
    "TIMEOUT",
    "Timeout",
    "always_abort",
    "decide",
    "error_chain",
    "is_failure",
    "never_abort",
    "retry",
    "retry_failures",
    "retry_statements",
    "retry_with_timeout",
    "retry_with_timeout_async",
    "run_with_timeout",
    "run_with_timeout_async",
]

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
