from dataclasses import dataclass
from enum import StrEnum
from typing import Callable, Generic, TypeAlias, TypeVar

T = TypeVar("T")


class Decision(StrEnum):
    """What the retry loop does after a failed attempt.

    - RETRY_TIMEOUT: the attempt timed out and budget remains
    - RETRY_FAILURE: the attempt raised a transient error and budget remains
    - ABORT_MAX_RETRIES: the retry budget is spent
    - ABORT_FATAL_ERROR: the abort predicate judged the error fatal
    """

    RETRY_TIMEOUT = "retry-timeout"
    RETRY_FAILURE = "retry-failure"
    ABORT_MAX_RETRIES = "abort-max-retries"
    ABORT_FATAL_ERROR = "abort-fatal-error"

    @property
    def is_retry(self) -> bool:
        return self in (Decision.RETRY_TIMEOUT, Decision.RETRY_FAILURE)


class RetryErrorKind(StrEnum):
    MAX_RETRIES_EXCEEDED = "max-retries-exceeded"
    FATAL_ERROR = "fatal-error"


class Timeout:
    """Marks an attempt that missed its deadline. Use the `TIMEOUT` instance."""

    _instance = None

    __slots__ = ()

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)

        return cls._instance

    def __repr__(self) -> str:
        return "TIMEOUT"

    def __reduce__(self):
        return (Timeout, ())


TIMEOUT = Timeout()


class NoResult:
    """Returned by computations that had nothing to give back. Use the `NO_RESULT` instance.

    Unlike ``None`` it is classified as a failure.
    """

    _instance = None

    __slots__ = ()

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)

        return cls._instance

    def __repr__(self) -> str:
        return "NO_RESULT"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):
        return (NoResult, ())


NO_RESULT = NoResult()


@dataclass(slots=True, frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(slots=True, frozen=True)
class Failure:
    errors: tuple[BaseException, ...]

    def __post_init__(self) -> None:
        if not self.errors:
            raise ValueError("errors must not be empty")

    @property
    def error(self) -> BaseException:
        return self.errors[0]


Outcome: TypeAlias = Success[T] | Timeout | Failure

AbortPredicate: TypeAlias = Callable[[tuple[BaseException, ...]], bool]
