from dataclasses import dataclass, field
from datetime import timedelta

from .types import AbortPredicate


def never_abort(chain: tuple[BaseException, ...]) -> bool:
    return False


def always_abort(chain: tuple[BaseException, ...]) -> bool:
    return True


def _to_seconds(value: float | timedelta, name: str) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be a number or timedelta")

    return float(value)


@dataclass(slots=True, frozen=True)
class RetrySettings:
    """How a job is retried: the template each call builds a fresh `Job` from.

    Durations are seconds, either numbers or `timedelta`, and are stored as
    float seconds.

    Attributes:
        tries: How many retries are allowed after the first attempt
        timeout: Deadline for a single attempt
        pause: Wait between attempts
        abort: Called with the error chain of a failed attempt; true stops retrying
    """

    tries: int
    timeout: float | timedelta
    pause: float | timedelta = 0.0
    abort: AbortPredicate = field(default=never_abort)

    def __post_init__(self) -> None:
        if isinstance(self.tries, bool) or not isinstance(self.tries, int):
            raise TypeError("tries must be an integer")

        if self.tries < 0:
            raise ValueError("tries must be non-negative")

        timeout = _to_seconds(self.timeout, "timeout")
        pause = _to_seconds(self.pause, "pause")

        if timeout <= 0:
            raise ValueError("timeout must be positive")

        if pause < 0:
            raise ValueError("pause must be non-negative")

        if not callable(self.abort):
            raise TypeError("abort must be callable")

        object.__setattr__(self, "timeout", timeout)
        object.__setattr__(self, "pause", pause)


@dataclass(slots=True)
class Job:
    """Per-call retry state. Owned by the one thread running the retry loop."""

    name: str
    abort: AbortPredicate
    max_retries: int
    pause: float
    retries: int = 0

    @classmethod
    def new(cls, name: str, settings: RetrySettings) -> "Job":
        if not isinstance(name, str):
            raise TypeError("name must be a string")

        if not name.strip():
            raise ValueError("name must not be blank")

        if not isinstance(settings, RetrySettings):
            raise TypeError("settings must be RetrySettings")

        return cls(
            name=name,
            abort=settings.abort,
            max_retries=settings.tries,
            pause=settings.pause,
        )

    @property
    def exhausted(self) -> bool:
        return self.retries >= self.max_retries
