"""Retrying work, with or without a per-attempt deadline.

`retry_with_timeout` is the main entry point:

    >>> settings = RetrySettings(tries=3, timeout=10.0, pause=1.0, abort=never_abort)
    >>> rows = retry_with_timeout("nightly-report", settings, fetch_rows, "2024-01-01")

Each call builds a fresh `Job`. Every attempt runs on its own thread under the
settings' timeout. After a failed attempt `decide` picks what happens next:
retry after the pause, or stop and raise `RetryError` chained to the last
failure. Attempts never overlap. An attempt that times out keeps running in
the background with its result dropped, so retried work should be safe to
repeat.
"""

from __future__ import annotations

import asyncio
import logging
import time
from functools import partial
from typing import Any, Awaitable, Callable

from . import telemetry
from ._executor import run_with_timeout, run_with_timeout_async
from .errors import RetryError, capture, error_chain, is_failure
from .job import Job, RetrySettings
from .types import Decision, Failure, Outcome, RetryErrorKind, Success, Timeout

logger = logging.getLogger(__name__)


def decide(job: Job, outcome: Outcome) -> Decision:
    """Pick the next step for a job whose latest attempt did not succeed.

    Timeouts only count against the retry budget; the abort predicate is
    consulted for raised errors alone, and a fatal error wins over the budget.
    """
    match outcome:
        case Timeout():
            if job.exhausted:
                return Decision.ABORT_MAX_RETRIES

            return Decision.RETRY_TIMEOUT
        case Failure():
            if job.abort(error_chain(outcome)):
                return Decision.ABORT_FATAL_ERROR

            if job.exhausted:
                return Decision.ABORT_MAX_RETRIES

            return Decision.RETRY_FAILURE
        case Success():
            raise ValueError("a successful outcome needs no retry decision")
        case _:
            raise TypeError(f"unexpected outcome: {outcome!r}")


class _RetryLoop:
    def __init__(self, job_name: str, settings: RetrySettings, work: Callable) -> None:
        if not callable(work):
            raise TypeError("work must be callable")

        self.job = Job.new(job_name, settings)
        self.timeout = settings.timeout

        self._attempt = 0
        self._started = 0.0

    def begin(self) -> None:
        self._attempt += 1
        self._started = time.monotonic()

        telemetry.execute(
            "foundation.job.start", {"job": self.job, "attempt": self._attempt}
        )

    def succeeded(self) -> None:
        telemetry.execute(
            "foundation.job.stop",
            {
                "job": self.job,
                "attempt": self._attempt,
                "state": "succeeded",
                "duration": time.monotonic() - self._started,
                "retries": self.job.retries,
            },
        )

    def failed(self, outcome: Outcome) -> None:
        """Log and report a failed attempt, raising if retrying must stop."""
        decision = decide(self.job, outcome)
        cause = self._cause(outcome)

        telemetry.execute(
            "foundation.job.exception",
            {
                "job": self.job,
                "attempt": self._attempt,
                "state": decision.value,
                "duration": time.monotonic() - self._started,
                "retries": self.job.retries,
                "error_type": type(cause).__name__,
                "error_message": str(cause),
            },
        )

        if decision.is_retry:
            self._log_retry(decision, outcome)
            return

        if decision == Decision.ABORT_FATAL_ERROR:
            kind = RetryErrorKind.FATAL_ERROR
        else:
            kind = RetryErrorKind.MAX_RETRIES_EXCEEDED

        error = RetryError(
            kind,
            job_name=self.job.name,
            retries=self.job.retries,
            max_retries=self.job.max_retries,
            outcome=outcome,
        )

        logger.error("%s after %d attempt(s)", error, self._attempt, exc_info=cause)

        raise error from cause

    def _cause(self, outcome: Outcome) -> BaseException:
        if isinstance(outcome, Failure):
            return outcome.error

        return TimeoutError(f"{self.job.name} timed out after {self.timeout}s")

    def _log_retry(self, decision: Decision, outcome: Outcome) -> None:
        job = self.job

        if decision == Decision.RETRY_TIMEOUT:
            logger.warning(
                "%s: attempt %d timed out after %ss; retrying in %ss (%d/%d)",
                job.name,
                self._attempt,
                self.timeout,
                job.pause,
                job.retries + 1,
                job.max_retries,
            )
        else:
            logger.warning(
                "%s: attempt %d failed; retrying in %ss (%d/%d)",
                job.name,
                self._attempt,
                job.pause,
                job.retries + 1,
                job.max_retries,
                exc_info=outcome.error,
            )


def retry_with_timeout(
    job_name: str,
    settings: RetrySettings,
    work: Callable[..., Any],
    /,
    *args: Any,
    **kwargs: Any,
) -> Any:
    """Call ``work(*args, **kwargs)`` until it succeeds or retrying must stop.

    Makes at most ``settings.tries + 1`` attempts, each bounded by
    ``settings.timeout`` and separated by ``settings.pause``.

    Returns:
        Whatever work returned on the first successful attempt.

    Raises:
        RetryError: ``kind`` is ``MAX_RETRIES_EXCEEDED`` once the budget is spent,
            or ``FATAL_ERROR`` as soon as ``settings.abort`` flags an error chain.
            The last failure (a ``TimeoutError`` for timeouts) is its ``__cause__``.
        TypeError, ValueError: On an invalid job name, settings or work.
    """
    loop = _RetryLoop(job_name, settings, work)

    while True:
        loop.begin()

        outcome = run_with_timeout(loop.timeout, work, *args, **kwargs)

        if isinstance(outcome, Success):
            loop.succeeded()

            return outcome.value

        loop.failed(outcome)

        time.sleep(loop.job.pause)

        loop.job.retries += 1


async def retry_with_timeout_async(
    job_name: str,
    settings: RetrySettings,
    work: Callable[..., Awaitable[Any]],
    /,
    *args: Any,
    **kwargs: Any,
) -> Any:
    """Async version of `retry_with_timeout` for coroutine functions.

    Unlike the threaded version, a timed-out attempt is cancelled.
    """
    loop = _RetryLoop(job_name, settings, work)

    while True:
        loop.begin()

        outcome = await run_with_timeout_async(loop.timeout, work, *args, **kwargs)

        if isinstance(outcome, Success):
            loop.succeeded()

            return outcome.value

        loop.failed(outcome)

        await asyncio.sleep(loop.job.pause)

        loop.job.retries += 1


def retry(tries: int, pause: float, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Any:
    """Call fn, retrying up to `tries` times on exceptions.

    Sleeps `pause` seconds between attempts and re-raises the last exception
    once no retries remain.
    """
    while True:
        try:
            return fn(*args, **kwargs)
        except Exception:
            if tries <= 0:
                raise

            logger.error("A failure occurred; retrying...", exc_info=True)

        time.sleep(pause)
        tries -= 1


def retry_failures(
    tries: int, pause: float, fn: Callable[..., Any], /, *args: Any, **kwargs: Any
) -> Any:
    """Like `retry`, but failures are values: nothing is raised.

    Exceptions are captured, and any value `is_failure` accepts triggers a retry.
    Returns the first non-failure result, or the last failure once retries run out.
    """
    while True:
        result = capture(fn, *args, **kwargs)

        if not is_failure(result) or tries <= 0:
            return result

        if isinstance(result, BaseException):
            logger.error("A failure occurred; retrying...", exc_info=result)
        else:
            logger.error("A failure occurred; retrying...  [%r]", result)

        time.sleep(pause)
        tries -= 1


def retry_statements(tries: int, pause: float) -> Callable[..., Any]:
    """Fix a retry policy now for functions called later.

    The returned callable takes the function followed by its arguments.
    """
    return partial(retry, tries, pause)
