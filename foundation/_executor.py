from __future__ import annotations

import asyncio
import time
import threading
from concurrent.futures import Future, wait
from contextvars import ContextVar, copy_context
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from .errors import error_chain, is_failure
from .types import TIMEOUT, Failure, Outcome, Success

_current_attempt: ContextVar[Attempt | None] = ContextVar(
    "foundation_current_attempt", default=None
)


@dataclass(slots=True)
class Attempt:
    """One timeout-bounded run of some work.

    Work running on the attempt's thread can look itself up with
    `Attempt.current()` and stop early once `cancelled` is set.
    """

    timeout: float
    deadline: float
    cancelled: threading.Event = field(default_factory=threading.Event)

    @staticmethod
    def current() -> Attempt | None:
        return _current_attempt.get()

    @property
    def remaining(self) -> float:
        return max(0.0, self.deadline - time.monotonic())


def _outcome_of(value: Any) -> Outcome:
    if value is TIMEOUT or isinstance(value, Failure):
        return value

    if is_failure(value):
        return Failure(error_chain(value))

    return Success(value)


def run_with_timeout(
    timeout: float, work: Callable[..., Any], /, *args: Any, **kwargs: Any
) -> Outcome:
    """Run work on its own thread and wait at most `timeout` seconds for it.

    Anything work raises before the deadline, `TimeoutError`, `SystemExit` and
    `KeyboardInterrupt` included, becomes a `Failure`. Only a missed deadline
    gives `TIMEOUT`. A timed-out thread is not stopped. Its attempt is marked
    cancelled and whatever it produces later is dropped.
    """
    attempt = Attempt(timeout=timeout, deadline=time.monotonic() + timeout)
    future: Future = Future()
    context = copy_context()

    def target() -> None:
        _current_attempt.set(attempt)

        try:
            result = work(*args, **kwargs)
        except BaseException as error:
            future.set_exception(error)
        else:
            future.set_result(result)

    future.set_running_or_notify_cancel()

    thread = threading.Thread(
        target=context.run,
        args=(target,),
        name=f"foundation-attempt-{getattr(work, '__name__', 'work')}",
        daemon=True,
    )
    thread.start()

    done, _ = wait([future], timeout=timeout)

    if not done:
        attempt.cancelled.set()

        return TIMEOUT

    error = future.exception()

    if error is not None:
        return Failure(error_chain(error))

    return _outcome_of(future.result())


async def run_with_timeout_async(
    timeout: float, work: Callable[..., Awaitable[Any]], /, *args: Any, **kwargs: Any
) -> Outcome:
    """Await work for at most `timeout` seconds; on timeout the task is cancelled.

    Exceptions raised by work become a `Failure`. Cancellation of the caller
    and other `BaseException`s propagate, as they do for any coroutine.
    """
    attempt = Attempt(timeout=timeout, deadline=time.monotonic() + timeout)
    token = _current_attempt.set(attempt)

    try:
        result = await asyncio.wait_for(work(*args, **kwargs), timeout=timeout)
    except TimeoutError as error:
        # Work can raise TimeoutError on its own before the deadline
        if attempt.remaining > 0:
            return Failure(error_chain(error))

        attempt.cancelled.set()

        return TIMEOUT
    except Exception as error:
        return Failure(error_chain(error))
    finally:
        _current_attempt.reset(token)

    return _outcome_of(result)
