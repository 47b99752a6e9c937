"""Failure classification and small error-handling helpers."""

from __future__ import annotations

import time
from collections.abc import Sized
from decimal import Decimal
from fractions import Fraction
from functools import singledispatch
from typing import TYPE_CHECKING, Any, Callable

from .types import NO_RESULT, Failure, NoResult, RetryErrorKind, Timeout

if TYPE_CHECKING:
    from .types import Outcome

_UNSET = object()


class FailedResult(Exception):
    """Wraps a non-exception value that was classified as a failure."""

    def __init__(self, value: Any) -> None:
        super().__init__(f"failure value: {value!r}")

        self.value = value


class RetryError(RuntimeError):
    """Raised by the retry driver once retrying stops without a result.

    The last underlying error is attached as ``__cause__``.
    """

    def __init__(
        self,
        kind: RetryErrorKind,
        *,
        job_name: str,
        retries: int,
        max_retries: int,
        outcome: Outcome,
    ) -> None:
        match kind:
            case RetryErrorKind.FATAL_ERROR:
                message = f"{job_name}: aborted on fatal error after {retries} retries"
            case _:
                message = f"{job_name}: max retries ({max_retries}) exceeded"

        super().__init__(message)

        self.kind = kind
        self.job_name = job_name
        self.retries = retries
        self.max_retries = max_retries
        self.outcome = outcome

    @property
    def is_fatal(self) -> bool:
        return self.kind == RetryErrorKind.FATAL_ERROR


@singledispatch
def is_failure(value: Any) -> bool:
    """Check whether a value produced by some work represents a failure.

    Exceptions, the ``TIMEOUT`` and ``NO_RESULT`` sentinels and ``Failure``
    outcomes are failures; ``None`` and everything else are not. Register more
    types to widen it:

        >>> @is_failure.register
        ... def _(value: HttpResponse) -> bool:
        ...     return value.status >= 500
    """
    return False


@is_failure.register(type(None))
def _(value: None) -> bool:
    return False


@is_failure.register(BaseException)
def _(value: BaseException) -> bool:
    return True


@is_failure.register(Timeout)
def _(value: Timeout) -> bool:
    return True


@is_failure.register(Failure)
def _(value: Failure) -> bool:
    return True


@is_failure.register(NoResult)
def _(value: NoResult) -> bool:
    return True


def error_chain(value: Any) -> tuple[BaseException, ...]:
    """Return the causal chain of a failure, outermost error first.

    Follows ``__cause__`` and, when not suppressed, ``__context__``. Values
    that are not exceptions come back wrapped in a single ``FailedResult``.
    """
    if isinstance(value, Failure):
        return value.errors

    if not isinstance(value, BaseException):
        return (FailedResult(value),)

    chain = []
    seen = set()
    error = value

    while error is not None and id(error) not in seen:
        chain.append(error)
        seen.add(id(error))

        if error.__cause__ is not None:
            error = error.__cause__
        elif not error.__suppress_context__:
            error = error.__context__
        else:
            error = None

    return tuple(chain)


def replace_none(value: Any, replacement: Any) -> Any:
    return replacement if value is None else value


def not_none(value: Any, name: str) -> Any:
    if value is None:
        raise ValueError(f"{name} cannot be None")

    return value


def value_or(value: Any, fn: Callable[[Any], Any]) -> Any:
    """Return value, or the result of calling fn with it when it is None."""
    return fn(value) if value is None else value


def _is_nothing(value: Any) -> bool:
    return value is None or value is NO_RESULT


def something_or(value: Any, fn: Callable[[Any], Any]) -> Any:
    """Like `value_or`, but ``NO_RESULT`` also counts as missing."""
    return fn(value) if _is_nothing(value) else value


def nothing_to_identity(identity: Any, value: Any) -> Any:
    """Return value, or ``identity`` when it is ``None`` or ``NO_RESULT``.

    ``identity`` is the neutral value for the operation in hand, such as
    ``0`` for addition or ``""`` for concatenation.
    """
    return identity if _is_nothing(value) else value


def identity_to_none(value: Any, is_identity: Callable[[Any], bool] | None = None) -> Any:
    """Return None when value is its type's identity (empty), otherwise value.

    Numbers are empty when zero and sized values when they have no items.
    Pass ``is_identity`` to decide otherwise:

        >>> identity_to_none("none", {"nil", "none", " "}.__contains__)
    """
    if is_identity is not None:
        return None if is_identity(value) else value

    match value:
        case bool():
            return value
        case int() | float() | Fraction() | Decimal():
            return None if value == 0 else value
        case Sized():
            return None if len(value) == 0 else value
        case _:
            return value


def replace_if(value: Any, predicate: Callable[[Any], Any], replacement: Any = _UNSET) -> Any:
    """Replace value when predicate holds for it.

    With a ``replacement`` the result is that replacement. Without one, a
    truthy result of ``predicate(value)`` is itself the replacement.
    """
    result = predicate(value)

    if replacement is _UNSET:
        return result or value

    return replacement if result else value


def must_be(message: str, value: Any) -> Any:
    """Return value when it is truthy, otherwise raise ``ValueError(message)``."""
    if not value:
        raise ValueError(message)

    return value


def capture(fn: Callable[..., Any], *args: Any, default: Any = _UNSET, **kwargs: Any) -> Any:
    """Call fn, returning the exception it raised instead of propagating it.

    When ``default`` is given it is returned in place of the exception.
    """
    try:
        return fn(*args, **kwargs)
    except Exception as error:
        return error if default is _UNSET else default


def expect_within(
    timeout: float,
    predicate: Callable[[], Any],
    message: str,
    *,
    poll: float = 0.5,
) -> Any:
    """Poll predicate until it returns something truthy and return that value.

    Raises ``TimeoutError(message)`` once more than ``timeout`` seconds pass.
    """
    started = time.monotonic()

    while True:
        result = predicate()

        if result:
            return result

        if time.monotonic() - started > timeout:
            raise TimeoutError(message)

        time.sleep(poll)
