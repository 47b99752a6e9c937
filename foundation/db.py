"""Run SQL through `retry_with_timeout`.

Statements are plain SQL strings with SQLAlchemy ``:name`` bind parameters.
Each call becomes a retried job named after the first line of SQL (or
``job_name``), bounded by the configured timeout plus a grace period, and
aborted early when an error's message matches one of the configured fatal
substrings.

    >>> from sqlalchemy import create_engine
    >>> engine = create_engine("postgresql+psycopg://localhost/reports")
    >>> db.query(engine, "SELECT * FROM sales WHERE day = :day", {"day": today})
    >>> db.configure(max_retries=2, retry_pause=5.0)

The connection must be usable from another thread, since each attempt runs
on its own thread. An `Engine` always is; SQLite needs
``check_same_thread=False``.

An `Engine` gives every attempt its own connection and transaction. A
caller-owned `Connection` or `Session` is shared by all attempts: a failed
statement rolls its transaction back before the next attempt, dropping any
uncommitted work on it. An attempt that timed out may still be running on
that connection when the next one starts, so pass an `Engine` wherever
timeouts are expected.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field, replace
from functools import partial
from typing import Any, Callable, Iterable, Mapping

from sqlalchemy import Connection, Engine, text
from sqlalchemy.engine import CursorResult
from sqlalchemy.orm import Session

from .job import RetrySettings
from .retry import retry_with_timeout
from .types import AbortPredicate

logger = logging.getLogger(__name__)

DEFAULT_FATAL_EXCEPTIONS = (
    "only table or database owner can vacuum it",
    "only table or database owner can analyze it",
)

_CENSORED = [
    (re.compile(r"aws_access_key_id=[^;]+"), "aws_access_key_id=XXX"),
    (re.compile(r"aws_secret_access_key=[^';]+"), "aws_secret_access_key=XXX"),
    (re.compile(r"token=[^']+"), "token=XXX"),
]


@dataclass(slots=True, frozen=True)
class DBConfig:
    """Defaults for every statement run through this module.

    Attributes:
        fatal_exceptions: Error message substrings that stop retrying at once
        max_retries: Retries allowed after the first attempt
        timeout: Expected upper bound for one statement, in seconds
        timeout_grace: Extra seconds allowed on top of ``timeout`` before giving up
        retry_pause: Seconds to wait between attempts
    """

    fatal_exceptions: tuple[str, ...] = field(default=DEFAULT_FATAL_EXCEPTIONS)
    max_retries: int = 5
    timeout: float = 2 * 60 * 60.0
    timeout_grace: float = 5.0
    retry_pause: float = 1.0

    def __post_init__(self) -> None:
        if isinstance(self.fatal_exceptions, str):
            raise TypeError("fatal_exceptions must be a sequence of strings")

        object.__setattr__(self, "fatal_exceptions", tuple(self.fatal_exceptions))

        for name in ("timeout", "timeout_grace", "retry_pause"):
            value = getattr(self, name)

            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeError(f"{name} must be a number")

        if self.timeout <= 0:
            raise ValueError("timeout must be positive")

        if self.timeout_grace < 0:
            raise ValueError("timeout_grace must be non-negative")

        if self.retry_pause < 0:
            raise ValueError("retry_pause must be non-negative")

        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            raise TypeError("max_retries must be an integer")

        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")


_lock = threading.Lock()
_config = DBConfig()


def config() -> DBConfig:
    return _config


def configure(**overrides: Any) -> DBConfig:
    """Override defaults for the rest of the process. Unknown keys raise TypeError."""
    global _config

    with _lock:
        _config = replace(_config, **overrides)

        return _config


def reset_config() -> DBConfig:
    global _config

    with _lock:
        _config = DBConfig()

        return _config


def is_fatal(error: BaseException, fatal_exceptions: Iterable[str] | None = None) -> bool:
    """Check whether an error's message contains one of the fatal substrings."""
    if fatal_exceptions is None:
        fatal_exceptions = config().fatal_exceptions

    message = str(error)

    return any(fragment in message for fragment in fatal_exceptions)


def any_fatal_exceptions(chain: tuple[BaseException, ...]) -> bool:
    """Abort predicate flagging a chain where any error is fatal."""
    return any(is_fatal(error) for error in chain)


def _any_fatal(fatal_exceptions: tuple[str, ...], chain: tuple[BaseException, ...]) -> bool:
    return any(is_fatal(error, fatal_exceptions) for error in chain)


def censor_statement(statement: str) -> str:
    for pattern, replacement in _CENSORED:
        statement = pattern.sub(replacement, statement)

    return statement


def log_censored_sql(statement: str) -> None:
    logger.debug("Executing: <<EOF\n%s\nEOF", censor_statement(statement))


def _job_name(sql: str) -> str:
    for line in sql.splitlines():
        if line.strip():
            return line.strip()

    raise ValueError("sql must not be blank")


def _run(connection: Any, sql: str, params: Mapping[str, Any], fetch: Callable) -> Any:
    statement = text(sql)

    match connection:
        case Engine():
            with connection.begin() as conn:
                return fetch(conn.execute(statement, params))
        case Connection() | Session():
            try:
                return fetch(connection.execute(statement, params))
            except Exception:
                # Every attempt starts outside a failed transaction
                connection.rollback()
                raise
        case _:
            raise TypeError(f"Unsupported connection provided: {type(connection).__name__}")


def _rows(result: CursorResult) -> list[dict[str, Any]]:
    return [dict(row) for row in result.mappings()]


def _rowcount(result: CursorResult) -> int:
    return result.rowcount


def _retried(
    connection: Any,
    sql: str,
    params: Mapping[str, Any] | None,
    fetch: Callable,
    *,
    job_name: str | None,
    abort: AbortPredicate | None,
    overrides: dict[str, Any],
) -> Any:
    settings = replace(config(), **overrides) if overrides else config()

    retry_settings = RetrySettings(
        tries=settings.max_retries,
        timeout=settings.timeout + settings.timeout_grace,
        pause=settings.retry_pause,
        abort=abort or partial(_any_fatal, settings.fatal_exceptions),
    )

    log_censored_sql(sql)

    return retry_with_timeout(
        job_name or _job_name(sql),
        retry_settings,
        _run,
        connection,
        sql,
        dict(params or {}),
        fetch,
    )


def execute(
    connection: Any,
    sql: str,
    params: Mapping[str, Any] | None = None,
    *,
    job_name: str | None = None,
    abort: AbortPredicate | None = None,
    **overrides: Any,
) -> int:
    """Run a statement with retries and return the affected row count.

    Keyword overrides replace `DBConfig` fields for this call only.
    """
    return _retried(
        connection,
        sql,
        params,
        _rowcount,
        job_name=job_name,
        abort=abort,
        overrides=overrides,
    )


def query(
    connection: Any,
    sql: str,
    params: Mapping[str, Any] | None = None,
    *,
    job_name: str | None = None,
    abort: AbortPredicate | None = None,
    **overrides: Any,
) -> list[dict[str, Any]]:
    """Run a query with retries and return its rows as dicts."""
    return _retried(
        connection,
        sql,
        params,
        _rows,
        job_name=job_name,
        abort=abort,
        overrides=overrides,
    )


def keyed_query(
    connection: Any,
    sql: str,
    key_columns: Iterable[str],
    params: Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> dict[tuple, dict[str, Any] | list[dict[str, Any]]]:
    """Run a query and index its rows by the values of `key_columns`.

    When a key matches several rows its value is the list of those rows.
    """
    key_columns = tuple(key_columns)

    if not key_columns:
        raise ValueError("key_columns must not be empty")

    keyed: dict[tuple, Any] = {}

    for row in query(connection, sql, params, **kwargs):
        key = tuple(row[column] for column in key_columns)

        match keyed.get(key):
            case None:
                keyed[key] = row
            case list() as rows:
                rows.append(row)
            case prior:
                keyed[key] = [prior, row]

    return keyed

