"""Retry wrapper for migration DDL blocks.

Every block gets a fixed number of attempts under one wall-clock deadline,
with exponential backoff between attempts. Each attempt runs inside a
SAVEPOINT so a failed attempt does not abort the surrounding migration
transaction, and ``statement_timeout`` is bound to the time left before the
deadline so the database cancels a statement that would overrun it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

    from explorer_views.config import MigrationSettings

logger = logging.getLogger(__name__)

DEFAULT_RETRY_LIMIT = 10
DEFAULT_BASE_DELAY_SECONDS = 5.0
DEFAULT_DEADLINE = timedelta(minutes=90)


class RetryExhaustedError(Exception):
    """Raised when every attempt of a block failed."""

    def __init__(self, message: str, last_exception: Exception | None = None) -> None:
        super().__init__(message)
        self.last_exception = last_exception


class MigrationDeadlineExceeded(Exception):
    """Raised when a block cannot finish before its deadline."""

    def __init__(self, message: str, last_exception: Exception | None = None) -> None:
        super().__init__(message)
        self.last_exception = last_exception


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt limit, backoff base and deadline for one DDL block."""

    retry_limit: int = DEFAULT_RETRY_LIMIT
    base_delay_seconds: float = DEFAULT_BASE_DELAY_SECONDS
    deadline: timedelta = DEFAULT_DEADLINE
    retry_on: tuple[type[Exception], ...] = field(default=(Exception,))

    def __post_init__(self) -> None:
        if self.retry_limit < 1:
            raise ValueError("retry_limit must be at least 1")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must not be negative")
        if self.deadline <= timedelta(0):
            raise ValueError("deadline must be positive")

    @classmethod
    def from_settings(cls, settings: MigrationSettings) -> RetryPolicy:
        return cls(
            retry_limit=settings.retry_limit,
            base_delay_seconds=settings.retry_base_delay_seconds,
            deadline=timedelta(minutes=settings.deadline_minutes),
        )

    def delay(self, attempt: int) -> float:
        """Backoff after the zero-based ``attempt`` failed."""
        return self.base_delay_seconds * (2**attempt)


def _execute_attempt(connection: Connection, statements: Sequence[str], remaining_seconds: float) -> None:
    with connection.begin_nested():
        timeout_ms = max(1, int(remaining_seconds * 1000))
        connection.exec_driver_sql(f"SET LOCAL statement_timeout = {timeout_ms}")
        for statement in statements:
            connection.exec_driver_sql(statement, execution_options={"no_parameters": True})


def run_with_retries(
    connection: Connection,
    statements: Sequence[str],
    policy: RetryPolicy | None = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Execute ``statements`` as one block, retrying the whole block on failure.

    Args:
        connection: Connection with an open transaction.
        statements: Statements to execute in order, one per call.
        policy: Retry policy; defaults to ten attempts, 5s base, 90 minutes.
        sleep: Blocking sleep, injectable for tests.
        clock: Monotonic clock in seconds, injectable for tests.

    Returns:
        Number of attempts used.

    Raises:
        RetryExhaustedError: Every attempt failed.
        MigrationDeadlineExceeded: The deadline passed, or the next backoff
            would end past it.
    """
    policy = policy or RetryPolicy()
    query = ";\n".join(statements)
    deadline_at = clock() + policy.deadline.total_seconds()
    last_exception: Exception | None = None

    for attempt in range(policy.retry_limit):
        remaining = deadline_at - clock()
        if remaining <= 0:
            raise MigrationDeadlineExceeded(
                f"Deadline of {policy.deadline} exceeded after {attempt} attempts",
                last_exception=last_exception,
            )
        try:
            _execute_attempt(connection, statements, remaining)
            if attempt:
                logger.info("Block succeeded on attempt %d/%d", attempt + 1, policy.retry_limit)
            return attempt + 1
        except policy.retry_on as e:
            last_exception = e
            if attempt == policy.retry_limit - 1:
                break

            delay = policy.delay(attempt)
            if clock() + delay >= deadline_at:
                logger.error("Deadline reached after attempt %d failed: %s. Query: %s", attempt + 1, e, query)
                raise MigrationDeadlineExceeded(
                    f"Deadline of {policy.deadline} exceeded after {attempt + 1} attempts",
                    last_exception=e,
                ) from e
            logger.warning(
                "Attempt %d/%d failed: %s. Retrying in %.1f seconds... Query: %s",
                attempt + 1,
                policy.retry_limit,
                str(e),
                delay,
                query,
            )
            sleep(delay)

    logger.error("Failed to migrate after %d attempts. Query: %s", policy.retry_limit, query)
    raise RetryExhaustedError(
        f"Failed to migrate after {policy.retry_limit} attempts",
        last_exception=last_exception,
    )
