"""Migration helpers shared by the Alembic environments."""

from explorer_views.migrations.retry import (
    MigrationDeadlineExceeded,
    RetryExhaustedError,
    RetryPolicy,
    run_with_retries,
)

__all__ = [
    "MigrationDeadlineExceeded",
    "RetryExhaustedError",
    "RetryPolicy",
    "run_with_retries",
]
