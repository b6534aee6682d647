"""Alembic environment shared by the statistics and downstream databases.

Both ``env.py`` files delegate here. The ini section selects the database:
``database_url_env`` names the environment variable holding its URL and
``version_table`` the bookkeeping table.
"""

from __future__ import annotations

import asyncio
import logging
import os
from logging.config import fileConfig
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config

from explorer_views.catalog.remote import ForeignServer
from explorer_views.config import MigrationSettings, SubscriberSettings
from explorer_views.database import normalize_async_database_url
from explorer_views.migrations.retry import RetryPolicy
from explorer_views.migrations.steps import FOREIGN_SERVER_KEY, RETRY_POLICY_KEY

if TYPE_CHECKING:
    from alembic.runtime.environment import EnvironmentContext
    from sqlalchemy.engine import Connection

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL_ENV = "DATABASE_URL"
DEFAULT_VERSION_TABLE = "explorer_migrations"


def _get_database_url(env_var: str) -> str | None:
    # Prefer Alembic's conventional override, then the section's own variable.
    url = os.environ.get("SQLALCHEMY_DATABASE_URL") or os.environ.get(env_var)
    if url:
        return normalize_async_database_url(os.path.expandvars(url))
    return None


def run(context: EnvironmentContext, *, publishes: bool = False) -> None:
    """Run the migrations of the current ini section.

    Args:
        context: Alembic's environment context (``alembic.context``).
        publishes: Whether this environment installs the remote layer and
            therefore needs the foreign server options.
    """
    config = context.config
    if config.config_file_name is not None:
        fileConfig(config.config_file_name, disable_existing_loggers=False)

    # Load .env so `alembic upgrade head` works without manually exporting vars.
    load_dotenv(override=False)

    env_var = config.get_main_option("database_url_env") or DEFAULT_DATABASE_URL_ENV
    version_table = config.get_main_option("version_table") or DEFAULT_VERSION_TABLE

    database_url = _get_database_url(env_var)
    if database_url:
        config.set_main_option("sqlalchemy.url", database_url)

    config.attributes.setdefault(
        RETRY_POLICY_KEY, RetryPolicy.from_settings(MigrationSettings(_env_file=".env"))
    )
    if publishes:
        config.attributes.setdefault(
            FOREIGN_SERVER_KEY, ForeignServer.from_settings(SubscriberSettings(_env_file=".env"))
        )

    options = {
        "version_table": version_table,
        "transaction_per_migration": True,
    }

    if context.is_offline_mode():
        url = config.get_main_option("sqlalchemy.url")
        if url:
            context.configure(url=url, literal_binds=True, **options)
        else:
            context.configure(dialect_name="postgresql", literal_binds=True, **options)
        with context.begin_transaction():
            context.run_migrations()
        return

    if not database_url and not config.get_main_option("sqlalchemy.url"):
        raise RuntimeError(f"{env_var} is not set")

    def _do_run_migrations(connection: Connection) -> None:
        context.configure(connection=connection, **options)
        with context.begin_transaction():
            context.run_migrations()

    async def _run_migrations_online_async() -> None:
        connectable = async_engine_from_config(
            config.get_section(config.config_ini_section, {}),
            prefix="sqlalchemy.",
            poolclass=pool.NullPool,
        )
        async with connectable.connect() as connection:
            await connection.run_sync(_do_run_migrations)
        await connectable.dispose()

    logger.info("Running migrations against %s (version table %s)", env_var, version_table)
    asyncio.run(_run_migrations_online_async())
