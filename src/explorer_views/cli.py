"""CLI entry point for the explorer views.

Usage:
    explorer-views plan
    explorer-views refresh
    explorer-views refresh --once
    explorer-views sql --target explorer
    explorer-views sql --target views

Schema changes themselves are applied with Alembic:
    alembic upgrade head
    alembic -n explorer_views upgrade head

Environment variables:
    DATABASE_URL:                   Statistics database
    CALCULATE_EXPLORER_STATISTICS:  Must be true for the refresh daemon to run
    REFRESH_INTERVAL_SCALE:         Multiplier applied to every refresh interval
    LOG_LEVEL:                      Logging level (default: INFO)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Iterator, Sequence

from explorer_views.catalog import (
    PROFILE_TRANSACTIONS_INDEX_GROUP,
    STAKING_GROUP,
    STATISTICS_GROUP,
    ViewGraph,
    build_catalog,
)
from explorer_views.catalog.base_tables import upstream_comment_statements
from explorer_views.catalog.remote import ForeignServer, install_statements
from explorer_views.config import (
    LoggingSettings,
    RefreshSettings,
    Settings,
    SubscriberSettings,
    get_settings,
)
from explorer_views.database import create_refresh_engine
from explorer_views.refresh import plan_jobs, refresh_once, serve

logger = logging.getLogger(__name__)

TARGET_EXPLORER = "explorer"
TARGET_VIEWS = "views"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="explorer-views",
        description="Inspect and refresh the explorer statistic views",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("plan", help="Print install and refresh order per group")

    refresh = subparsers.add_parser("refresh", help="Refresh the materialized views")
    refresh.add_argument(
        "--once",
        action="store_true",
        help="Run every refresh job once in dependency order and exit",
    )

    sql = subparsers.add_parser("sql", help="Print the forward DDL")
    sql.add_argument(
        "--target",
        choices=[TARGET_EXPLORER, TARGET_VIEWS],
        default=TARGET_EXPLORER,
        help="Statistics database or downstream database (default: explorer)",
    )
    return parser


def forward_sql(graph: ViewGraph, target: str, server: ForeignServer | None = None) -> Iterator[str]:
    """Yield the statements the migrations of ``target`` apply, in order."""
    if target == TARGET_VIEWS:
        if server is None:
            raise ValueError("The views target needs the foreign server settings")
        yield from install_statements(server, graph.published())
        return

    for obj in graph.install_order(STATISTICS_GROUP):
        yield from obj.create_statements()
    for obj in graph.annotated(STATISTICS_GROUP):
        if statement := obj.comment_statement():
            yield statement
    yield from upstream_comment_statements()
    for obj in graph.install_order(STAKING_GROUP):
        yield from obj.create_statements()
        if statement := obj.comment_statement():
            yield statement
    for obj in graph.install_order(PROFILE_TRANSACTIONS_INDEX_GROUP):
        yield from obj.create_statements()


def print_plan(graph: ViewGraph, scale: float = 1.0) -> None:
    for group in graph.groups:
        print(f"[{group}]")
        for obj in graph.install_order(group):
            print(f"  {obj.kind.value:<18} {obj.name}")
    print("[refresh]")
    for job in plan_jobs(graph, scale):
        print(f"  {job.interval!s:>9}  {job.name}")


async def run_refresh(settings: Settings, graph: ViewGraph, *, once: bool) -> int:
    engine = create_refresh_engine(settings.database.url)
    jobs = plan_jobs(graph, settings.refresh.interval_scale)
    try:
        if once:
            failures = await refresh_once(engine, jobs)
            return 1 if failures else 0

        loop = asyncio.get_running_loop()
        stop = asyncio.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)
        try:
            await serve(engine, jobs, stop)
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
        return 0
    finally:
        await engine.dispose()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=LoggingSettings(_env_file=".env").get_logging_level(),
        format="%(asctime)s %(levelname)-5.5s [%(name)s] %(message)s",
    )
    graph = build_catalog()

    if args.command == "plan":
        print_plan(graph, RefreshSettings(_env_file=".env").interval_scale)
        return 0

    if args.command == "sql":
        server = None
        if args.target == TARGET_VIEWS:
            server = ForeignServer.from_settings(SubscriberSettings(_env_file=".env"))
        for statement in forward_sql(graph, args.target, server):
            print(f"{statement};\n")
        return 0

    settings = get_settings()
    if not settings.refresh.enabled and not args.once:
        logger.error("CALCULATE_EXPLORER_STATISTICS is not enabled; refusing to start the daemon")
        return 1
    logger.info("Starting refresh with settings %s", settings.redacted_summary())
    return asyncio.run(run_refresh(settings, graph, once=args.once))


if __name__ == "__main__":
    sys.exit(main())
