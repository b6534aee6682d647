"""Operations the revision scripts are written in.

Each revision installs, uninstalls or annotates one catalog group. Online,
every object's statements run as one retried block; offline (``alembic
upgrade --sql``) the statements are written verbatim to the SQL script.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from alembic import op

from explorer_views.catalog.base_tables import upstream_comment_statements
from explorer_views.catalog.graph import ViewGraph
from explorer_views.catalog.models import DerivedView
from explorer_views.catalog.remote import ForeignServer, install_statements, uninstall_statements
from explorer_views.config import SubscriberSettings
from explorer_views.migrations.retry import RetryPolicy, run_with_retries

logger = logging.getLogger(__name__)

RETRY_POLICY_KEY = "retry_policy"
FOREIGN_SERVER_KEY = "foreign_server"


def _attributes() -> dict:
    config = op.get_context().config
    return config.attributes if config is not None else {}


def _retry_policy() -> RetryPolicy:
    return _attributes().get(RETRY_POLICY_KEY) or RetryPolicy()


def execute_block(statements: Sequence[str], *, label: str) -> None:
    """Run ``statements`` as one unit: retried online, emitted offline."""
    if not statements:
        return
    context = op.get_context()
    if context.as_sql:
        impl = context.impl
        for statement in statements:
            impl.static_output(statement + impl.command_terminator)
        return
    logger.info("Applying %s", label)
    run_with_retries(op.get_bind(), statements, _retry_policy())


def install_group(graph: ViewGraph, group: str, *, annotate: bool = False) -> None:
    """Create every object of ``group``, dependencies first."""
    for obj in graph.install_order(group):
        statements = obj.create_statements()
        if annotate and (comment := obj.comment_statement()):
            statements.append(comment)
        execute_block(statements, label=f"{obj.kind.value} {obj.name}")


def uninstall_group(graph: ViewGraph, group: str) -> None:
    """Drop every object of ``group``, dependents first."""
    for obj in graph.drop_order(group):
        execute_block([obj.drop_statement()], label=f"drop {obj.kind.value} {obj.name}")


def annotate_group(graph: ViewGraph, group: str, *, include_upstream: bool = False) -> None:
    """Attach the annotation of every object in ``group``."""
    statements = [stmt for obj in graph.annotated(group) if (stmt := obj.comment_statement())]
    if include_upstream:
        statements.extend(upstream_comment_statements())
    execute_block(statements, label=f"annotations of {group}")


def clear_annotations(graph: ViewGraph, group: str, *, include_upstream: bool = False) -> None:
    """Reset exactly the annotations :func:`annotate_group` sets."""
    statements = [stmt for obj in graph.annotated(group) if (stmt := obj.clear_comment_statement())]
    if include_upstream:
        statements.extend(upstream_comment_statements(clear=True))
    execute_block(statements, label=f"clearing annotations of {group}")


def _foreign_server() -> ForeignServer:
    server = _attributes().get(FOREIGN_SERVER_KEY)
    if server is None:
        server = ForeignServer.from_settings(SubscriberSettings(_env_file=".env"))
    return server


def install_remote_layer(published: Sequence[DerivedView]) -> None:
    """Import ``published`` from the foreign server and wrap each in a local view."""
    server = _foreign_server()
    logger.info("Publishing %d objects from %s:%s/%s", len(published), server.host, server.port, server.dbname)
    execute_block(install_statements(server, published), label="remote views")


def uninstall_remote_layer(published: Sequence[DerivedView]) -> None:
    execute_block(uninstall_statements(published), label="drop remote views")
