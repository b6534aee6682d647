"""Publication layer for a downstream database.

The downstream database imports the published views of the statistics
database through ``postgres_fdw`` and wraps each foreign table in a local
``<name>_remote_view``. The wrapper carries the schema annotation; the
foreign table itself is hidden so the schema generator sees one object.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from explorer_views.annotations import OMIT, SmartComment, comment_statement
from explorer_views.catalog.models import DerivedView, ObjectKind
from explorer_views.config import SubscriberSettings

SERVER_NAME = "subscriber_server"
REMOTE_VIEW_SUFFIX = "_remote_view"
FDW_EXTENSION = "postgres_fdw"


def _quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def remote_view_name(name: str) -> str:
    return f"{name}{REMOTE_VIEW_SUFFIX}"


@dataclass(frozen=True)
class ForeignServer:
    """Connection options of the server the foreign tables live on."""

    host: str
    port: int
    dbname: str
    user: str
    password: str

    @classmethod
    def from_settings(cls, settings: SubscriberSettings) -> ForeignServer:
        return cls(
            host=settings.host,
            port=settings.port,
            dbname=settings.name,
            user=settings.username,
            password=settings.password.get_secret_value(),
        )

    def server_options(self) -> str:
        return (
            f"host {_quote_literal(self.host)}, "
            f"port {_quote_literal(str(self.port))}, "
            f"dbname {_quote_literal(self.dbname)}"
        )

    def user_mapping_options(self) -> str:
        return f"user {_quote_literal(self.user)}, password {_quote_literal(self.password)}"


def wrapper_comment(view: DerivedView) -> SmartComment | None:
    """Annotation of the local wrapper: the source annotation plus its unique key."""
    if view.comment is None:
        return None
    return view.comment.with_unique(view.unique_key)


def install_statements(server: ForeignServer, published: Sequence[DerivedView]) -> list[str]:
    """Statements creating the foreign server, foreign tables and wrappers."""
    if not published:
        raise ValueError("Nothing to publish")
    names = ",\n    ".join(view.name for view in published)
    statements = [
        f"CREATE EXTENSION IF NOT EXISTS {FDW_EXTENSION}",
        f"CREATE SERVER IF NOT EXISTS {SERVER_NAME}\n"
        f"FOREIGN DATA WRAPPER {FDW_EXTENSION}\n"
        f"OPTIONS ({server.server_options()})",
        f"CREATE USER MAPPING IF NOT EXISTS FOR current_user\n"
        f"SERVER {SERVER_NAME}\n"
        f"OPTIONS ({server.user_mapping_options()})",
        f"IMPORT FOREIGN SCHEMA public\nLIMIT TO (\n    {names}\n)\nFROM SERVER {SERVER_NAME}\nINTO public",
    ]
    for view in published:
        wrapper = remote_view_name(view.name)
        statements.append(f"CREATE VIEW {wrapper} AS\nSELECT * FROM {view.name}")
        comment = wrapper_comment(view)
        if comment is not None:
            statements.append(comment_statement(ObjectKind.VIEW.value, wrapper, comment))
        statements.append(comment_statement(ObjectKind.FOREIGN_TABLE.value, view.name, OMIT))
    return statements


def uninstall_statements(published: Sequence[DerivedView]) -> list[str]:
    """Reverse of :func:`install_statements`; the extension is left installed."""
    statements = [f"DROP VIEW IF EXISTS {remote_view_name(view.name)}" for view in reversed(published)]
    statements.extend(f"DROP FOREIGN TABLE IF EXISTS {view.name}" for view in reversed(published))
    statements.append(f"DROP USER MAPPING IF EXISTS FOR current_user SERVER {SERVER_NAME}")
    statements.append(f"DROP SERVER IF EXISTS {SERVER_NAME}")
    return statements
