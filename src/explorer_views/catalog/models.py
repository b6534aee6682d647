"""Typed records describing every object the migrations install.

Each record knows how to create itself, drop itself and attach its
annotation, so migrations and the refresh daemon work off one graph instead
of hand-maintained SQL lists.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

from explorer_views.annotations import SmartComment, comment_statement


class ObjectKind(str, Enum):
    """PostgreSQL object kind, spelled the way DDL spells it."""

    TABLE = "table"
    FUNCTION = "function"
    VIEW = "view"
    MATERIALIZED_VIEW = "materialized view"
    INDEX = "index"
    FOREIGN_TABLE = "foreign table"


class Shape(str, Enum):
    """Row shape of a derived view."""

    SINGLETON = "singleton"
    KEYED = "keyed"
    SERIES = "series"


class RefreshCost(str, Enum):
    """Rough cost of recomputing a derived view."""

    LIGHT = "L"  # catalog statistics read
    MEDIUM = "M"  # bounded scan
    HEAVY = "H"  # full scan or many-partition join


@dataclass(frozen=True, kw_only=True)
class CatalogObject:
    """Common fields of every catalog entry."""

    name: str
    group: str
    depends_on: tuple[str, ...] = ()
    comment: SmartComment | None = None

    @property
    def kind(self) -> ObjectKind:
        raise NotImplementedError

    def create_statements(self) -> list[str]:
        raise NotImplementedError

    def drop_statement(self) -> str:
        return f"DROP {self.kind.value.upper()} IF EXISTS {self.name}"

    def comment_statement(self) -> str | None:
        if self.comment is None:
            return None
        return comment_statement(self.kind.value, self.name, self.comment)

    def clear_comment_statement(self) -> str | None:
        if self.comment is None:
            return None
        return comment_statement(self.kind.value, self.name, None)


@dataclass(frozen=True, kw_only=True)
class AuxiliaryTable(CatalogObject):
    """A table owned by this project: DDL plus an optional initial load."""

    ddl: tuple[str, ...]
    initial_load: str | None = None

    @property
    def kind(self) -> ObjectKind:
        return ObjectKind.TABLE

    def create_statements(self) -> list[str]:
        statements = list(self.ddl)
        if self.initial_load:
            statements.append(self.initial_load)
        return statements


@dataclass(frozen=True, kw_only=True)
class HelperFunction(CatalogObject):
    """A ``CREATE OR REPLACE FUNCTION`` definition."""

    definition: str

    @property
    def kind(self) -> ObjectKind:
        return ObjectKind.FUNCTION

    def create_statements(self) -> list[str]:
        return [self.definition]


@dataclass(frozen=True, kw_only=True)
class DerivedView(CatalogObject):
    """A plain or materialized view over base tables and other views.

    Materialized views carry exactly one unique key so they can be refreshed
    concurrently; plain views are recomputed on read and carry none.
    """

    body: str
    materialized: bool = True
    shape: Shape = Shape.KEYED
    unique_key: tuple[str, ...] = ()
    unique_index_name: str | None = None
    refresh_cost: RefreshCost | None = None
    refresh_interval: timedelta | None = None

    @property
    def kind(self) -> ObjectKind:
        return ObjectKind.MATERIALIZED_VIEW if self.materialized else ObjectKind.VIEW

    @property
    def index_name(self) -> str:
        return self.unique_index_name or f"{self.name}_unique_index"

    def create_statements(self) -> list[str]:
        statements = [f"CREATE {self.kind.value.upper()} {self.name} AS\n{self.body.strip()}"]
        if self.materialized:
            statements.append(
                f"CREATE UNIQUE INDEX {self.index_name} ON {self.name} ({', '.join(self.unique_key)})"
            )
        return statements

    def refresh_statement(self) -> str:
        return f"REFRESH MATERIALIZED VIEW CONCURRENTLY {self.name}"


@dataclass(frozen=True, kw_only=True)
class SecondaryIndex(CatalogObject):
    """A non-unique index added to an existing relation."""

    relation: str
    columns: str

    @property
    def kind(self) -> ObjectKind:
        return ObjectKind.INDEX

    def create_statements(self) -> list[str]:
        return [f"CREATE INDEX IF NOT EXISTS {self.name} ON {self.relation} ({self.columns})"]
