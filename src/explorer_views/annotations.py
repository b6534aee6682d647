"""Schema-introspection annotations ("smart comments").

The GraphQL schema generator reads directives out of object comments:

- ``@omit`` / ``@omit all``
- ``@name X``
- ``@unique col[,col]``
- ``@foreignKey (cols) references table (cols)|@foreignFieldName A|@fieldName B``

Directives inside one comment are newline separated. This module models them
as typed values so catalog entries carry structure instead of raw strings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Union


class AnnotationError(ValueError):
    """Raised when a comment cannot be parsed into directives."""


@dataclass(frozen=True)
class Omit:
    """Suppress the object, or only its collection endpoints with ``scope='all'``."""

    scope: str | None = None

    def render(self) -> str:
        return "@omit" if self.scope is None else f"@omit {self.scope}"


@dataclass(frozen=True)
class Name:
    """Rename the object in the introspected schema."""

    value: str

    def render(self) -> str:
        return f"@name {self.value}"


@dataclass(frozen=True)
class Unique:
    """Declare a unique key the catalog cannot see."""

    columns: tuple[str, ...]

    def render(self) -> str:
        return f"@unique {','.join(self.columns)}"


@dataclass(frozen=True)
class ForeignKey:
    """Declare a synthetic relation with forward and reverse field names."""

    columns: tuple[str, ...]
    target_table: str
    target_columns: tuple[str, ...]
    foreign_field_name: str | None = None
    field_name: str | None = None

    def render(self) -> str:
        text = (
            f"@foreignKey ({', '.join(self.columns)}) references "
            f"{self.target_table} ({', '.join(self.target_columns)})"
        )
        if self.foreign_field_name:
            text += f"|@foreignFieldName {self.foreign_field_name}"
        if self.field_name:
            text += f"|@fieldName {self.field_name}"
        return text


Directive = Union[Omit, Name, Unique, ForeignKey]

_FOREIGN_KEY_RE = re.compile(
    r"^@foreignKey\s*\((?P<cols>[^)]*)\)\s*references\s+(?P<table>[\w.]+)\s*\((?P<target>[^)]*)\)(?P<rest>.*)$"
)


def _split_columns(raw: str) -> tuple[str, ...]:
    columns = tuple(c.strip() for c in raw.split(",") if c.strip())
    if not columns:
        raise AnnotationError(f"Empty column list in {raw!r}")
    return columns


def _parse_foreign_key(line: str) -> ForeignKey:
    match = _FOREIGN_KEY_RE.match(line)
    if match is None:
        raise AnnotationError(f"Malformed @foreignKey directive: {line!r}")
    foreign_field_name = None
    field_name = None
    for part in (p.strip() for p in match.group("rest").split("|") if p.strip()):
        tag, _, value = part.partition(" ")
        if tag == "@foreignFieldName":
            foreign_field_name = value.strip()
        elif tag == "@fieldName":
            field_name = value.strip()
        else:
            raise AnnotationError(f"Unknown @foreignKey option {tag!r}")
    return ForeignKey(
        columns=_split_columns(match.group("cols")),
        target_table=match.group("table"),
        target_columns=_split_columns(match.group("target")),
        foreign_field_name=foreign_field_name,
        field_name=field_name,
    )


def parse_directive(line: str) -> Directive:
    """Parse one directive line."""
    line = line.strip()
    tag, _, value = line.partition(" ")
    value = value.strip()
    if tag == "@omit":
        return Omit(value or None)
    if tag == "@name":
        if not value:
            raise AnnotationError("@name requires a value")
        return Name(value)
    if tag == "@unique":
        return Unique(_split_columns(value))
    if tag == "@foreignKey":
        return _parse_foreign_key(line)
    raise AnnotationError(f"Unknown directive {tag!r}")


@dataclass(frozen=True)
class SmartComment:
    """An ordered set of directives attached to one database object."""

    directives: tuple[Directive, ...] = field(default_factory=tuple)

    @classmethod
    def of(cls, *directives: Directive) -> SmartComment:
        return cls(tuple(directives))

    @classmethod
    def parse(cls, text: str) -> SmartComment:
        return cls(tuple(parse_directive(line) for line in text.split("\n") if line.strip()))

    def render(self) -> str:
        return "\n".join(d.render() for d in self.directives)

    def sql_literal(self) -> str:
        """Render as a PostgreSQL escape-string literal."""
        escaped = self.render().replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")
        return f"E'{escaped}'"

    @property
    def name(self) -> str | None:
        for directive in self.directives:
            if isinstance(directive, Name):
                return directive.value
        return None

    @property
    def omitted(self) -> bool:
        return any(isinstance(d, Omit) and d.scope is None for d in self.directives)

    @property
    def unique_columns(self) -> tuple[str, ...] | None:
        for directive in self.directives:
            if isinstance(directive, Unique):
                return directive.columns
        return None

    def with_unique(self, columns: tuple[str, ...]) -> SmartComment:
        """Return a copy declaring ``columns`` unique unless a key is already declared."""
        if self.unique_columns is not None or not columns:
            return self
        directives = list(self.directives)
        insert_at = 1 if directives and isinstance(directives[0], Name) else 0
        directives.insert(insert_at, Unique(columns))
        return SmartComment(tuple(directives))

    def __str__(self) -> str:
        return self.render()


OMIT = SmartComment.of(Omit())


def comment_statement(kind: str, name: str, comment: SmartComment | None) -> str:
    """Build ``COMMENT ON <kind> <name> IS ...``; ``None`` clears the comment."""
    value = "NULL" if comment is None else comment.sql_literal()
    return f"COMMENT ON {kind.upper()} {name} IS {value}"
