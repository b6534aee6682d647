"""Dependency graph over catalog objects.

The graph is the single source for install order, rollback order and refresh
order. Objects are kept in insertion order, which also breaks ties between
objects that do not depend on each other, so generated DDL is stable.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator

from explorer_views.catalog.base_tables import is_base_object
from explorer_views.catalog.models import CatalogObject, DerivedView, ObjectKind

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Base exception for an inconsistent catalog."""


class DuplicateObjectError(CatalogError):
    """Raised when two catalog objects share a name."""


class MissingDependencyError(CatalogError):
    """Raised when an object reads something that is neither declared nor upstream."""


class CatalogCycleError(CatalogError):
    """Raised when dependencies form a cycle."""


class UniqueIndexError(CatalogError):
    """Raised when a view's unique key does not match its kind."""


_REFERENCEABLE = frozenset(
    {
        ObjectKind.TABLE,
        ObjectKind.FUNCTION,
        ObjectKind.VIEW,
        ObjectKind.MATERIALIZED_VIEW,
    }
)


class ViewGraph:
    """Ordered, validated collection of catalog objects."""

    def __init__(self, objects: Iterable[CatalogObject] = ()) -> None:
        self._objects: dict[str, CatalogObject] = {}
        self.extend(objects)

    def add(self, obj: CatalogObject) -> None:
        if obj.name in self._objects:
            raise DuplicateObjectError(f"Catalog object {obj.name!r} is declared twice")
        self._objects[obj.name] = obj

    def extend(self, objects: Iterable[CatalogObject]) -> None:
        for obj in objects:
            self.add(obj)

    def __contains__(self, name: object) -> bool:
        return name in self._objects

    def __getitem__(self, name: str) -> CatalogObject:
        return self._objects[name]

    def __iter__(self) -> Iterator[CatalogObject]:
        return iter(self._objects.values())

    def __len__(self) -> int:
        return len(self._objects)

    @property
    def groups(self) -> list[str]:
        """Migration groups in the order their first object was declared."""
        seen: dict[str, None] = {}
        for obj in self._objects.values():
            seen.setdefault(obj.group, None)
        return list(seen)

    def in_group(self, group: str) -> list[CatalogObject]:
        return [obj for obj in self._objects.values() if obj.group == group]

    def validate(self) -> None:
        """Check dependencies, body references, acyclicity and unique keys.

        Raises:
            MissingDependencyError: A dependency is unknown, or a body reads a
                catalog relation it does not declare.
            CatalogError: A dependency points into a later migration group.
            CatalogCycleError: Dependencies form a cycle.
            UniqueIndexError: A materialized view lacks a unique key, or a
                plain view declares one.
        """
        group_rank = {group: rank for rank, group in enumerate(self.groups)}
        for obj in self._objects.values():
            for dependency in obj.depends_on:
                if dependency in self._objects:
                    target = self._objects[dependency]
                    if group_rank[target.group] > group_rank[obj.group]:
                        raise CatalogError(
                            f"{obj.name!r} ({obj.group}) depends on {dependency!r} "
                            f"from later group {target.group!r}"
                        )
                elif not is_base_object(dependency):
                    raise MissingDependencyError(
                        f"{obj.name!r} depends on unknown object {dependency!r}"
                    )
            self._check_references(obj)
            if isinstance(obj, DerivedView):
                self._check_unique_key(obj)
        self._topological(list(self._objects.values()))
        logger.debug("Validated catalog of %d objects in %d groups", len(self), len(group_rank))

    def _check_references(self, obj: CatalogObject) -> None:
        text = "\n".join(obj.create_statements())
        declared = set(obj.depends_on)
        for name, other in self._objects.items():
            if name == obj.name or name in declared or other.kind not in _REFERENCEABLE:
                continue
            if re.search(rf"\b{re.escape(name)}\b", text):
                raise MissingDependencyError(
                    f"{obj.name!r} reads {name!r} without declaring the dependency"
                )

    @staticmethod
    def _check_unique_key(view: DerivedView) -> None:
        if view.materialized:
            if not view.unique_key:
                raise UniqueIndexError(f"Materialized view {view.name!r} has no unique key")
            if len(set(view.unique_key)) != len(view.unique_key):
                raise UniqueIndexError(f"Unique key of {view.name!r} repeats a column")
        elif view.unique_key:
            raise UniqueIndexError(f"Plain view {view.name!r} cannot carry a unique index")

    def _topological(self, objects: list[CatalogObject]) -> list[CatalogObject]:
        names = {obj.name for obj in objects}
        pending = {
            obj.name: {d for d in obj.depends_on if d in names and d != obj.name}
            for obj in objects
        }
        ordered: list[CatalogObject] = []
        remaining = list(objects)
        while remaining:
            ready = [obj for obj in remaining if not pending[obj.name]]
            if not ready:
                cycle = ", ".join(sorted(obj.name for obj in remaining))
                raise CatalogCycleError(f"Dependency cycle among: {cycle}")
            # Take the first ready object so declaration order breaks ties.
            chosen = ready[0]
            ordered.append(chosen)
            remaining.remove(chosen)
            for deps in pending.values():
                deps.discard(chosen.name)
        return ordered

    def install_order(self, group: str | None = None) -> list[CatalogObject]:
        """Objects of ``group`` (or all), dependencies first."""
        objects = list(self._objects.values()) if group is None else self.in_group(group)
        return self._topological(objects)

    def drop_order(self, group: str | None = None) -> list[CatalogObject]:
        """Reverse of :meth:`install_order`, so dependents go first."""
        return list(reversed(self.install_order(group)))

    def refresh_order(self) -> list[DerivedView]:
        """Materialized views, leaves before the views that read them."""
        return [
            obj
            for obj in self.install_order()
            if isinstance(obj, DerivedView) and obj.materialized
        ]

    def annotated(self, group: str | None = None) -> list[CatalogObject]:
        objects = self.install_order(group)
        return [obj for obj in objects if obj.comment is not None]

    def published(self) -> list[DerivedView]:
        """Views exposed under a schema name, in install order."""
        return [
            obj
            for obj in self.install_order()
            if isinstance(obj, DerivedView) and obj.comment is not None and obj.comment.name
        ]
