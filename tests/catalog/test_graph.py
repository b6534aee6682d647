"""Tests for the catalog dependency graph."""

from datetime import timedelta

import pytest

from explorer_views.annotations import Name, SmartComment
from explorer_views.catalog import (
    CatalogCycleError,
    CatalogError,
    DerivedView,
    DuplicateObjectError,
    MissingDependencyError,
    ObjectKind,
    UniqueIndexError,
    ViewGraph,
)


def view(
    name: str,
    body: str = "select 1 as id from block",
    *,
    depends_on: tuple[str, ...] = ("block",),
    group: str = "g",
    materialized: bool = True,
    unique_key: tuple[str, ...] = ("id",),
    comment: SmartComment | None = None,
) -> DerivedView:
    return DerivedView(
        name=name,
        group=group,
        depends_on=depends_on,
        body=body,
        materialized=materialized,
        unique_key=unique_key if materialized else (),
        comment=comment,
        refresh_interval=timedelta(minutes=1),
    )


@pytest.fixture
def diamond() -> ViewGraph:
    """a <- b, a <- c, (b, c) <- d, declared out of order."""
    return ViewGraph(
        [
            view("d", "select 1 as id from b join c on true", depends_on=("b", "c")),
            view("b", "select 1 as id from a", depends_on=("a",)),
            view("a"),
            view("c", "select 1 as id from a", depends_on=("a",)),
        ]
    )


class TestViewGraphValidation:
    """Tests for graph validation."""

    def test_duplicate_rejected(self) -> None:
        graph = ViewGraph([view("a")])
        with pytest.raises(DuplicateObjectError):
            graph.add(view("a"))

    def test_unknown_dependency(self) -> None:
        graph = ViewGraph([view("a", depends_on=("no_such_table",))])
        with pytest.raises(MissingDependencyError):
            graph.validate()

    def test_undeclared_reference(self) -> None:
        graph = ViewGraph([view("a"), view("b", "select 1 as id from a", depends_on=("block",))])
        with pytest.raises(MissingDependencyError, match="'b' reads 'a'"):
            graph.validate()

    def test_name_prefix_is_not_a_reference(self) -> None:
        graph = ViewGraph([view("a"), view("b", "select 1 as id from a_30_d", depends_on=())])
        # a_30_d is not a catalog object and "a" only appears as a prefix.
        graph.validate()

    def test_cycle(self) -> None:
        graph = ViewGraph(
            [
                view("a", "select 1 as id from b", depends_on=("b",)),
                view("b", "select 1 as id from a", depends_on=("a",)),
            ]
        )
        with pytest.raises(CatalogCycleError, match="a, b"):
            graph.validate()

    def test_materialized_view_needs_unique_key(self) -> None:
        graph = ViewGraph([view("a", unique_key=())])
        with pytest.raises(UniqueIndexError):
            graph.validate()

    def test_unique_key_repeats_column(self) -> None:
        graph = ViewGraph([view("a", unique_key=("id", "id"))])
        with pytest.raises(UniqueIndexError):
            graph.validate()

    def test_plain_view_cannot_have_unique_key(self) -> None:
        plain = DerivedView(
            name="p",
            group="g",
            depends_on=("block",),
            body="select 1 from block",
            materialized=False,
            unique_key=("id",),
        )
        with pytest.raises(UniqueIndexError):
            ViewGraph([plain]).validate()

    def test_dependency_into_later_group(self) -> None:
        graph = ViewGraph(
            [
                view("a", "select 1 as id from b", depends_on=("b",), group="first"),
                view("b", group="second"),
            ]
        )
        with pytest.raises(CatalogError, match="later group"):
            graph.validate()


class TestViewGraphOrdering:
    """Tests for install, drop and refresh order."""

    def test_install_order_respects_dependencies(self, diamond: ViewGraph) -> None:
        names = [obj.name for obj in diamond.install_order()]
        assert names.index("a") < names.index("b")
        assert names.index("a") < names.index("c")
        assert names.index("b") < names.index("d")
        assert names.index("c") < names.index("d")

    def test_install_order_is_stable(self, diamond: ViewGraph) -> None:
        # Ties are broken by declaration order.
        assert [obj.name for obj in diamond.install_order()] == ["a", "b", "c", "d"]

    def test_drop_order_is_reverse(self, diamond: ViewGraph) -> None:
        install = diamond.install_order()
        assert diamond.drop_order() == list(reversed(install))

    def test_refresh_order_skips_plain_views(self) -> None:
        graph = ViewGraph(
            [
                view("leaf"),
                view("plain", "select id from leaf", depends_on=("leaf",), materialized=False),
            ]
        )
        assert [v.name for v in graph.refresh_order()] == ["leaf"]

    def test_group_order(self) -> None:
        graph = ViewGraph([view("a", group="one"), view("b", group="two"), view("c", group="one")])
        assert graph.groups == ["one", "two"]
        assert [obj.name for obj in graph.install_order("one")] == ["a", "c"]

    def test_published(self) -> None:
        graph = ViewGraph(
            [
                view("hidden"),
                view("shown", comment=SmartComment.of(Name("shownStat"))),
            ]
        )
        assert [v.name for v in graph.published()] == ["shown"]

    def test_kind(self) -> None:
        assert view("a").kind is ObjectKind.MATERIALIZED_VIEW
        assert view("b", materialized=False).kind is ObjectKind.VIEW
