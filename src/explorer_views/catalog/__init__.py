"""Catalog of every object the migrations install."""

from explorer_views.catalog import (
    counters,
    dashboard,
    helpers,
    indexes,
    leaderboards,
    orderbook,
    portfolio,
    profiles,
    series,
    staking,
)
from explorer_views.catalog.graph import (
    CatalogCycleError,
    CatalogError,
    DuplicateObjectError,
    MissingDependencyError,
    UniqueIndexError,
    ViewGraph,
)
from explorer_views.catalog.models import (
    AuxiliaryTable,
    CatalogObject,
    DerivedView,
    HelperFunction,
    ObjectKind,
    RefreshCost,
    SecondaryIndex,
    Shape,
)

STATISTICS_GROUP = "statistics"
STAKING_GROUP = staking.GROUP
PROFILE_TRANSACTIONS_INDEX_GROUP = indexes.GROUP


def build_catalog() -> ViewGraph:
    """Assemble and validate the full catalog.

    Returns:
        A validated ViewGraph holding every installed object.
    """
    graph = ViewGraph()
    graph.extend(helpers.OBJECTS)
    graph.extend(counters.OBJECTS)
    graph.extend(leaderboards.OBJECTS)
    graph.extend(series.OBJECTS)
    graph.extend(orderbook.OBJECTS)
    graph.extend(portfolio.OBJECTS)
    graph.extend(profiles.OBJECTS)
    graph.extend(dashboard.OBJECTS)
    graph.extend(staking.OBJECTS)
    graph.extend(indexes.OBJECTS)
    graph.validate()
    return graph


__all__ = [
    "PROFILE_TRANSACTIONS_INDEX_GROUP",
    "STAKING_GROUP",
    "STATISTICS_GROUP",
    "AuxiliaryTable",
    "CatalogCycleError",
    "CatalogError",
    "CatalogObject",
    "DerivedView",
    "DuplicateObjectError",
    "HelperFunction",
    "MissingDependencyError",
    "ObjectKind",
    "RefreshCost",
    "SecondaryIndex",
    "Shape",
    "UniqueIndexError",
    "ViewGraph",
    "build_catalog",
]
