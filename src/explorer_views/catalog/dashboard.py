"""The dashboard: one row built from the scalar counters."""

from __future__ import annotations

from explorer_views.annotations import Name, SmartComment
from explorer_views.catalog import counters
from explorer_views.catalog.models import DerivedView

GROUP = "statistics"

# (published column, counter view, counter column), in published order.
DASHBOARD_COLUMNS: tuple[tuple[str, DerivedView, str], ...] = (
    ("txn_count_all", counters.txn_count_all, "count"),
    ("txn_count_30_d", counters.txn_count_30_d, "count"),
    ("wallet_count_all", counters.wallet_count_all, "count"),
    ("active_wallet_count_30_d", counters.active_wallet_count_30_d, "count"),
    ("new_wallet_count_30_d", counters.new_wallet_count_30_d, "count"),
    ("block_height_current", counters.block_height_current, "height"),
    ("txn_count_pending", counters.txn_count_pending, "count"),
    ("txn_fee_1_d", counters.txn_fee_1_d, "avg"),
    ("total_supply", counters.total_supply, "sum"),
    ("post_count", counters.post_count, "count"),
    ("post_longform_count", counters.post_longform_count, "count"),
    ("comment_count", counters.comment_count, "count"),
    ("repost_count", counters.repost_count, "count"),
    ("txn_count_creator_coin", counters.txn_count_creator_coin, "count"),
    ("txn_count_nft", counters.txn_count_nft, "count"),
    ("txn_count_dex", counters.txn_count_dex, "count"),
    ("txn_count_social", counters.txn_count_social, "count"),
    ("follow_count", counters.follow_count, "count"),
    ("message_count", counters.message_count, "count"),
)


def _dashboard_body() -> str:
    columns = ",\n".join(
        f"    {view.name}.{column} as {alias}" for alias, view, column in DASHBOARD_COLUMNS
    )
    sources = "\nCROSS JOIN\n".join(view.name for _, view, _ in DASHBOARD_COLUMNS)
    return f"SELECT\n{columns}\nFROM\n{sources}"


statistic_dashboard = DerivedView(
    name="statistic_dashboard",
    group=GROUP,
    depends_on=tuple(view.name for _, view, _ in DASHBOARD_COLUMNS),
    comment=SmartComment.of(Name("dashboardStat")),
    materialized=False,
    body=_dashboard_body(),
)

OBJECTS = (statistic_dashboard,)
