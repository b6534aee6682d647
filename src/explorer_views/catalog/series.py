"""Bucketed time series over transactions and first appearances."""

from __future__ import annotations

from datetime import timedelta

from explorer_views.annotations import Name, SmartComment
from explorer_views.catalog.helpers import FIRST_TRANSACTION_TABLE
from explorer_views.catalog.models import DerivedView, RefreshCost, Shape

GROUP = "statistics"

_INTERVAL = timedelta(minutes=30)


def bucketed_count(
    name: str,
    *,
    bucket: str,
    bucket_expression: str,
    count_column: str,
    source: str,
    alias: str | None = None,
    window: str,
    graphql_name: str,
    cost: RefreshCost = RefreshCost.HEAVY,
) -> DerivedView:
    """Row count per ``bucket`` over ``source`` rows newer than ``window``."""
    timestamp = f"{alias}.timestamp" if alias else "timestamp"
    from_clause = f"{source} {alias}" if alias else source
    return DerivedView(
        name=name,
        group=GROUP,
        depends_on=(source,),
        comment=SmartComment.of(Name(graphql_name)),
        body=f"""\
SELECT {bucket_expression} AS {bucket}, COUNT(*) AS {count_column}, row_number() OVER () AS id
FROM {from_clause}
WHERE {timestamp} > NOW() - INTERVAL '{window}'
GROUP BY {bucket}""",
        shape=Shape.SERIES,
        unique_key=(bucket,),
        refresh_cost=cost,
        refresh_interval=_INTERVAL,
    )


txn_count_monthly = bucketed_count(
    "statistic_txn_count_monthly",
    bucket="month",
    bucket_expression="date_trunc('month', t.timestamp)",
    count_column="transaction_count",
    source="transaction",
    alias="t",
    window="1 year",
    graphql_name="monthlyTxnCountStat",
)

wallet_count_monthly = bucketed_count(
    "statistic_wallet_count_monthly",
    bucket="month",
    bucket_expression="date_trunc('month', timestamp)",
    count_column="wallet_count",
    source=FIRST_TRANSACTION_TABLE,
    window="1 year",
    graphql_name="monthlyNewWalletCountStat",
    cost=RefreshCost.MEDIUM,
)

txn_count_daily = bucketed_count(
    "statistic_txn_count_daily",
    bucket="day",
    bucket_expression="DATE(t.timestamp)",
    count_column="transaction_count",
    source="transaction",
    alias="t",
    window="1 month",
    graphql_name="dailyTxnCountStat",
)

new_wallet_count_daily = bucketed_count(
    "statistic_new_wallet_count_daily",
    bucket="day",
    bucket_expression="date(timestamp)",
    count_column="wallet_count",
    source=FIRST_TRANSACTION_TABLE,
    window="1 month",
    graphql_name="dailyNewWalletCountStat",
    cost=RefreshCost.MEDIUM,
)

# Distinct active keys per day; the window starts at midnight a month ago.
active_wallet_count_daily = DerivedView(
    name="statistic_active_wallet_count_daily",
    group=GROUP,
    depends_on=("transaction_partitioned",),
    comment=SmartComment.of(Name("dailyActiveWalletCountStat")),
    body="""\
SELECT DATE(t.timestamp) as day, COUNT(DISTINCT t.public_key), row_number() OVER () AS id
FROM transaction_partitioned t
WHERE t.timestamp > current_date - interval '1 month'
GROUP BY DATE(t.timestamp)
ORDER BY DATE(t.timestamp)""",
    shape=Shape.SERIES,
    unique_key=("day",),
    refresh_cost=RefreshCost.HEAVY,
    refresh_interval=_INTERVAL,
)

OBJECTS = (
    txn_count_monthly,
    wallet_count_monthly,
    txn_count_daily,
    new_wallet_count_daily,
    active_wallet_count_daily,
)
