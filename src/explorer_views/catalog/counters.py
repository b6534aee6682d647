"""Scalar counters: single-row materialized views keyed by ``id = 0``."""

from __future__ import annotations

from datetime import timedelta

from explorer_views.annotations import OMIT
from explorer_views.catalog.helpers import FIRST_TRANSACTION_TABLE
from explorer_views.catalog.models import DerivedView, RefreshCost, Shape
from explorer_views.catalog.partitions import (
    CREATOR_COIN_TYPES,
    DEX_TYPES,
    MAX_TRANSACTION_TYPE,
    MIN_TRANSACTION_TYPE,
    NFT_TYPES,
    SOCIAL_TYPES,
    TransactionType,
    estimated_count_expression,
    partition_name,
)

GROUP = "statistics"

LONGFORM_KEY = "BlogDeltaRtfFormat"


def singleton(
    name: str,
    body: str,
    *,
    depends_on: tuple[str, ...],
    cost: RefreshCost,
    interval: timedelta,
) -> DerivedView:
    """A one-row materialized view whose body already selects ``0 as id``."""
    return DerivedView(
        name=name,
        group=GROUP,
        depends_on=depends_on,
        comment=OMIT,
        body=body,
        shape=Shape.SINGLETON,
        unique_key=("id",),
        refresh_cost=cost,
        refresh_interval=interval,
    )


def _reltuples(relation: str, *, coalesce: bool = False) -> str:
    column = "COALESCE(reltuples::bigint, 0)" if coalesce else "reltuples::bigint"
    return f"SELECT {column} AS count, 0 as id\nFROM pg_class\nWHERE relname = '{relation}'"


def _kind_counter(name: str, types: tuple[TransactionType, ...]) -> DerivedView:
    return singleton(
        name,
        f"select {estimated_count_expression(types)} as count, 0 as id",
        depends_on=("get_transaction_count",),
        cost=RefreshCost.LIGHT,
        interval=timedelta(minutes=15),
    )


def _top_level_posts(longform: bool) -> str:
    predicate = f"(post_entry.extra_data ? '{LONGFORM_KEY}')"
    return f"""\
select count(post_hash) as count, 0 as id from post_entry
where parent_post_hash is null
and reposted_post_hash is null
and {predicate if longform else f'NOT {predicate}'}"""


txn_count_all = singleton(
    "statistic_txn_count_all",
    f"""\
SELECT SUM(get_transaction_count(s.i)) as count,
       0 as id
FROM generate_series({MIN_TRANSACTION_TYPE}, {MAX_TRANSACTION_TYPE}) AS s(i)""",
    depends_on=("get_transaction_count",),
    cost=RefreshCost.LIGHT,
    interval=timedelta(minutes=15),
)

txn_count_30_d = singleton(
    "statistic_txn_count_30_d",
    """\
select count(*), 0 as id from transaction t
join block b on t.block_hash = b.block_hash
where b.timestamp > NOW() - INTERVAL '30 days'""",
    depends_on=("transaction", "block"),
    cost=RefreshCost.HEAVY,
    interval=timedelta(minutes=30),
)

block_height_current = singleton(
    "statistic_block_height_current",
    "select height, 0 as id from block order by height desc limit 1",
    depends_on=("block",),
    cost=RefreshCost.LIGHT,
    interval=timedelta(seconds=2),
)

txn_count_pending = singleton(
    "statistic_txn_count_pending",
    "select count(*) as count, 0 as id from transaction where block_hash = ''",
    depends_on=("transaction",),
    cost=RefreshCost.MEDIUM,
    interval=timedelta(minutes=15),
)

_FEE_PARTITION = partition_name(TransactionType.SUBMIT_POST)

txn_fee_1_d = singleton(
    "statistic_txn_fee_1_d",
    f"""\
select avg(t.fee_nanos) as avg, 0 as id from {_FEE_PARTITION} t
join block b on t.block_hash = b.block_hash
where b.timestamp > NOW() - INTERVAL '1 day'
and t.fee_nanos != 0""",
    depends_on=(_FEE_PARTITION, "block"),
    cost=RefreshCost.MEDIUM,
    interval=timedelta(minutes=15),
)

total_supply = singleton(
    "statistic_total_supply",
    "select sum(balance_nanos) as sum, 0 as id from deso_balance_entry",
    depends_on=("deso_balance_entry",),
    cost=RefreshCost.MEDIUM,
    interval=timedelta(minutes=15),
)

post_count = singleton(
    "statistic_post_count",
    _top_level_posts(longform=False),
    depends_on=("post_entry",),
    cost=RefreshCost.MEDIUM,
    interval=timedelta(minutes=15),
)

post_longform_count = singleton(
    "statistic_post_longform_count",
    _top_level_posts(longform=True),
    depends_on=("post_entry",),
    cost=RefreshCost.MEDIUM,
    interval=timedelta(minutes=15),
)

comment_count = singleton(
    "statistic_comment_count",
    "select count(post_hash), 0 as id from post_entry\nwhere parent_post_hash is not null",
    depends_on=("post_entry",),
    cost=RefreshCost.MEDIUM,
    interval=timedelta(minutes=15),
)

repost_count = singleton(
    "statistic_repost_count",
    "select count(post_hash), 0 as id from post_entry\nwhere reposted_post_hash is not null",
    depends_on=("post_entry",),
    cost=RefreshCost.MEDIUM,
    interval=timedelta(minutes=15),
)

txn_count_creator_coin = _kind_counter("statistic_txn_count_creator_coin", CREATOR_COIN_TYPES)
txn_count_nft = _kind_counter("statistic_txn_count_nft", NFT_TYPES)
txn_count_dex = _kind_counter("statistic_txn_count_dex", DEX_TYPES)
txn_count_social = _kind_counter("statistic_txn_count_social", SOCIAL_TYPES)

follow_count = singleton(
    "statistic_follow_count",
    _reltuples("follow_entry"),
    depends_on=("pg_class", "follow_entry"),
    cost=RefreshCost.LIGHT,
    interval=timedelta(minutes=15),
)

# Two catalog estimates folded into one row by the outer SUM.
message_count = singleton(
    "statistic_message_count",
    """\
SELECT SUM(count) as count, 0 as id
FROM (
    SELECT reltuples::bigint AS count
    FROM pg_class
    WHERE relname = 'message_entry'
    UNION ALL
    SELECT reltuples::bigint AS count
    FROM pg_class
    WHERE relname = 'new_message_entry'
) AS subquery""",
    depends_on=("pg_class", "message_entry", "new_message_entry"),
    cost=RefreshCost.LIGHT,
    interval=timedelta(minutes=15),
)

wallet_count_all = singleton(
    "statistic_wallet_count_all",
    _reltuples(FIRST_TRANSACTION_TABLE, coalesce=True),
    depends_on=("pg_class", FIRST_TRANSACTION_TABLE),
    cost=RefreshCost.LIGHT,
    interval=timedelta(minutes=15),
)

new_wallet_count_30_d = singleton(
    "statistic_new_wallet_count_30_d",
    f"""\
SELECT count(*), 0 as id from {FIRST_TRANSACTION_TABLE}
WHERE timestamp > NOW() - INTERVAL '30 days'""",
    depends_on=(FIRST_TRANSACTION_TABLE,),
    cost=RefreshCost.MEDIUM,
    interval=timedelta(minutes=15),
)

active_wallet_count_30_d = singleton(
    "statistic_active_wallet_count_30_d",
    """\
SELECT COUNT(DISTINCT t.public_key), 0 as id
FROM transaction_partitioned t
WHERE timestamp > NOW() - INTERVAL '30 days'""",
    depends_on=("transaction_partitioned",),
    cost=RefreshCost.HEAVY,
    interval=timedelta(hours=2),
)

OBJECTS = (
    txn_count_all,
    txn_count_30_d,
    block_height_current,
    txn_count_pending,
    txn_fee_1_d,
    total_supply,
    post_count,
    post_longform_count,
    comment_count,
    repost_count,
    txn_count_creator_coin,
    txn_count_nft,
    txn_count_dex,
    txn_count_social,
    follow_count,
    message_count,
    wallet_count_all,
    new_wallet_count_30_d,
    active_wallet_count_30_d,
)
