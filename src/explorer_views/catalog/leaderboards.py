"""Thirty-day leaderboards.

The social leaderboard is assembled from five per-interaction constituents
that are refreshed on their own schedules; the NFT and DeFi leaderboards read
the transaction partitions directly. Every leaderboard is capped at ten rows.
"""

from __future__ import annotations

from datetime import timedelta

from explorer_views.annotations import OMIT, Name, SmartComment
from explorer_views.catalog import orderbook
from explorer_views.catalog.metadata import (
    ACCEPT_NFT_BID,
    DAO_COIN_LIMIT_ORDER,
    DIAMOND,
    LIKE,
    POST_ASSOCIATION,
    MetadataProjection,
)
from explorer_views.catalog.models import DerivedView, RefreshCost

GROUP = "statistics"

LEADERBOARD_SIZE = 10
WINDOW = "INTERVAL '30 days'"


def _constituent(name: str, body: str, depends_on: tuple[str, ...], interval: timedelta) -> DerivedView:
    return DerivedView(
        name=name,
        group=GROUP,
        depends_on=depends_on,
        comment=OMIT,
        body=body,
        unique_key=("poster_public_key",),
        refresh_cost=RefreshCost.MEDIUM,
        refresh_interval=interval,
    )


def _post_interaction(
    name: str,
    projection: MetadataProjection,
    condition: str | None,
    interval: timedelta,
) -> DerivedView:
    """Interactions of one transaction kind per poster of the targeted post."""
    where = f"where t.timestamp > NOW() - {WINDOW}"
    if condition:
        where += f"\nand {condition}"
    body = f"""\
select count(*) as count, pe.poster_public_key, row_number() OVER () AS id from {projection.partition} t
join post_entry pe on {projection.text('PostHashHex', 't')} = pe.post_hash
{where}
group by pe.poster_public_key"""
    return _constituent(name, body, (projection.partition, "post_entry"), interval)


def _post_reference(name: str, column: str, alias: str) -> DerivedView:
    """Posts of the window that point at another post of the window."""
    body = f"""\
select count(*) as count, pe.poster_public_key, row_number() OVER () AS id from post_entry pe
join post_entry {alias} on {alias}.{column} = pe.post_hash
where {alias}.timestamp > NOW() - {WINDOW}
and pe.timestamp > NOW() - {WINDOW}
group by pe.poster_public_key"""
    return _constituent(name, body, ("post_entry",), timedelta(minutes=15))


likes = _post_interaction(
    "statistic_social_leaderboard_likes",
    LIKE,
    f"{LIKE.text('IsUnlike', 't')} = 'false'",
    timedelta(minutes=30),
)
reactions = _post_interaction(
    "statistic_social_leaderboard_reactions",
    POST_ASSOCIATION,
    f"{POST_ASSOCIATION.text('AssociationType', 't')} = 'REACTION'",
    timedelta(minutes=15),
)
diamonds = _post_interaction(
    "statistic_social_leaderboard_diamonds",
    DIAMOND,
    None,
    timedelta(minutes=15),
)
reposts = _post_reference("statistic_social_leaderboard_reposts", "reposted_post_hash", "per")
comments = _post_reference("statistic_social_leaderboard_comments", "parent_post_hash", "pec")

CONSTITUENTS = (likes, reactions, diamonds, reposts, comments)

_interactions = "\n\n        UNION ALL\n\n".join(
    f"        select count, poster_public_key from {view.name}" for view in CONSTITUENTS
).lstrip()

social_leaderboard = DerivedView(
    name="statistic_social_leaderboard",
    group=GROUP,
    depends_on=(*(view.name for view in CONSTITUENTS), "profile_entry"),
    comment=SmartComment.of(Name("socialLeaderboardStat")),
    body=f"""\
select social_leaderboard.count, pe.*, row_number() OVER () AS id from (
    select sum(social_interactions.count) as count, social_interactions.poster_public_key from (
        {_interactions}
    ) as social_interactions
    group by poster_public_key
    order by sum(count) desc
    limit {LEADERBOARD_SIZE}
) as social_leaderboard
join profile_entry pe
on social_leaderboard.poster_public_key = pe.public_key
order by social_leaderboard.count desc""",
    unique_key=("public_key",),
    refresh_cost=RefreshCost.LIGHT,
    refresh_interval=timedelta(minutes=1),
)

_nft_volume = f"sum(COALESCE(CAST({ACCEPT_NFT_BID.text('BidAmountNanos')} AS BIGINT), 0))"

nft_leaderboard = DerivedView(
    name="statistic_nft_leaderboard",
    group=GROUP,
    depends_on=(ACCEPT_NFT_BID.partition, "nft_entry", "profile_entry"),
    comment=SmartComment.of(Name("nftLeaderboardStat")),
    body=f"""\
select {_nft_volume}, t.public_key, pe.username, row_number() OVER () AS id from {ACCEPT_NFT_BID.partition} t
join nft_entry ne
    on {ACCEPT_NFT_BID.text('NFTPostHashHex')} = ne.nft_post_hash
    and {ACCEPT_NFT_BID.text('SerialNumber')} = text(ne.serial_number)
left join profile_entry pe on t.public_key = pe.public_key
where t.timestamp > NOW() - {WINDOW}
group by t.public_key, pe.username
order by {_nft_volume} desc
limit {LEADERBOARD_SIZE}""",
    unique_key=("public_key", "username"),
    refresh_cost=RefreshCost.MEDIUM,
    refresh_interval=timedelta(minutes=1),
)

_buying_key = DAO_COIN_LIMIT_ORDER.text("BuyingDAOCoinCreatorPublicKey", "t")
_defi_score = f"{orderbook.BUY_LIMIT_FILLED} +\n{orderbook.market_filled('coin_quantity_in_base_units_sold')}"

defi_leaderboard = DerivedView(
    name="statistic_defi_leaderboard",
    group=GROUP,
    depends_on=(*orderbook.ORDER_DEPENDENCIES, "profile_entry"),
    comment=SmartComment.of(Name("defiLeaderboardStat")),
    body=f"""\
WITH {orderbook.market_orders_cte('CoinQuantityInBaseUnitsSold')},
{orderbook.CANCELLED_ORDERS_CTE}
select {_buying_key} as buying_public_key, pe.username, pe.public_key, pe.pkid,
{_defi_score} as net_quantity
{orderbook.ORDER_JOINS}
join profile_entry pe
on {_buying_key} = pe.public_key
where {orderbook.PRICED_ORDER_FILTER}
  and {DAO_COIN_LIMIT_ORDER.text('SellingDAOCoinCreatorPublicKey')} = '{orderbook.BASE_COIN_PUBLIC_KEY}'
  and t.timestamp > NOW() - {WINDOW}
group by {_buying_key}, pe.username, pe.public_key, pe.pkid
order by {_defi_score} desc
limit {LEADERBOARD_SIZE}""",
    unique_key=("buying_public_key",),
    refresh_cost=RefreshCost.HEAVY,
    refresh_interval=timedelta(minutes=30),
)

OBJECTS = (*CONSTITUENTS, social_leaderboard, nft_leaderboard, defi_leaderboard)
