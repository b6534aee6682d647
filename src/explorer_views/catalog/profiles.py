"""Per-profile rollups: activity, earnings and trading breakdowns.

Leaves aggregate one source each and are hidden from the schema; the
composites left-join them onto ``account`` and coalesce missing sides to 0.
"""

from __future__ import annotations

from datetime import timedelta

from explorer_views.annotations import OMIT, ForeignKey, Name, Omit, SmartComment, Unique
from explorer_views.catalog import orderbook
from explorer_views.catalog.helpers import diamond_nanos_case
from explorer_views.catalog.metadata import (
    ACCEPT_NFT_BID,
    CREATOR_COIN,
    DAO_COIN_LIMIT_ORDER,
    NFT_BID,
    NFT_ROYALTY_KEYS,
    MetadataProjection,
    nested_text,
)
from explorer_views.catalog.models import DerivedView, RefreshCost

GROUP = "statistics"

_HALF_HOUR = timedelta(minutes=30)


def leaf(
    name: str,
    body: str,
    *,
    key: str = "public_key",
    depends_on: tuple[str, ...],
    interval: timedelta = _HALF_HOUR,
    cost: RefreshCost = RefreshCost.HEAVY,
    index_name: str | None = None,
) -> DerivedView:
    return DerivedView(
        name=name,
        group=GROUP,
        depends_on=depends_on,
        comment=OMIT,
        body=body,
        unique_key=(key,),
        unique_index_name=index_name or f"{name}_unique_idx",
        refresh_cost=cost,
        refresh_interval=interval,
    )


def _profile_composite_comment(graphql_name: str) -> SmartComment:
    return SmartComment.of(Name(graphql_name), Unique(("public_key",)), Omit("all"))


profile_transactions = DerivedView(
    name="statistic_profile_transactions",
    group=GROUP,
    depends_on=("transaction",),
    comment=SmartComment.of(
        Name("profileTransactionStat"),
        Unique(("public_key",)),
        ForeignKey(
            ("public_key",),
            "account",
            ("public_key",),
            foreign_field_name="transactionStats",
            field_name="account",
        ),
    ),
    body="""\
select public_key, count(*) as count, sum(fee_nanos) as total_fees,
       min(timestamp) as first_transaction_timestamp, max(timestamp) as latest_transaction_timestamp
from transaction
group by public_key""",
    unique_key=("public_key",),
    refresh_cost=RefreshCost.HEAVY,
    refresh_interval=timedelta(hours=1),
)

top_nft_owners = DerivedView(
    name="statistic_profile_top_nft_owners",
    group=GROUP,
    depends_on=("profile_entry", "post_entry", "nft_entry"),
    comment=SmartComment.of(Name("profileNftTopOwners")),
    body="""\
select creator_profile.public_key as creator_public_key, owner_profile.public_key, owner_profile.username,
       count(distinct post.post_hash)
from profile_entry creator_profile
join post_entry post on creator_profile.public_key = post.poster_public_key
join nft_entry ne on post.post_hash = ne.nft_post_hash
join profile_entry owner_profile on ne.owner_pkid = owner_profile.pkid
where post.is_nft = true
group by creator_profile.public_key, owner_profile.public_key, owner_profile.username
order by count(distinct post.post_hash) desc""",
    unique_key=("creator_public_key", "public_key", "username"),
    refresh_cost=RefreshCost.HEAVY,
    refresh_interval=_HALF_HOUR,
)

# Earnings leaves

_cc = CREATOR_COIN
_cc_profile = f"base64_to_base58({_cc.meta_text('ProfilePublicKey')})"

cc_royalties = leaf(
    "statistic_profile_cc_royalties",
    f"""\
select sum({_cc.bigint('DeSoToSellNanos')} - {_cc.bigint('DESOLockedNanosDiff')}) as total_cc_royalty_nanos,
       {_cc_profile} as public_key
from {_cc.partition}
where {_cc.has('DeSoToSellNanos')}
  and {_cc.has('DESOLockedNanosDiff')}
  and {_cc.has('OperationType')}
  and {_cc.text('OperationType')} = 'buy'
  and {_cc.bigint('DeSoToSellNanos')} > {_cc.bigint('DESOLockedNanosDiff')}
group by {_cc_profile}""",
    depends_on=(_cc.partition, "base64_to_base58"),
)

diamond_earnings = leaf(
    "statistic_profile_diamond_earnings",
    f"""\
select sum({diamond_nanos_case('diamond_level')}) as total_diamond_nanos,
       receiver_pkid
from diamond_entry
group by receiver_pkid""",
    key="receiver_pkid",
    depends_on=("diamond_entry",),
    cost=RefreshCost.MEDIUM,
)


def _royalty_earnings(name: str, projection: MetadataProjection, condition: str | None) -> DerivedView:
    """Creator and additional royalties paid out by one kind of NFT sale."""
    royalties = projection.json("NFTRoyaltiesMetadata")
    creator = nested_text(royalties, "CreatorPublicKeyBase58Check", NFT_ROYALTY_KEYS)
    creator_nanos = nested_text(royalties, "CreatorRoyaltyNanos", NFT_ROYALTY_KEYS)
    additional_map = f"{royalties} -> 'AdditionalDESORoyaltiesMap'"
    where = f"\n    where {condition}" if condition else ""
    body = f"""\
WITH CreatorRoyalties AS (
    SELECT {creator} AS public_key,
           COALESCE(SUM(({creator_nanos})::BIGINT), 0) AS creator_royalty
    FROM {projection.partition}{where}
    GROUP BY {creator}
),
AdditionalRoyalties AS (
    SELECT key AS public_key,
           COALESCE(SUM(value::BIGINT), 0) AS additional_royalty
    FROM {projection.partition},
         jsonb_each_text({additional_map}){where}
    GROUP BY key
)
SELECT COALESCE(cr.public_key, ar.public_key) AS public_key,
       COALESCE(cr.creator_royalty, 0) AS total_creator_royalty,
       COALESCE(ar.additional_royalty, 0) AS total_additional_royalty
FROM CreatorRoyalties cr
FULL OUTER JOIN AdditionalRoyalties ar ON cr.public_key = ar.public_key
ORDER BY public_key"""
    return leaf(name, body, depends_on=(projection.partition,))


_BUY_NOW = f"{NFT_BID.text('IsBuyNowBid')} = 'true'"

nft_bid_royalty_earnings = _royalty_earnings(
    "statistic_profile_nft_bid_royalty_earnings", ACCEPT_NFT_BID, None
)
nft_buy_now_royalty_earnings = _royalty_earnings(
    "statistic_profile_nft_buy_now_royalty_earnings", NFT_BID, _BUY_NOW
)

profile_earnings = DerivedView(
    name="statistic_profile_earnings",
    group=GROUP,
    depends_on=(
        "account",
        cc_royalties.name,
        nft_bid_royalty_earnings.name,
        nft_buy_now_royalty_earnings.name,
        diamond_earnings.name,
    ),
    comment=_profile_composite_comment("profileEarningsStats"),
    body=f"""\
select a.public_key, a.username,
       coalesce(cc.total_cc_royalty_nanos, 0) as total_cc_royalty_nanos,
       coalesce(d.total_diamond_nanos, 0) as total_diamond_nanos,
       coalesce(nftbid.total_additional_royalty, 0) + coalesce(nftbuy.total_additional_royalty, 0) +
       coalesce(nftbid.total_creator_royalty, 0) + coalesce(nftbuy.total_creator_royalty, 0) as total_nft_royalty_nanos,
       coalesce(nftbid.total_additional_royalty, 0) + coalesce(nftbuy.total_additional_royalty, 0) as total_nft_additional_royalty_nanos,
       coalesce(nftbid.total_creator_royalty, 0) + coalesce(nftbuy.total_creator_royalty, 0) as total_nft_creator_royalty_nanos
from account a
left join {cc_royalties.name} cc
on cc.public_key = a.public_key
left join {nft_bid_royalty_earnings.name} nftbid
on a.public_key = nftbid.public_key
left join {nft_buy_now_royalty_earnings.name} nftbuy
on a.public_key = nftbuy.public_key
left join {diamond_earnings.name} d
on d.receiver_pkid = a.pkid""",
    unique_key=("public_key",),
    unique_index_name="statistic_profile_earnings_unique_idx",
    refresh_cost=RefreshCost.HEAVY,
    refresh_interval=_HALF_HOUR,
)

# Trading breakdown leaves

_o = DAO_COIN_LIMIT_ORDER


def _token_orders(
    name: str,
    *,
    quantity_key: str,
    quantity_column: str,
    limit_filled: str,
    side_key: str,
) -> DerivedView:
    """Order statistics per trader for one side of the base coin market."""
    body = f"""\
WITH {orderbook.market_orders_cte(quantity_key)},
{orderbook.CANCELLED_ORDERS_CTE}
select t.public_key,
{limit_filled} as total_limit_order_nanos_filled,
{orderbook.market_filled(quantity_column)} as total_market_order_nanos_filled,
{orderbook.ORDER_STATUS_COUNTS}
{orderbook.ORDER_JOINS}
where {orderbook.PRICED_ORDER_FILTER}
  and {_o.text(side_key)} = '{orderbook.BASE_COIN_PUBLIC_KEY}'
group by t.public_key"""
    return leaf(name, body, depends_on=orderbook.ORDER_DEPENDENCIES)


deso_token_buy_orders = _token_orders(
    "statistic_profile_deso_token_buy_orders",
    quantity_key="CoinQuantityInBaseUnitsSold",
    quantity_column="coin_quantity_in_base_units_sold",
    limit_filled=orderbook.BUY_LIMIT_FILLED,
    side_key="SellingDAOCoinCreatorPublicKey",
)
deso_token_sell_orders = _token_orders(
    "statistic_profile_deso_token_sell_orders",
    quantity_key="CoinQuantityInBaseUnitsBought",
    quantity_column="coin_quantity_in_base_units_bought",
    limit_filled=orderbook.SELL_LIMIT_FILLED,
    side_key="BuyingDAOCoinCreatorPublicKey",
)


def _diamonds(name: str, direction: str, pkid_column: str, index_name: str | None = None) -> DerivedView:
    return leaf(
        name,
        f"""\
select sum({diamond_nanos_case('diamond_level')}) as total_diamonds_{direction}_nanos,
       sum(diamond_level) as diamonds_{direction}_count,
       {pkid_column}
from diamond_entry
group by {pkid_column}""",
        key=pkid_column,
        depends_on=("diamond_entry",),
        cost=RefreshCost.MEDIUM,
        index_name=index_name,
    )


diamonds_given = _diamonds(
    "statistic_profile_diamonds_given",
    "given",
    "sender_pkid",
    index_name="statistic_profile_statistic_profile_diamonds_given_unique_idx",
)
diamonds_received = _diamonds("statistic_profile_diamonds_received", "received", "receiver_pkid")

cc_buyers = leaf(
    "statistic_profile_cc_buyers",
    f"""\
select count(*) as buy_count,
       sum({_cc.bigint('DeSoToSellNanos')}) as total_buy_amount_nanos,
       {_cc_profile} as public_key
from {_cc.partition}
where {_cc.text('OperationType')} = 'buy'
group by {_cc_profile}""",
    depends_on=(_cc.partition, "base64_to_base58"),
    interval=timedelta(hours=3),
)

cc_sellers = leaf(
    "statistic_profile_cc_sellers",
    f"""\
select count(*) as sell_count,
       -1 * sum({_cc.bigint('DESOLockedNanosDiff')}) as total_sell_amount_nanos,
       {_cc_profile} as public_key
from {_cc.partition}
where {_cc.text('OperationType')} = 'sell'
group by {_cc_profile}""",
    depends_on=(_cc.partition, "base64_to_base58"),
    interval=timedelta(hours=3),
)

nft_bid_sales = leaf(
    "statistic_profile_nft_bid_sales",
    f"""\
select public_key,
       sum({ACCEPT_NFT_BID.bigint('BidAmountNanos')}) as total_nft_sales_amount_nanos,
       count(*) as total_nft_sales_count
from {ACCEPT_NFT_BID.partition}
group by public_key""",
    depends_on=(ACCEPT_NFT_BID.partition,),
)

_buy_now_owner = NFT_BID.text("OwnerPublicKeyBase58Check")

nft_buy_now_sales = leaf(
    "statistic_profile_nft_buy_now_sales",
    f"""\
select {_buy_now_owner} as public_key,
       sum({NFT_BID.bigint('BidAmountNanos')}) as total_nft_sales_amount_nanos,
       count(*) as total_nft_sales_count
from {NFT_BID.partition}
where {_BUY_NOW}
group by {_buy_now_owner}""",
    depends_on=(NFT_BID.partition,),
)

nft_bid_buys = leaf(
    "statistic_profile_nft_bid_buys",
    f"""\
select apk.public_key,
       sum({ACCEPT_NFT_BID.bigint('BidAmountNanos')}) as total_nft_buy_amount_nanos,
       count(*) as total_nft_buys_count
from {ACCEPT_NFT_BID.partition} txn
join affected_public_key apk
    on txn.transaction_hash = apk.transaction_hash
where apk.metadata = 'NFTBidderPublicKeyBase58Check'
group by apk.public_key""",
    depends_on=(ACCEPT_NFT_BID.partition, "affected_public_key"),
    interval=timedelta(hours=1),
)

nft_buy_now_buys = leaf(
    "statistic_profile_nft_buy_now_buys",
    f"""\
select public_key,
       sum({NFT_BID.bigint('BidAmountNanos')}) as total_nft_buy_amount_nanos,
       count(*) as total_nft_buys_count
from {NFT_BID.partition}
where {_BUY_NOW}
group by public_key""",
    depends_on=(NFT_BID.partition,),
)

BREAKDOWN_LEAVES = (
    diamonds_given,
    diamonds_received,
    cc_buyers,
    cc_sellers,
    nft_bid_buys,
    nft_bid_sales,
    nft_buy_now_buys,
    nft_buy_now_sales,
    deso_token_buy_orders,
    deso_token_sell_orders,
)

# nft_sell_amount_nanos adds the buy-now sales count, and the last column keeps
# its published spelling.
earnings_breakdown_counts = DerivedView(
    name="statistic_profile_earnings_breakdown_counts",
    group=GROUP,
    depends_on=("account", *(view.name for view in BREAKDOWN_LEAVES)),
    comment=_profile_composite_comment("profileEarningsBreakdownStats"),
    body=f"""\
select a.public_key, a.username, dg.diamonds_given_count, dr.diamonds_received_count,
       coalesce(ccb.buy_count, 0) as cc_buy_count, coalesce(ccb.total_buy_amount_nanos, 0) as cc_buy_amount_nanos,
       coalesce(ccs.sell_count, 0) as cc_sell_count, coalesce(ccs.total_sell_amount_nanos, 0) as cc_sell_amount_nanos,
       coalesce(nft_bid_buys.total_nft_buys_count, 0) + coalesce(nft_buy_now_buys.total_nft_buys_count, 0) as nft_buy_count,
       coalesce(nft_bid_buys.total_nft_buy_amount_nanos, 0) + coalesce(nft_buy_now_buys.total_nft_buy_amount_nanos, 0) as nft_buy_amount_nanos,
       coalesce(nft_bid_sales.total_nft_sales_count, 0) + coalesce(nft_buy_now_sales.total_nft_sales_count, 0) as nft_sell_count,
       coalesce(nft_bid_sales.total_nft_sales_amount_nanos, 0) + coalesce(nft_buy_now_sales.total_nft_sales_count, 0) as nft_sell_amount_nanos,
       coalesce(token_buys.total_filled_orders_count, 0) + coalesce(token_buys.partially_filled_orders_count, 0) as token_buy_trade_count,
       coalesce(token_buys.total_limit_order_nanos_filled, 0) + coalesce(token_buys.total_market_order_nanos_filled, 0) as token_buy_order_nanos_filled,
       coalesce(token_sells.total_filled_orders_count, 0) + coalesce(token_sells.partially_filled_orders_count, 0) as token_sell_trade_count,
       coalesce(token_sells.total_limit_order_nanos_filled, 0) + coalesce(token_sells.total_market_order_nanos_filled, 0) as token_sell_order_nanos_fillede
from account a
left join {diamonds_given.name} dg
on a.pkid = dg.sender_pkid
left join {diamonds_received.name} dr
on a.pkid = dr.receiver_pkid
left join {cc_buyers.name} ccb
on a.public_key = ccb.public_key
left join {cc_sellers.name} ccs
on a.public_key = ccs.public_key
left join {nft_bid_buys.name} nft_bid_buys
on a.public_key = nft_bid_buys.public_key
left join {nft_bid_sales.name} nft_bid_sales
on a.public_key = nft_bid_sales.public_key
left join {nft_buy_now_buys.name} nft_buy_now_buys
on a.public_key = nft_buy_now_buys.public_key
left join {nft_buy_now_sales.name} nft_buy_now_sales
on nft_buy_now_sales.public_key = a.public_key
left join {deso_token_buy_orders.name} token_buys
on a.public_key = token_buys.public_key
left join {deso_token_sell_orders.name} token_sells
on a.public_key = token_sells.public_key""",
    unique_key=("public_key",),
    unique_index_name="statistic_profile_earnings_breakdown_counts_unique_idx",
    refresh_cost=RefreshCost.HEAVY,
    refresh_interval=_HALF_HOUR,
)

EARNINGS_LEAVES = (cc_royalties, diamond_earnings, nft_bid_royalty_earnings, nft_buy_now_royalty_earnings)

OBJECTS = (
    profile_transactions,
    top_nft_owners,
    *EARNINGS_LEAVES,
    profile_earnings,
    *BREAKDOWN_LEAVES,
    earnings_breakdown_counts,
)
