"""Portfolio valuation per account."""

from __future__ import annotations

from datetime import timedelta

from explorer_views.annotations import OMIT, Name, Omit, SmartComment, Unique
from explorer_views.catalog import orderbook
from explorer_views.catalog.models import DerivedView, RefreshCost

GROUP = "statistics"

_HALF_HOUR = timedelta(minutes=30)


def _holding_total(name: str, body: str, key: str, depends_on: tuple[str, ...]) -> DerivedView:
    return DerivedView(
        name=name,
        group=GROUP,
        depends_on=depends_on,
        comment=OMIT,
        body=body,
        unique_key=(key,),
        refresh_cost=RefreshCost.HEAVY,
        refresh_interval=_HALF_HOUR,
    )


# Only balances the bonding curve can price: 0 < balance <= supply, locked > 0.
cc_balance_totals = _holding_total(
    "statistic_cc_balance_totals",
    """\
select be.hodler_pkid,
       coalesce(sum(cc_nanos_total_sell_value(be.balance_nanos, cpe.deso_locked_nanos, cpe.cc_coins_in_circulation_nanos)), 0) as cc_value_nanos
from balance_entry be
join profile_entry cpe
on cpe.pkid = be.creator_pkid
and be.is_dao_coin = false
and be.balance_nanos > 0
and be.balance_nanos <= cpe.cc_coins_in_circulation_nanos
and cpe.cc_coins_in_circulation_nanos > 0
and cpe.deso_locked_nanos > 0
group by be.hodler_pkid""",
    "hodler_pkid",
    ("balance_entry", "profile_entry", "cc_nanos_total_sell_value"),
)

# An NFT is worth its best open bid, else the average of its last sales.
nft_balance_totals = _holding_total(
    "statistic_nft_balance_totals",
    """\
select owner_pkid, coalesce(sum(nft_value_nanos), 0) as nft_value_nanos from (
    select ne.owner_pkid, coalesce(max(nbe.bid_amount_nanos), avg(ne.last_accepted_bid_amount_nanos)) as nft_value_nanos
    from nft_entry ne
    left join nft_bid_entry nbe on ne.serial_number = nbe.serial_number and ne.nft_post_hash = nbe.nft_post_hash
    where ne.is_pending = false
    group by ne.owner_pkid, ne.nft_post_hash
) as nft_values
group by owner_pkid""",
    "owner_pkid",
    ("nft_entry", "nft_bid_entry"),
)

deso_token_balance_totals = _holding_total(
    "statistic_deso_token_balance_totals",
    f"""\
select be.hodler_pkid, coalesce(sum(be.balance_nanos * bid_asks.market_price / 1e9), 0) as token_value_nanos
from balance_entry be
join {orderbook.bid_asks.name} bid_asks
on be.creator_pkid = bid_asks.selling_creator_pkid
and bid_asks.buying_creator_pkid = '{orderbook.BASE_COIN_PUBLIC_KEY}'
where be.is_dao_coin = true
group by be.hodler_pkid""",
    "hodler_pkid",
    ("balance_entry", orderbook.bid_asks.name),
)

portfolio_value = DerivedView(
    name="statistic_portfolio_value",
    group=GROUP,
    depends_on=(
        "account",
        "deso_balance_entry",
        cc_balance_totals.name,
        nft_balance_totals.name,
        deso_token_balance_totals.name,
    ),
    comment=SmartComment.of(Name("profilePortfolioValueStat"), Unique(("public_key",)), Omit("all")),
    body=f"""\
select coalesce(dbe.balance_nanos, 0) as deso_balance_value_nanos,
       coalesce(cc.cc_value_nanos, 0) as cc_value_nanos,
       coalesce(nft.nft_value_nanos, 0) as nft_value_nanos,
       coalesce(dt.token_value_nanos, 0) as token_value_nanos,
       a.public_key
from account a
left join deso_balance_entry dbe
    on dbe.public_key = a.public_key
left join {cc_balance_totals.name} cc
    on cc.hodler_pkid = a.pkid
left join {nft_balance_totals.name} nft
    on nft.owner_pkid = a.pkid
left join {deso_token_balance_totals.name} dt
    on dt.hodler_pkid = a.pkid""",
    unique_key=("public_key",),
    unique_index_name="statistic_portfolio_value_public_key_idx",
    refresh_cost=RefreshCost.HEAVY,
    refresh_interval=timedelta(hours=3),
)

OBJECTS = (cc_balance_totals, nft_balance_totals, deso_token_balance_totals, portfolio_value)
