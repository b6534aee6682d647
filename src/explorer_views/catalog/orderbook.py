"""DAO coin order book: live bid/ask views and shared limit-order fragments.

Exchange rates are stored scaled by 1e38. Bids are reported per 1e29 and asks
are inverted and scaled by 1e47, so both sides land on the same unit and the
midpoint is a usable market price against the base coin.
"""

from __future__ import annotations

from explorer_views.annotations import OMIT, ForeignKey, Name, SmartComment, Unique
from explorer_views.catalog.metadata import DAO_COIN_LIMIT_ORDER, FILLED_ORDER_KEYS, nested_text
from explorer_views.catalog.models import DerivedView

GROUP = "statistics"

# Public key of the coin every DeSo token market is quoted against.
BASE_COIN_PUBLIC_KEY = "BC1YLbnP7rndL92x7DbLp6bkUpCgKmgoHgz7xEbwhgHTps3ZrXA6LtQ"

RATE_SCALE = "1e38"
BID_SCALE = "'100000000000000000000000000000'::numeric"
ASK_SCALE = "'100000000000000000000000000000000000000000000000'::numeric"

BID_OPERATION = 2
ASK_OPERATION = 1

ORDER_PARTITION = DAO_COIN_LIMIT_ORDER.partition

_o = DAO_COIN_LIMIT_ORDER
QUANTITY = _o.hex_numeric("QuantityToFillInBaseUnits")
RATE = _o.hex_numeric("ScaledExchangeRateCoinsToSellPerCoinToBuy")
RESIDUAL_QUANTITY = "coalesce(d.quantity_to_fill_in_base_units_numeric, 0)"
RESIDUAL_RATE = "coalesce(d.scaled_exchange_rate_coins_to_sell_per_coin_to_buy_numeric, 0)"


def market_orders_cte(quantity_key: str) -> str:
    """Fills of market orders, one row per filled counterparty order."""
    element = f"(jsonb_array_elements({_o.json('FilledDAOCoinLimitOrdersMetadata')}))"
    quantity_column = {
        "CoinQuantityInBaseUnitsSold": "coin_quantity_in_base_units_sold",
        "CoinQuantityInBaseUnitsBought": "coin_quantity_in_base_units_bought",
    }[quantity_key]
    return f"""\
market_orders as (
    select hex_to_numeric({nested_text(element, quantity_key, FILLED_ORDER_KEYS)}) AS {quantity_column},
           {nested_text(element, 'BuyingDAOCoinCreatorPublicKey', FILLED_ORDER_KEYS)} AS buying_dao_coin_creator_public_key,
           {nested_text(element, 'SellingDAOCoinCreatorPublicKey', FILLED_ORDER_KEYS)} AS selling_dao_coin_creator_public_key,
           {nested_text(element, 'IsFulfilled', FILLED_ORDER_KEYS)} AS is_fulfilled,
           transaction_hash
    from {ORDER_PARTITION}
)"""


CANCELLED_ORDERS_CTE = f"""\
cancelled_orders AS (
    select encode(jsonb_to_bytea({_o.meta_json('CancelOrderID')}), 'hex') as cancelled_order_txn_hash
    from {ORDER_PARTITION}
    where ({_o.meta_text('CancelOrderID')}) is not null
)"""

# Joins every limit order to its open residual, its market fills and its cancellation.
ORDER_JOINS = f"""\
from {ORDER_PARTITION} t
    left join dao_coin_limit_order_entry d
        on t.transaction_hash = d.order_id
    left join market_orders m
        on m.transaction_hash = t.transaction_hash
        and m.buying_dao_coin_creator_public_key = {_o.text('BuyingDAOCoinCreatorPublicKey', 't')}
        and m.selling_dao_coin_creator_public_key = {_o.text('SellingDAOCoinCreatorPublicKey', 't')}
        and m.is_fulfilled = 'true'
    left join cancelled_orders co
        on t.transaction_hash = co.cancelled_order_txn_hash"""

# Limit orders with both a quantity and a rate.
PRICED_ORDER_FILTER = (
    f"{_o.has('ScaledExchangeRateCoinsToSellPerCoinToBuy')}\n"
    f"  and {_o.has('QuantityToFillInBaseUnits')}"
)

# Filled notional of a buy order at its limit price; cancelled orders count zero.
BUY_LIMIT_FILLED = f"""\
sum(case
        when co.cancelled_order_txn_hash is not null then 0
        else ({QUANTITY} * ({RATE} / {RATE_SCALE})) -
             ({RESIDUAL_QUANTITY} * ({RESIDUAL_RATE} / {RATE_SCALE})) end)"""

SELL_LIMIT_FILLED = f"""\
sum(case
        when {RATE} = 0 or co.cancelled_order_txn_hash is not null then 0
        else ({QUANTITY} * (1 / {RATE} * {RATE_SCALE})) end -
    case
        when {RESIDUAL_RATE} = 0 then 0
        else {RESIDUAL_QUANTITY} * ((1 / {RESIDUAL_RATE}) * {RATE_SCALE}) end)"""


def market_filled(quantity_column: str) -> str:
    """Sum of market-order fills (``FillType = '2'``)."""
    return f"""\
sum(case
        when {_o.meta_text('FillType')} = '2' then m.{quantity_column}
        else 0 end)"""


ORDER_STATUS_COUNTS = f"""\
count(co.cancelled_order_txn_hash) as cancelled_orders,
sum(case
        when d.quantity_to_fill_in_base_units_hex = {_o.text('QuantityToFillInBaseUnits', 't')} or
             d.order_id is null then 0
        else 1 end) as partially_filled_orders_count,
sum(case
        when d.quantity_to_fill_in_base_units_hex = {_o.text('QuantityToFillInBaseUnits', 't')} and
             d.order_id is not null then 1
        else 0 end) as unfilled_orders_count,
count(d.order_id) as total_open_orders_count,
sum(case when d.order_id is null then 1 else 0 end) as total_filled_orders_count"""

ORDER_DEPENDENCIES = (ORDER_PARTITION, "dao_coin_limit_order_entry", "hex_to_numeric", "jsonb_to_bytea")


max_bids = DerivedView(
    name="dao_coin_limit_order_max_bids",
    group=GROUP,
    depends_on=("dao_coin_limit_order_entry",),
    comment=OMIT,
    materialized=False,
    body=f"""\
SELECT dcloe.buying_dao_coin_creator_pkid,
       dcloe.selling_dao_coin_creator_pkid,
       max(dcloe.scaled_exchange_rate_coins_to_sell_per_coin_to_buy_numeric) / {BID_SCALE} AS bid,
       sum(dcloe.scaled_exchange_rate_coins_to_sell_per_coin_to_buy_numeric / {BID_SCALE}) as sum_scaled_exchange_rate_coins_to_sell_per_coin_to_buy,
       sum(dcloe.quantity_to_fill_in_base_units_numeric) as sum_quantity_to_fill_in_base_units,
       count(*) as order_count
FROM dao_coin_limit_order_entry dcloe
WHERE dcloe.operation_type = {BID_OPERATION}
GROUP BY dcloe.buying_dao_coin_creator_pkid, dcloe.selling_dao_coin_creator_pkid""",
)

min_asks = DerivedView(
    name="dao_coin_limit_order_min_asks",
    group=GROUP,
    depends_on=("dao_coin_limit_order_entry",),
    comment=OMIT,
    materialized=False,
    body=f"""\
SELECT dcloe.selling_dao_coin_creator_pkid,
       dcloe.buying_dao_coin_creator_pkid,
       1::numeric / max(dcloe.scaled_exchange_rate_coins_to_sell_per_coin_to_buy_numeric) * {ASK_SCALE} AS ask,
       sum(1::numeric / dcloe.scaled_exchange_rate_coins_to_sell_per_coin_to_buy_numeric * {ASK_SCALE}) AS sum_scaled_exchange_rate_coins_to_sell_per_coin_to_buy,
       sum(dcloe.quantity_to_fill_in_base_units_numeric) AS sum_quantity_to_fill_in_base_units,
       count(*) AS order_count
FROM dao_coin_limit_order_entry dcloe
WHERE dcloe.operation_type = {ASK_OPERATION}
GROUP BY dcloe.selling_dao_coin_creator_pkid, dcloe.buying_dao_coin_creator_pkid""",
)

bid_asks = DerivedView(
    name="dao_coin_limit_order_bid_asks",
    group=GROUP,
    depends_on=(max_bids.name, min_asks.name),
    comment=SmartComment.of(
        Unique(("selling_creator_pkid", "buying_creator_pkid")),
        ForeignKey(
            ("selling_creator_pkid",),
            "account",
            ("pkid",),
            foreign_field_name="bidAskAsSellingToken",
            field_name="sellingTokenAccount",
        ),
        ForeignKey(
            ("buying_creator_pkid",),
            "account",
            ("pkid",),
            foreign_field_name="bidAskAsBuyingToken",
            field_name="buyingTokenAccount",
        ),
        Name("deso_token_limit_order_bid_asks"),
    ),
    materialized=False,
    body=f"""\
SELECT bids.bid,
       asks.ask,
       (bids.bid + asks.ask) / 2::numeric AS market_price,
       asks.selling_dao_coin_creator_pkid AS selling_creator_pkid,
       asks.buying_dao_coin_creator_pkid as buying_creator_pkid,
       bids.sum_scaled_exchange_rate_coins_to_sell_per_coin_to_buy as bid_sum_scaled_exchange_rate_coins_to_sell_per_coin_to_buy,
       bids.sum_quantity_to_fill_in_base_units as bid_sum_quantity_to_fill_in_base_units,
       bids.order_count as bid_order_count,
       asks.sum_scaled_exchange_rate_coins_to_sell_per_coin_to_buy as ask_sum_scaled_exchange_rate_coins_to_sell_per_coin_to_buy,
       asks.sum_quantity_to_fill_in_base_units as ask_sum_quantity_to_fill_in_base_units,
       asks.order_count as ask_order_count
FROM {max_bids.name} bids
JOIN {min_asks.name} asks
ON bids.buying_dao_coin_creator_pkid = asks.selling_dao_coin_creator_pkid
AND bids.selling_dao_coin_creator_pkid = asks.buying_dao_coin_creator_pkid""",
)

OBJECTS = (max_bids, min_asks, bid_asks)
