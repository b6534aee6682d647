"""Auxiliary table and SQL helper functions.

``public_key_first_transaction`` records the first block each public key
appeared in. It is loaded once on install and topped up afterwards by
``refresh_public_key_first_transaction()``, which only inserts keys whose
first appearance is newer than the current ``MAX(timestamp)`` watermark.
"""

from __future__ import annotations

from decimal import Decimal, localcontext
from textwrap import indent

from explorer_views.annotations import OMIT
from explorer_views.catalog.models import AuxiliaryTable, HelperFunction
from explorer_views.catalog.partitions import MAX_TRANSACTION_TYPE, MIN_TRANSACTION_TYPE

GROUP = "statistics"

FIRST_TRANSACTION_TABLE = "public_key_first_transaction"
TOP_UP_FUNCTION = "refresh_public_key_first_transaction"

CREATOR_COIN_RESERVE_RATIO = Decimal("0.3333333")
CREATOR_COIN_TRADE_FEE_BASIS_POINTS = 100

# SQLSTATE 22023, raised by get_transaction_count for types outside 1..33.
INVALID_TRANSACTION_TYPE_ERRCODE = "invalid_parameter_value"

# Nanos credited per diamond level. Levels outside 1..8 map to NULL.
DIAMOND_LEVEL_NANOS: dict[int, int] = {
    1: 50_000,
    2: 500_000,
    3: 5_000_000,
    4: 50_000_000,
    5: 500_000_000,
    6: 5_000_000_000,
    7: 50_000_000_000,
    8: 450_000_000_000,
}

_FIRST_APPEARANCE_SELECT = """\
SELECT apk.public_key, min(b.timestamp), min(b.height) FROM affected_public_key apk
JOIN transaction t ON apk.transaction_hash = t.transaction_hash
JOIN block b ON t.block_hash = b.block_hash"""


def diamond_nanos_case(level_column: str) -> str:
    """SQL ``CASE`` translating a diamond level column into nanos."""
    branches = "\n".join(
        f"    WHEN {level} THEN {nanos}" for level, nanos in sorted(DIAMOND_LEVEL_NANOS.items())
    )
    return f"CASE {level_column}\n{branches}\nEND"


def cc_nanos_total_sell_value(
    creator_coin_amount_nanos: Decimal | int,
    deso_locked_nanos: Decimal | int,
    coins_in_circulation_nanos: Decimal | int,
) -> Decimal:
    """DeSo received for selling ``creator_coin_amount_nanos`` on the bonding curve.

    Reference implementation of the SQL function of the same name, net of the
    trade fee. Nothing at runtime calls it; the tests check the installed
    function against it. Callers guarantee ``0 < amount <= supply`` and
    ``locked > 0``.
    """
    amount = Decimal(creator_coin_amount_nanos)
    locked = Decimal(deso_locked_nanos)
    supply = Decimal(coins_in_circulation_nanos)
    with localcontext() as ctx:
        ctx.prec = 40
        before_fees = locked * (1 - (1 - amount / supply) ** (1 / CREATOR_COIN_RESERVE_RATIO))
        return before_fees * (10000 - CREATOR_COIN_TRADE_FEE_BASIS_POINTS) / 10000


first_transaction_table = AuxiliaryTable(
    name=FIRST_TRANSACTION_TABLE,
    group=GROUP,
    depends_on=("affected_public_key", "transaction", "block"),
    comment=OMIT,
    ddl=(
        f"""CREATE TABLE {FIRST_TRANSACTION_TABLE} (
    public_key VARCHAR PRIMARY KEY,
    timestamp TIMESTAMP,
    height BIGINT
)""",
        f"CREATE INDEX idx_{FIRST_TRANSACTION_TABLE}_timestamp ON {FIRST_TRANSACTION_TABLE} (timestamp desc)",
        f"CREATE INDEX idx_{FIRST_TRANSACTION_TABLE}_height ON {FIRST_TRANSACTION_TABLE} (height desc)",
    ),
    initial_load=f"""INSERT INTO {FIRST_TRANSACTION_TABLE} (public_key, timestamp, height)
{_FIRST_APPEARANCE_SELECT}
GROUP BY apk.public_key""",
)

top_up_function = HelperFunction(
    name=TOP_UP_FUNCTION,
    group=GROUP,
    depends_on=(FIRST_TRANSACTION_TABLE, "affected_public_key", "transaction", "block"),
    comment=OMIT,
    definition=f"""CREATE OR REPLACE FUNCTION {TOP_UP_FUNCTION}()
RETURNS VOID AS $$
DECLARE
    max_timestamp TIMESTAMP;
BEGIN
    SELECT MAX(timestamp) INTO max_timestamp
    FROM {FIRST_TRANSACTION_TABLE};

    INSERT INTO {FIRST_TRANSACTION_TABLE} (public_key, timestamp, height)
{indent(_FIRST_APPEARANCE_SELECT, '    ')}
    WHERE b.timestamp > max_timestamp
    GROUP BY apk.public_key
    ON CONFLICT (public_key) DO NOTHING;
END;
$$ LANGUAGE plpgsql""",
)

transaction_count_function = HelperFunction(
    name="get_transaction_count",
    group=GROUP,
    depends_on=("pg_class",),
    comment=OMIT,
    definition=f"""CREATE OR REPLACE FUNCTION get_transaction_count(transaction_type integer)
RETURNS bigint AS
$BODY$
DECLARE
    count_value bigint;
    padded_transaction_type varchar;
BEGIN
    IF transaction_type < {MIN_TRANSACTION_TYPE} OR transaction_type > {MAX_TRANSACTION_TYPE} THEN
        RAISE EXCEPTION '% is not a valid transaction type', transaction_type
            USING ERRCODE = '{INVALID_TRANSACTION_TYPE_ERRCODE}';
    END IF;

    padded_transaction_type := LPAD(transaction_type::text, 2, '0');

    EXECUTE format('SELECT COALESCE(reltuples::bigint, 0) FROM pg_class WHERE relname = ''transaction_partition_%s''', padded_transaction_type) INTO count_value;
    RETURN count_value;
END;
$BODY$
LANGUAGE plpgsql""",
)

sell_value_function = HelperFunction(
    name="cc_nanos_total_sell_value",
    group=GROUP,
    comment=OMIT,
    definition=f"""CREATE OR REPLACE FUNCTION cc_nanos_total_sell_value(
    creator_coin_amount_nanos NUMERIC,
    deso_locked_nanos NUMERIC,
    coins_in_circulation_nanos NUMERIC
)
RETURNS NUMERIC AS $$
DECLARE
    reserve_ratio NUMERIC := {CREATOR_COIN_RESERVE_RATIO};
    trade_fee_basis_points NUMERIC := {CREATOR_COIN_TRADE_FEE_BASIS_POINTS};
    before_fees NUMERIC;
BEGIN
    before_fees := deso_locked_nanos * (1 - POW(1 - creator_coin_amount_nanos / coins_in_circulation_nanos, 1 / reserve_ratio));
    RETURN before_fees * (10000 - trade_fee_basis_points) / 10000;
END;
$$ LANGUAGE plpgsql IMMUTABLE""",
)

OBJECTS = (first_transaction_table, top_up_function, transaction_count_function, sell_value_function)
