"""Upstream relations and functions the derived views read.

The ingestion system owns these objects; the catalog only validates that
every dependency it declares is either one of its own objects or listed here.
"""

from __future__ import annotations

from explorer_views.annotations import OMIT, SmartComment, comment_statement
from explorer_views.catalog.partitions import MAX_TRANSACTION_TYPE, MIN_TRANSACTION_TYPE, partition_name

BASE_TABLES: frozenset[str] = frozenset(
    {
        "account",
        "affected_public_key",
        "balance_entry",
        "block",
        "dao_coin_limit_order_entry",
        "deso_balance_entry",
        "diamond_entry",
        "epoch_entry",
        "follow_entry",
        "jailed_history_event",
        "leader_schedule_entry",
        "message_entry",
        "new_message_entry",
        "nft_bid_entry",
        "nft_entry",
        "post_entry",
        "profile_entry",
        "stake_entry",
        "stake_reward",
        "transaction",
        "transaction_partitioned",
        "validator_entry",
        # Catalog statistics read by the estimate-based counters.
        "pg_class",
        *(partition_name(t) for t in range(MIN_TRANSACTION_TYPE, MAX_TRANSACTION_TYPE + 1)),
    }
)

BASE_FUNCTIONS: frozenset[str] = frozenset(
    {"base64_to_base58", "hex_to_numeric", "int_to_bytea", "jsonb_to_bytea"}
)

# Upstream helpers hidden from the GraphQL schema alongside our own objects.
UPSTREAM_FUNCTION_COMMENTS: dict[str, SmartComment] = {
    "hex_to_numeric": OMIT,
    "int_to_bytea": OMIT,
    "jsonb_to_bytea": OMIT,
}


def is_base_object(name: str) -> bool:
    return name in BASE_TABLES or name in BASE_FUNCTIONS


def upstream_comment_statements(*, clear: bool = False) -> list[str]:
    """``COMMENT ON FUNCTION`` statements for the upstream helpers."""
    return [
        comment_statement("function", name, None if clear else comment)
        for name, comment in UPSTREAM_FUNCTION_COMMENTS.items()
    ]
