"""Transaction kinds and the partitions of the transaction table.

Upstream stores each transaction kind in its own partition
``transaction_partition_NN``. Counters over kinds read the planner's row
estimate for each partition through ``get_transaction_count``.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import IntEnum

MIN_TRANSACTION_TYPE = 1
MAX_TRANSACTION_TYPE = 33


class InvalidTransactionTypeError(ValueError):
    """Raised for a transaction type outside the partitioned range."""


class TransactionType(IntEnum):
    """Transaction kinds that own a partition of ``transaction``."""

    BLOCK_REWARD = 1
    BASIC_TRANSFER = 2
    BITCOIN_EXCHANGE = 3
    PRIVATE_MESSAGE = 4
    SUBMIT_POST = 5
    UPDATE_PROFILE = 6
    UPDATE_BITCOIN_USD_EXCHANGE_RATE = 8
    FOLLOW = 9
    LIKE = 10
    CREATOR_COIN = 11
    SWAP_IDENTITY = 12
    UPDATE_GLOBAL_PARAMS = 13
    CREATOR_COIN_TRANSFER = 14
    CREATE_NFT = 15
    UPDATE_NFT = 16
    ACCEPT_NFT_BID = 17
    NFT_BID = 18
    NFT_TRANSFER = 19
    ACCEPT_NFT_TRANSFER = 20
    BURN_NFT = 21
    AUTHORIZE_DERIVED_KEY = 22
    MESSAGING_GROUP = 23
    DAO_COIN = 24
    DAO_COIN_TRANSFER = 25
    DAO_COIN_LIMIT_ORDER = 26
    CREATE_USER_ASSOCIATION = 27
    DELETE_USER_ASSOCIATION = 28
    CREATE_POST_ASSOCIATION = 29
    DELETE_POST_ASSOCIATION = 30
    ACCESS_GROUP = 31
    ACCESS_GROUP_MEMBERS = 32
    NEW_MESSAGE = 33


CREATOR_COIN_TYPES = (TransactionType.CREATOR_COIN, TransactionType.CREATOR_COIN_TRANSFER)
NFT_TYPES = tuple(TransactionType(t) for t in range(15, 22))
DEX_TYPES = (
    TransactionType.DAO_COIN,
    TransactionType.DAO_COIN_TRANSFER,
    TransactionType.DAO_COIN_LIMIT_ORDER,
)
SOCIAL_TYPES = (
    TransactionType.PRIVATE_MESSAGE,
    TransactionType.SUBMIT_POST,
    TransactionType.UPDATE_PROFILE,
    TransactionType.FOLLOW,
    TransactionType.LIKE,
    TransactionType.MESSAGING_GROUP,
    *(TransactionType(t) for t in range(27, 34)),
)


def validate_transaction_type(transaction_type: int) -> int:
    """Return ``transaction_type`` if it addresses a partition."""
    if not MIN_TRANSACTION_TYPE <= int(transaction_type) <= MAX_TRANSACTION_TYPE:
        raise InvalidTransactionTypeError(f"{transaction_type} is not a valid transaction type")
    return int(transaction_type)


def partition_name(transaction_type: int) -> str:
    """Name of the partition holding ``transaction_type``, e.g. ``transaction_partition_05``."""
    return f"transaction_partition_{validate_transaction_type(transaction_type):02d}"


def estimated_count_expression(transaction_types: Iterable[int]) -> str:
    """SQL sum of partition row estimates for the given kinds."""
    types = [validate_transaction_type(t) for t in transaction_types]
    if not types:
        raise InvalidTransactionTypeError("At least one transaction type is required")
    return " +\n       ".join(f"get_transaction_count({t})" for t in types)
