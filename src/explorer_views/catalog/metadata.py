"""Typed projections of the schemaless transaction metadata documents.

Every transaction row carries two JSON documents: ``tx_index_metadata``
(indexer-derived fields) and ``txn_meta`` (the decoded transaction payload).
Each :class:`MetadataProjection` declares which keys a transaction kind is
allowed to expose, and renders the typed SQL accessors the aggregates use.
Asking for an undeclared key is a catalog bug and fails immediately.
"""

from __future__ import annotations

from dataclasses import dataclass

from explorer_views.catalog.partitions import TransactionType, partition_name


class UnknownMetadataKeyError(KeyError):
    """Raised when an aggregate reads a key its transaction kind does not declare."""


@dataclass(frozen=True)
class MetadataProjection:
    """Keys readable from one transaction kind's metadata documents."""

    txn_type: TransactionType
    index_keys: frozenset[str]
    meta_keys: frozenset[str] = frozenset()

    @property
    def partition(self) -> str:
        return partition_name(self.txn_type)

    def _index(self, key: str, alias: str | None) -> str:
        if key not in self.index_keys:
            raise UnknownMetadataKeyError(f"{self.txn_type.name} does not index {key!r}")
        prefix = f"{alias}." if alias else ""
        return f"{prefix}tx_index_metadata"

    def _meta(self, key: str, alias: str | None) -> str:
        if key not in self.meta_keys:
            raise UnknownMetadataKeyError(f"{self.txn_type.name} payload has no {key!r}")
        prefix = f"{alias}." if alias else ""
        return f"{prefix}txn_meta"

    def text(self, key: str, alias: str | None = None) -> str:
        return f"{self._index(key, alias)} ->> '{key}'"

    def json(self, key: str, alias: str | None = None) -> str:
        return f"{self._index(key, alias)} -> '{key}'"

    def bigint(self, key: str, alias: str | None = None) -> str:
        return f"({self.text(key, alias)})::BIGINT"

    def hex_numeric(self, key: str, alias: str | None = None) -> str:
        return f"hex_to_numeric({self.text(key, alias)})"

    def has(self, key: str, alias: str | None = None) -> str:
        return f"{self._index(key, alias)} ? '{key}'"

    def meta_text(self, key: str, alias: str | None = None) -> str:
        return f"{self._meta(key, alias)} ->> '{key}'"

    def meta_json(self, key: str, alias: str | None = None) -> str:
        return f"{self._meta(key, alias)} -> '{key}'"


DIAMOND = MetadataProjection(
    TransactionType.BASIC_TRANSFER,
    frozenset({"PostHashHex", "DiamondLevel"}),
)

LIKE = MetadataProjection(
    TransactionType.LIKE,
    frozenset({"PostHashHex", "IsUnlike"}),
)

POST_ASSOCIATION = MetadataProjection(
    TransactionType.CREATE_POST_ASSOCIATION,
    frozenset({"PostHashHex", "AssociationType", "AssociationValue"}),
)

CREATOR_COIN = MetadataProjection(
    TransactionType.CREATOR_COIN,
    frozenset({"OperationType", "DeSoToSellNanos", "DESOLockedNanosDiff"}),
    frozenset({"ProfilePublicKey"}),
)

ACCEPT_NFT_BID = MetadataProjection(
    TransactionType.ACCEPT_NFT_BID,
    frozenset({"NFTPostHashHex", "SerialNumber", "BidAmountNanos", "NFTRoyaltiesMetadata"}),
)

NFT_BID = MetadataProjection(
    TransactionType.NFT_BID,
    frozenset(
        {
            "NFTPostHashHex",
            "SerialNumber",
            "BidAmountNanos",
            "IsBuyNowBid",
            "OwnerPublicKeyBase58Check",
            "NFTRoyaltiesMetadata",
        }
    ),
)

DAO_COIN_LIMIT_ORDER = MetadataProjection(
    TransactionType.DAO_COIN_LIMIT_ORDER,
    frozenset(
        {
            "BuyingDAOCoinCreatorPublicKey",
            "SellingDAOCoinCreatorPublicKey",
            "ScaledExchangeRateCoinsToSellPerCoinToBuy",
            "QuantityToFillInBaseUnits",
            "FilledDAOCoinLimitOrdersMetadata",
        }
    ),
    frozenset({"CancelOrderID", "FillType"}),
)

# Keys of each element of FilledDAOCoinLimitOrdersMetadata.
FILLED_ORDER_KEYS = frozenset(
    {
        "BuyingDAOCoinCreatorPublicKey",
        "SellingDAOCoinCreatorPublicKey",
        "CoinQuantityInBaseUnitsSold",
        "CoinQuantityInBaseUnitsBought",
        "IsFulfilled",
    }
)

# Keys of NFTRoyaltiesMetadata on accepted bids and buy-now bids.
NFT_ROYALTY_KEYS = frozenset(
    {"CreatorPublicKeyBase58Check", "CreatorRoyaltyNanos", "AdditionalDESORoyaltiesMap"}
)

PROJECTIONS: dict[TransactionType, MetadataProjection] = {
    p.txn_type: p
    for p in (DIAMOND, LIKE, POST_ASSOCIATION, CREATOR_COIN, ACCEPT_NFT_BID, NFT_BID, DAO_COIN_LIMIT_ORDER)
}


def nested_text(document: str, key: str, allowed: frozenset[str]) -> str:
    """``document ->> key`` for a nested document whose keys are ``allowed``."""
    if key not in allowed:
        raise UnknownMetadataKeyError(f"Nested metadata has no {key!r}")
    return f"{document} ->> '{key}'"
