"""Secondary indexes added to derived views after their creation."""

from __future__ import annotations

from explorer_views.catalog.models import SecondaryIndex
from explorer_views.catalog.profiles import profile_transactions

GROUP = "profile_transactions_idx"

# Serves "most recently active profiles" listings.
profile_transactions_latest_idx = SecondaryIndex(
    name="statistic_profile_transactions_latest_idx",
    group=GROUP,
    depends_on=(profile_transactions.name,),
    relation=profile_transactions.name,
    columns="latest_transaction_timestamp desc",
)

OBJECTS = (profile_transactions_latest_idx,)
