"""Index the latest profile transactions.

Revision ID: 20240917000000
Revises: 20240260000022
Create Date: 2024-09-17 00:00:00.000000+00:00
"""

from typing import Sequence, Union

from explorer_views.catalog import PROFILE_TRANSACTIONS_INDEX_GROUP, build_catalog
from explorer_views.migrations.steps import install_group, uninstall_group

revision: str = "20240917000000"
down_revision: Union[str, None] = "20240260000022"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    install_group(build_catalog(), PROFILE_TRANSACTIONS_INDEX_GROUP)


def downgrade() -> None:
    uninstall_group(build_catalog(), PROFILE_TRANSACTIONS_INDEX_GROUP)
