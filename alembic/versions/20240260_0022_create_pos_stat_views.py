"""Create the proof-of-stake summary views.

Revision ID: 20240260000022
Revises: 20230714000011
Create Date: 2024-02-29 00:00:22.000000+00:00
"""

from typing import Sequence, Union

from explorer_views.catalog import STAKING_GROUP, build_catalog
from explorer_views.migrations.steps import install_group, uninstall_group

revision: str = "20240260000022"
down_revision: Union[str, None] = "20230714000011"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    install_group(build_catalog(), STAKING_GROUP, annotate=True)


def downgrade() -> None:
    uninstall_group(build_catalog(), STAKING_GROUP)
