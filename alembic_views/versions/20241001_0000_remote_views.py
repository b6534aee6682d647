"""Publish the statistic views through postgres_fdw.

Revision ID: 20241001000000
Revises:
Create Date: 2024-10-01 00:00:00.000000+00:00
"""

from typing import Sequence, Union

from explorer_views.catalog import build_catalog
from explorer_views.migrations.steps import install_remote_layer, uninstall_remote_layer

revision: str = "20241001000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    install_remote_layer(build_catalog().published())


def downgrade() -> None:
    uninstall_remote_layer(build_catalog().published())
