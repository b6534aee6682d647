"""Create the explorer statistic views.

Revision ID: 20230713000002
Revises:
Create Date: 2023-07-13 00:00:02.000000+00:00
"""

from typing import Sequence, Union

from explorer_views.catalog import STATISTICS_GROUP, build_catalog
from explorer_views.migrations.steps import install_group, uninstall_group

revision: str = "20230713000002"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    install_group(build_catalog(), STATISTICS_GROUP)


def downgrade() -> None:
    uninstall_group(build_catalog(), STATISTICS_GROUP)
