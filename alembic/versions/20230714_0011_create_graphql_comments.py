"""Annotate the statistic views for the GraphQL schema.

Revision ID: 20230714000011
Revises: 20230713000002
Create Date: 2023-07-14 00:00:11.000000+00:00
"""

from typing import Sequence, Union

from explorer_views.catalog import STATISTICS_GROUP, build_catalog
from explorer_views.migrations.steps import annotate_group, clear_annotations

revision: str = "20230714000011"
down_revision: Union[str, None] = "20230713000002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    annotate_group(build_catalog(), STATISTICS_GROUP, include_upstream=True)


def downgrade() -> None:
    clear_annotations(build_catalog(), STATISTICS_GROUP, include_upstream=True)
