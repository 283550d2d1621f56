"""Allow one live linked row per master asset per job.

Revision ID: 0002_unique_live_master_links
Revises: 0001_baseline
Create Date: 2026-10-18

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0002_unique_live_master_links"
down_revision: Union[str, None] = "0001_baseline"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LIVE_LINKED_ROWS = "deleted_at IS NULL AND source_asset_id IS NOT NULL"


def upgrade() -> None:
    op.create_index(
        "uq_assets_job_source_live",
        "assets",
        ["job_id", "source_asset_id"],
        unique=True,
        postgresql_where=sa.text(LIVE_LINKED_ROWS),
        sqlite_where=sa.text(LIVE_LINKED_ROWS),
    )


def downgrade() -> None:
    op.drop_index("uq_assets_job_source_live", table_name="assets")
