"""Create startups table for discovery persistence.

Rows are upserted by normalized name, so the unique constraint doubles as the
lookup index for repository writes.
"""

from __future__ import annotations

import logging

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "4b9e1f3c7a20"
down_revision = None
branch_labels = None
depends_on = None

logger = logging.getLogger(__name__)

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def upgrade() -> None:
    op.create_table(
        "startups",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("normalized_name", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("website", sa.String(length=1024), nullable=True),
        sa.Column("funding_amount", sa.String(length=255), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("date_announced", sa.String(length=32), nullable=True),
        sa.Column("tags", JSON_TYPE, nullable=False),
        sa.Column("sources", JSON_TYPE, nullable=False),
        sa.Column("source_urls", JSON_TYPE, nullable=False),
        sa.Column("confidence_score", sa.Float(), nullable=False),
        sa.Column("relevance_score", sa.Float(), nullable=True),
        sa.Column("origin_source", sa.String(length=255), nullable=False),
        sa.Column("origin_url", sa.String(length=1024), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_startups"),
        sa.UniqueConstraint("normalized_name", name="uq_startups_normalized_name"),
    )
    op.create_index("ix_startups_origin_source", "startups", ["origin_source"], unique=False)
    logger.info("discovery.migration.applied", extra={"revision": revision})


def downgrade() -> None:
    op.drop_index("ix_startups_origin_source", table_name="startups")
    op.drop_table("startups")
