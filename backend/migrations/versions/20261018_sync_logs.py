"""Channel sync logs

Revision ID: 20261018_sync_logs
Revises: 20261018_initial
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_sync_logs"
down_revision = "20261018_initial"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "sync_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("platform", sa.String(length=16), nullable=False),
        sa.Column("action", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("items_processed", sa.Integer(), nullable=False),
        sa.Column("items_failed", sa.Integer(), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "platform IN ('shopify', 'square', 'amazon')",
            name="ck_sync_logs_platform",
        ),
        sa.CheckConstraint(
            "action IN ('fetch', 'update', 'sync', 'error')",
            name="ck_sync_logs_action",
        ),
        sa.CheckConstraint(
            "status IN ('success', 'failed', 'partial')",
            name="ck_sync_logs_status",
        ),
        sa.CheckConstraint("items_processed >= 0", name="ck_sync_logs_processed_nonnegative"),
        sa.CheckConstraint("items_failed >= 0", name="ck_sync_logs_failed_nonnegative"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sync_logs_platform_created", "sync_logs", ["platform", "created_at"])


def downgrade():
    op.drop_index("ix_sync_logs_platform_created", table_name="sync_logs")
    op.drop_table("sync_logs")
