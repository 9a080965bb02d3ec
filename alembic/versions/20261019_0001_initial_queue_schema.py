"""Initial queue, imported-file marker, and verification result schema."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "queue_items",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tax_id", sa.String(length=50), nullable=False),
        sa.Column("enqueue_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("retry_count", sa.Integer(), server_default="0", nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_queue_items_tax_id", "queue_items", ["tax_id"])
    op.create_index("ix_queue_items_enqueue_time", "queue_items", ["enqueue_time"])
    op.create_index("ix_queue_items_status", "queue_items", ["status"])

    op.create_table(
        "imported_files",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("path", sa.String(), nullable=False),
        sa.Column("imported_time", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_imported_files_path", "imported_files", ["path"])

    op.create_table(
        "people",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tax_id", sa.String(), nullable=False),
        sa.Column("check_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reference_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_alive", sa.Boolean(), nullable=True),
        sa.Column("full_response", sa.Text(), nullable=True),
        sa.Column("operation_id", sa.String(), nullable=True),
        sa.Column("status_description", sa.String(), nullable=True),
        sa.Column("death_date", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_people_tax_id", "people", ["tax_id"])


def downgrade() -> None:
    op.drop_index("ix_people_tax_id", table_name="people")
    op.drop_table("people")
    op.drop_index("ix_imported_files_path", table_name="imported_files")
    op.drop_table("imported_files")
    op.drop_index("ix_queue_items_status", table_name="queue_items")
    op.drop_index("ix_queue_items_enqueue_time", table_name="queue_items")
    op.drop_index("ix_queue_items_tax_id", table_name="queue_items")
    op.drop_table("queue_items")
