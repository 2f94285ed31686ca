"""Document store table.

Revision ID: 0001_document_store
Revises:
Create Date: 2026-10-19

Every marketplace entity is one row: (collection, doc_id) -> JSON data,
with a version column used for compare-and-set writes.
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "0001_document_store"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "document",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("collection", sa.String(64), nullable=False),
        sa.Column("doc_id", sa.String(64), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("collection", "doc_id", name="uq_document_collection_doc_id"),
    )
    op.create_index("ix_document_collection", "document", ["collection"])


def downgrade() -> None:
    op.drop_index("ix_document_collection", table_name="document")
    op.drop_table("document")
