"""Initial schema: authors, library_items, library_item_authors, snapshot_entries

Revision ID: 0001
Revises: None
Create Date: 2026-10-19 00:00:00
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None


def _table_exists(name: str) -> bool:
    """Check whether a table already exists in the database."""
    conn = op.get_bind()
    result = conn.execute(
        sa.text("SELECT 1 FROM sqlite_master WHERE type='table' AND name=:n"),
        {"n": name},
    )
    return result.fetchone() is not None


def upgrade() -> None:
    # Guarded so the migration is safe against a DB already created by
    # SQLModel.metadata.create_all() in init_db().

    if not _table_exists("authors"):
        op.create_table(
            "authors",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_authors_name", "authors", ["name"], unique=True)

    if not _table_exists("library_items"):
        op.create_table(
            "library_items",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("title", sa.String(), nullable=False),
            sa.Column("item_type", sa.String(), nullable=False),
            sa.Column("description", sa.String(), nullable=False, server_default=""),
            sa.Column("path", sa.String(), nullable=False),
            sa.Column("hash", sa.String(), nullable=False),
            sa.Column("status", sa.String(), nullable=False, server_default="active"),
            sa.Column("deleted_at", sa.DateTime(), nullable=True),
            sa.Column("subjects", sa.JSON(), nullable=True),
            sa.Column("languages", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_library_items_path", "library_items", ["path"])
        op.create_index("ix_library_items_hash", "library_items", ["hash"])
        op.create_index("ix_library_items_status", "library_items", ["status"])

    if not _table_exists("library_item_authors"):
        op.create_table(
            "library_item_authors",
            sa.Column("item_id", sa.String(), sa.ForeignKey("library_items.id"), primary_key=True),
            sa.Column("author_id", sa.String(), sa.ForeignKey("authors.id"), primary_key=True),
        )

    if not _table_exists("snapshot_entries"):
        op.create_table(
            "snapshot_entries",
            sa.Column("path", sa.String(), primary_key=True),
            sa.Column("hash", sa.String(), nullable=False),
        )
        op.create_index("ix_snapshot_entries_hash", "snapshot_entries", ["hash"])


def downgrade() -> None:
    # Reverse FK order: links → items/authors → snapshot
    op.drop_table("library_item_authors")
    op.drop_table("library_items")
    op.drop_table("authors")
    op.drop_table("snapshot_entries")
