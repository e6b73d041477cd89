"""Initial change store schema."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "texts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("value", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_texts_value", "texts", ["value"], unique=False)

    op.create_table(
        "labels",
        sa.Column("item", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("revision", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("timestamp", sa.String(length=14), nullable=False),
        sa.Column("change_type", sa.String(length=16), nullable=False),
        sa.Column("language", sa.Integer(), autoincrement=False, nullable=False),
        sa.PrimaryKeyConstraint("item", "revision", "type", "change_type", "language"),
    )
    op.create_index("ix_labels_item", "labels", ["item"], unique=False)
    op.create_index("ix_labels_timestamp", "labels", ["timestamp"], unique=False)

    op.create_table(
        "statements",
        sa.Column("item", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("revision", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("property", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("timestamp", sa.String(length=14), nullable=False),
        sa.Column("change_type", sa.String(length=16), nullable=False),
        sa.PrimaryKeyConstraint("item", "revision", "property", "change_type"),
    )
    op.create_index("ix_statements_item", "statements", ["item"], unique=False)
    op.create_index("ix_statements_property", "statements", ["property"], unique=False)
    op.create_index("ix_statements_timestamp", "statements", ["timestamp"], unique=False)

    op.create_table(
        "creations",
        sa.Column("q", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("timestamp", sa.String(length=14), nullable=False),
        sa.PrimaryKeyConstraint("q"),
    )
    op.create_index("ix_creations_timestamp", "creations", ["timestamp"], unique=False)

    op.create_table(
        "deletions",
        sa.Column("q", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("timestamp", sa.String(length=14), nullable=False),
        sa.PrimaryKeyConstraint("q"),
    )
    op.create_index("ix_deletions_timestamp", "deletions", ["timestamp"], unique=False)

    op.create_table(
        "redirects",
        sa.Column("source", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("target", sa.Integer(), nullable=False),
        sa.Column("timestamp", sa.String(length=14), nullable=False),
        sa.PrimaryKeyConstraint("source"),
    )
    op.create_index("ix_redirects_target", "redirects", ["target"], unique=False)
    op.create_index("ix_redirects_timestamp", "redirects", ["timestamp"], unique=False)

    op.create_table(
        "meta",
        sa.Column("key", sa.String(length=64), nullable=False),
        sa.Column("value", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    op.drop_table("meta")
    op.drop_index("ix_redirects_timestamp", table_name="redirects")
    op.drop_index("ix_redirects_target", table_name="redirects")
    op.drop_table("redirects")
    op.drop_index("ix_deletions_timestamp", table_name="deletions")
    op.drop_table("deletions")
    op.drop_index("ix_creations_timestamp", table_name="creations")
    op.drop_table("creations")
    op.drop_index("ix_statements_timestamp", table_name="statements")
    op.drop_index("ix_statements_property", table_name="statements")
    op.drop_index("ix_statements_item", table_name="statements")
    op.drop_table("statements")
    op.drop_index("ix_labels_timestamp", table_name="labels")
    op.drop_index("ix_labels_item", table_name="labels")
    op.drop_table("labels")
    op.drop_index("ix_texts_value", table_name="texts")
    op.drop_table("texts")
