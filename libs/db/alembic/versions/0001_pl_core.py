# ruff: noqa: I001
"""Rental ledger core tables: properties, categories, transactions, rules, imports.

Revision ID: 0001_pl_core
Revises: None
Create Date: 2026-10-17
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_pl_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    op.create_table(
        "pl_properties",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("keywords", sa.JSON(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_pl_properties_user_id", "pl_properties", ["user_id"])

    op.create_table(
        "pl_categories",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("kind", sa.String(), nullable=False),
        sa.CheckConstraint("kind in ('income','expense')", name="ck_pl_category_kind"),
    )
    op.create_index("ix_pl_categories_user_id", "pl_categories", ["user_id"])

    op.create_table(
        "pl_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("description_clean", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("fingerprint", sa.String(16), nullable=False),
        sa.Column("source_file", sa.Text(), nullable=True),
        sa.Column(
            "property_id",
            sa.BigInteger(),
            sa.ForeignKey("pl_properties.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "category_id",
            sa.BigInteger(),
            sa.ForeignKey("pl_categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _created_at(),
        sa.UniqueConstraint("user_id", "fingerprint", name="uq_pl_tx_user_fingerprint"),
        sa.CheckConstraint("amount >= 0", name="ck_pl_tx_amount_non_negative"),
        sa.CheckConstraint("kind in ('income','expense')", name="ck_pl_tx_kind"),
        sa.CheckConstraint("status in ('pending','posted','excluded')", name="ck_pl_tx_status"),
    )
    # Supports date-ordered history scans per user (recurrence, export)
    op.create_index("ix_pl_tx_user_date", "pl_transactions", ["user_id", "date"])

    op.create_table(
        "pl_standard_rules",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("pattern", sa.Text(), nullable=False),
        sa.Column("match_type", sa.String(), nullable=False),
        sa.Column(
            "category_id",
            sa.BigInteger(),
            sa.ForeignKey("pl_categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "property_id",
            sa.BigInteger(),
            sa.ForeignKey("pl_properties.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("priority", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.CheckConstraint(
            "match_type in ('contains','starts_with','ends_with','exact','regex')",
            name="ck_pl_rule_match_type",
        ),
    )
    op.create_index("ix_pl_standard_rules_user_id", "pl_standard_rules", ["user_id"])

    op.create_table(
        "pl_advanced_rules",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("description_match", sa.Text(), nullable=False),
        sa.Column("match_type", sa.String(), nullable=False),
        sa.Column("provider_match", sa.Text(), nullable=True),
        sa.Column("date_logic", sa.JSON(), nullable=False),
        sa.Column(
            "property_id",
            sa.BigInteger(),
            sa.ForeignKey("pl_properties.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("priority", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.CheckConstraint(
            "match_type in ('contains','exact','regex')",
            name="ck_pl_adv_rule_match_type",
        ),
    )
    op.create_index("ix_pl_advanced_rules_user_id", "pl_advanced_rules", ["user_id"])

    op.create_table(
        "pl_imports",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("source_file", sa.Text(), nullable=False),
        sa.Column("imported", sa.Integer(), nullable=False),
        sa.Column("duplicates", sa.Integer(), nullable=False),
        sa.Column("errors", sa.Integer(), nullable=False),
        sa.Column("auto_categorized", sa.Integer(), nullable=False),
        sa.Column("advanced_rule_matches", sa.Integer(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_pl_imports_user_id", "pl_imports", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_pl_imports_user_id", table_name="pl_imports")
    op.drop_table("pl_imports")
    op.drop_index("ix_pl_advanced_rules_user_id", table_name="pl_advanced_rules")
    op.drop_table("pl_advanced_rules")
    op.drop_index("ix_pl_standard_rules_user_id", table_name="pl_standard_rules")
    op.drop_table("pl_standard_rules")
    op.drop_index("ix_pl_tx_user_date", table_name="pl_transactions")
    op.drop_table("pl_transactions")
    op.drop_index("ix_pl_categories_user_id", table_name="pl_categories")
    op.drop_table("pl_categories")
    op.drop_index("ix_pl_properties_user_id", table_name="pl_properties")
    op.drop_table("pl_properties")
