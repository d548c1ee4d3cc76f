from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
    true,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# SQLite only autoincrements INTEGER PRIMARY KEY (rowid) columns.
_PK = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: pl_properties
# ---------------------------


class PlProperty(Base):
    __tablename__ = "pl_properties"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    # Case-insensitive substrings matched against imported descriptions.
    keywords: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )


# ---------------------------
# Reference: pl_categories
# ---------------------------


class PlCategory(Base):
    __tablename__ = "pl_categories"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    # NULL user_id marks a default category shared by every user.
    user_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    kind: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        CheckConstraint("kind in ('income','expense')", name="ck_pl_category_kind"),
    )


# ---------------------------
# Core: pl_transactions
# ---------------------------


class PlTransaction(Base):
    __tablename__ = "pl_transactions"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    description_clean: Mapped[str] = mapped_column(Text, nullable=False)
    # Always a non-negative magnitude; direction lives in ``kind``.
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, server_default=text("'pending'")
    )
    fingerprint: Mapped[str] = mapped_column(String(16), nullable=False)
    source_file: Mapped[str | None] = mapped_column(Text, nullable=True)
    property_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("pl_properties.id", ondelete="SET NULL"), nullable=True
    )
    category_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("pl_categories.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        UniqueConstraint("user_id", "fingerprint", name="uq_pl_tx_user_fingerprint"),
        Index("ix_pl_tx_user_date", "user_id", "date"),
        CheckConstraint("amount >= 0", name="ck_pl_tx_amount_non_negative"),
        CheckConstraint("kind in ('income','expense')", name="ck_pl_tx_kind"),
        CheckConstraint(
            "status in ('pending','posted','excluded')", name="ck_pl_tx_status"
        ),
    )


# ---------------------------
# Rules
# ---------------------------


class PlStandardRule(Base):
    __tablename__ = "pl_standard_rules"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    pattern: Mapped[str] = mapped_column(Text, nullable=False)
    match_type: Mapped[str] = mapped_column(String, nullable=False)
    category_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("pl_categories.id", ondelete="SET NULL"), nullable=True
    )
    property_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("pl_properties.id", ondelete="SET NULL"), nullable=True
    )
    priority: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=true())

    __table_args__ = (
        CheckConstraint(
            "match_type in ('contains','starts_with','ends_with','exact','regex')",
            name="ck_pl_rule_match_type",
        ),
    )


class PlAdvancedRule(Base):
    __tablename__ = "pl_advanced_rules"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    description_match: Mapped[str] = mapped_column(Text, nullable=False)
    match_type: Mapped[str] = mapped_column(String, nullable=False)
    provider_match: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Tagged payload: {"type": "day_of_month_range", "start": 1, "end": 10}
    # or {"type": "ordinal_in_month", "position": 2}.
    date_logic: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    property_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("pl_properties.id", ondelete="SET NULL"), nullable=True
    )
    priority: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=true())

    __table_args__ = (
        CheckConstraint(
            "match_type in ('contains','exact','regex')",
            name="ck_pl_adv_rule_match_type",
        ),
    )


# ---------------------------
# Audit: pl_imports
# ---------------------------


class PlImport(Base):
    __tablename__ = "pl_imports"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    source_file: Mapped[str] = mapped_column(Text, nullable=False)
    imported: Mapped[int] = mapped_column(Integer, nullable=False)
    duplicates: Mapped[int] = mapped_column(Integer, nullable=False)
    errors: Mapped[int] = mapped_column(Integer, nullable=False)
    auto_categorized: Mapped[int] = mapped_column(Integer, nullable=False)
    advanced_rule_matches: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )


__all__ = [
    "Base",
    "PlAdvancedRule",
    "PlCategory",
    "PlImport",
    "PlProperty",
    "PlStandardRule",
    "PlTransaction",
]
