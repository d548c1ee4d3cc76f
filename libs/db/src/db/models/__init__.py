"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the rental ledger models used by ``property_ledger``.
"""

from .ledger import (
    Base,
    PlAdvancedRule,
    PlCategory,
    PlImport,
    PlProperty,
    PlStandardRule,
    PlTransaction,
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
