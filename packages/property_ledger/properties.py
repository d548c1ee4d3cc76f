"""Keyword-based property association.

Each property carries free-text keywords (street names, tenant surnames,
community names). A description is associated with the first property, in
input order, that has a keyword contained in it. Rules run afterwards and
take precedence over this association.
"""

from __future__ import annotations

from collections.abc import Sequence

from .models import AssignmentSource, ParsedTransaction, Property, RefId


def match_property(description: str, properties: Sequence[Property]) -> RefId | None:
    """Return the id of the first property with a keyword found in ``description``."""

    desc = description.lower()
    for prop in properties:
        if any(kw.lower() in desc for kw in prop.keywords):
            return prop.id
    return None


def assign_property(tx: ParsedTransaction, properties: Sequence[Property]) -> bool:
    """Set ``tx.property_id`` from keywords; return whether a property matched."""

    prop_id = match_property(tx.description, properties)
    if prop_id is None:
        return False
    tx.property_id = prop_id
    tx.property_source = AssignmentSource.KEYWORD
    return True


__all__ = ["assign_property", "match_property"]
