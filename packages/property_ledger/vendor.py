"""Vendor label normalization for raw bank descriptions.

Statement descriptions carry noise that differs between occurrences of the
same payee: reference numbers, embedded dates, masked card digits and bank
jargon. ``normalize_vendor`` strips that noise and title-cases the rest so the
label can be shown to users and used as a grouping key for recurrence
detection.
"""

from __future__ import annotations

import re

# Applied in order; each pattern is replaced with the empty string.
_NOISE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b\d{6,}\b"),  # account / reference numbers
    re.compile(r"\b\d{2}/\d{2}/\d{2,4}\b"),  # DD/MM/YY[YY]
    re.compile(r"\bREF[:\s]*\S+", re.IGNORECASE),
    re.compile(r"\b[A-Z]{2}\d{10,}\b"),  # IBAN-like codes
    re.compile(r"\bDD\b", re.IGNORECASE),
    re.compile(r"\bFT\b", re.IGNORECASE),
    re.compile(r"\bBGC\b", re.IGNORECASE),
    re.compile(r"\*{3,}\d+\b"),  # masked card, e.g. ****1234
    re.compile(r"\*{2,}"),
)
_MULTI_SPACE_RE = re.compile(r"\s{2,}")


def _title_word(word: str) -> str:
    return word[:1].upper() + word[1:]


def normalize_vendor(description: str) -> str:
    """Return a human-readable vendor label for ``description``.

    Never returns an empty string for a non-empty description: when every
    token is noise, the original description is returned unchanged.

    >>> normalize_vendor("PAYMENT REF:AB123456 ****1234")
    'Payment'
    """

    cleaned = description
    for pattern in _NOISE_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    cleaned = _MULTI_SPACE_RE.sub(" ", cleaned).strip()

    label = " ".join(_title_word(w) for w in cleaned.lower().split(" ") if w)
    return label or description


__all__ = ["normalize_vendor"]
