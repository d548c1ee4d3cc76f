"""Description matching shared by standard and advanced rules.

All comparisons are case-insensitive. Regex patterns are compiled once and
cached; a malformed pattern compiles to ``None`` and simply never matches, so
one bad user-authored rule cannot abort an import.
"""

from __future__ import annotations

import re
from functools import lru_cache

from .logging_setup import get_logger
from .models import AdvancedMatchType, MatchType

logger = get_logger("property_ledger.matching")


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> re.Pattern[str] | None:
    """Compile ``pattern`` case-insensitively; ``None`` when it is malformed."""

    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        logger.warning("ignoring malformed rule pattern %r: %s", pattern, exc)
        return None


def text_matches(description: str, pattern: str, match_type: MatchType | AdvancedMatchType) -> bool:
    """Return whether ``description`` matches ``pattern`` under ``match_type``.

    ``description`` is compared in lower case against the lower-cased
    pattern; ``regex`` performs a case-insensitive search anywhere in the
    description.
    """

    desc = description.lower()
    needle = pattern.lower()
    match MatchType(match_type.value):
        case MatchType.CONTAINS:
            return needle in desc
        case MatchType.STARTS_WITH:
            return desc.startswith(needle)
        case MatchType.ENDS_WITH:
            return desc.endswith(needle)
        case MatchType.EXACT:
            return desc == needle
        case MatchType.REGEX:
            compiled = compile_pattern(pattern)
            return compiled is not None and compiled.search(desc) is not None


__all__ = ["compile_pattern", "text_matches"]
