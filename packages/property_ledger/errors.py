"""Exception hierarchy for ``property_ledger``.

Data-quality problems (unparseable rows, malformed rule patterns) never raise
out of the parsing and matching functions; they are skipped or treated as
non-matches. The exceptions below cover the remaining hard failures.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for errors raised by ``property_ledger``."""


class DateParseError(LedgerError, ValueError):
    """Raised by strict date parsing when the text is not a supported date."""

    def __init__(self, text: str) -> None:
        super().__init__(f"unrecognized date: {text!r}")
        self.text = text


class PersistenceError(LedgerError):
    """Raised when the storage collaborator rejects a batch."""


__all__ = ["DateParseError", "LedgerError", "PersistenceError"]
