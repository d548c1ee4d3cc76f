"""Statement file ingestion: layout detection and raw row extraction."""

from .detect import ColumnMap, detect_columns, looks_like_header, split_line
from .extract import (
    DEFAULT_DESCRIPTION,
    Extraction,
    SkippedLine,
    extract_statement,
    iter_rows,
    parse_raw_line,
)

__all__ = [
    "DEFAULT_DESCRIPTION",
    "ColumnMap",
    "Extraction",
    "SkippedLine",
    "detect_columns",
    "extract_statement",
    "iter_rows",
    "looks_like_header",
    "parse_raw_line",
    "split_line",
]
