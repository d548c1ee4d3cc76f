"""Logging for the ``property_ledger`` package.

Library modules obtain loggers through :func:`get_logger` and never attach
handlers themselves; output is switched on by :func:`configure_logging`,
which the CLI calls once per process. Import-time messages are tagged with the
owning user and statement file through :func:`import_logger`.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import MutableMapping
from typing import IO, Any

ROOT_LOGGER = "property_ledger"
LEVEL_ENV_VAR = "PROPERTY_LEDGER_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: logging.Handler | None = None


def resolve_level(level: int | str | None) -> int:
    """Turn ``level`` (or, when ``None``, the env var) into a numeric level.

    Unknown names resolve to ``logging.INFO``.
    """

    if level is None:
        level = os.getenv(LEVEL_ENV_VAR)
    if isinstance(level, int):
        return level
    if not level:
        return logging.INFO
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    mapped = logging.getLevelNamesMapping().get(name)
    return mapped if mapped is not None else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str = DEFAULT_FORMAT,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Send ``property_ledger`` log records to ``stream`` (stderr by default).

    Repeated calls only adjust the level of the already-installed handler, so
    the CLI callback can run more than once in a process (as it does under
    ``CliRunner``) without duplicating output.
    """

    global _handler
    logger = logging.getLogger(ROOT_LOGGER)
    resolved = resolve_level(level)

    if _handler is None:
        for h in [h for h in logger.handlers if isinstance(h, logging.NullHandler)]:
            logger.removeHandler(h)
        _handler = logging.StreamHandler(stream or sys.stderr)
        _handler.setFormatter(logging.Formatter(fmt))
        logger.addHandler(_handler)
        logger.propagate = False

    _handler.setLevel(resolved)
    logger.setLevel(resolved)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger; silent until :func:`configure_logging` runs."""

    root = logging.getLogger(ROOT_LOGGER)
    if _handler is None and not root.handlers:
        root.addHandler(logging.NullHandler())
    return logging.getLogger(name)


class ImportLogAdapter(logging.LoggerAdapter):
    """Prefix messages with ``[user/source_file]`` for one statement import."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = self.extra or {}
        return f"[{extra.get('user_id')}/{extra.get('source_file')}] {msg}", kwargs


def import_logger(logger: logging.Logger, *, user_id: str, source_file: str) -> ImportLogAdapter:
    return ImportLogAdapter(logger, {"user_id": user_id, "source_file": source_file})


__all__ = [
    "ImportLogAdapter",
    "configure_logging",
    "get_logger",
    "import_logger",
    "resolve_level",
]
