"""CLI for the ``property_ledger`` package.

Command handlers (``cmd_*``) hold the logic and return a process exit code;
the Typer commands below only parse options and delegate. Environment
variables (``DATABASE_URL``, ``PROPERTY_LEDGER_LOG_LEVEL``,
``PROPERTY_LEDGER_STRICT_DATES``) are loaded from a local ``.env`` using
``python-dotenv`` before any command runs.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from typer.models import OptionInfo

from .logging_setup import configure_logging
from .models import MatchType, StandardRule

_STRICT_ENV_VAR = "PROPERTY_LEDGER_STRICT_DATES"

console = Console()


# ---- Small module-level helpers ----------------------------------------------


def _env_flag(name: str) -> bool:
    value = os.getenv(name)
    return value is not None and value.strip().lower() in {"1", "true", "yes"}


def _read_statement(path: Path) -> str:
    # Some bank exports carry a UTF-8 BOM; undecodable bytes must not abort an import.
    return path.read_text(encoding="utf-8-sig", errors="replace")


# ---- Command handlers ----------------------------------------------------------


def cmd_import_statement(
    file_path: str,
    *,
    user_id: str,
    database_url: str | None = None,
    strict: bool | None = None,
) -> int:
    """Import one statement file and print its summary.

    ``strict`` defaults to the ``PROPERTY_LEDGER_STRICT_DATES`` env var. The
    batch is committed only when it was stored completely; a rejected batch
    returns exit status 1.
    """

    from db.client import session_scope

    from .errors import LedgerError
    from .persistence import SqlLedgerStore
    from .pipeline import ingest_statement

    if strict is None:
        strict = _env_flag(_STRICT_ENV_VAR)

    path = Path(file_path)
    try:
        text = _read_statement(path)
    except FileNotFoundError:
        print(f"Error: File not found: {file_path}", file=sys.stderr)
        return 1
    except PermissionError:
        print(f"Error: Permission denied: {file_path}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: Unexpected failure reading '{file_path}': {e}", file=sys.stderr)
        return 1

    try:
        with session_scope(database_url=database_url) as session:
            summary = ingest_statement(
                text,
                path.name,
                user_id=user_id,
                store=SqlLedgerStore(session),
                strict=strict,
                raise_on_persist_error=True,
            )
    except LedgerError as e:
        print(f"Error: import failed: {e}", file=sys.stderr)
        return 1
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"imported\t{summary.imported}")
    print(f"duplicates\t{summary.duplicates}")
    print(f"errors\t{summary.errors}")
    print(f"auto_categorized\t{summary.auto_categorized}")
    print(f"advanced_rule_matches\t{summary.advanced_rule_matches}")
    if summary.skipped and not strict:
        print(f"skipped\t{summary.skipped}")
    return 0


def cmd_recurring(*, user_id: str, database_url: str | None = None) -> int:
    """Print the user's recurring payments as a table."""

    from db.client import session_scope

    from .persistence import load_history
    from .recurrence import detect_recurring_for_history

    try:
        with session_scope(database_url=database_url) as session:
            history = load_history(session, user_id, include_excluded=False)
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    patterns = detect_recurring_for_history(history)
    if not patterns:
        console.print("No recurring payments found.")
        return 0

    table = Table(title=f"Recurring payments ({len(patterns)})")
    table.add_column("Vendor")
    table.add_column("Avg amount", justify="right")
    table.add_column("Every (days)", justify="right")
    table.add_column("Count", justify="right")
    table.add_column("Next expected")
    for p in patterns:
        table.add_row(
            p.vendor,
            f"{p.average_amount:.2f}",
            f"{p.average_interval_days:.1f}",
            str(p.occurrence_count),
            p.next_expected_date.isoformat(),
        )
    console.print(table)
    return 0


def cmd_export(out_path: str, *, user_id: str, database_url: str | None = None) -> int:
    """Write all of the user's transactions to ``out_path`` as CSV."""

    from db.client import session_scope

    from .export import write_transactions_csv
    from .persistence import SqlLedgerStore, load_history

    try:
        with session_scope(database_url=database_url) as session:
            store = SqlLedgerStore(session)
            history = load_history(session, user_id)
            category_names = {c.id: c.name for c in store.categories(user_id)}
            property_names = {p.id: p.name for p in store.properties(user_id)}
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        with open(out_path, "w", encoding="utf-8", newline="") as f:
            written = write_transactions_csv(
                history, f, category_names=category_names, property_names=property_names
            )
    except OSError as e:
        print(f"Error: could not write '{out_path}': {e}", file=sys.stderr)
        return 1

    print(f"exported\t{written}")
    return 0


def cmd_apply_rules(*, user_id: str, database_url: str | None = None) -> int:
    """Apply active standard rules to pending, uncategorized transactions."""

    from db.client import session_scope

    from .persistence import SqlLedgerStore, load_history, update_transactions
    from .rules import apply_rules_to_pending

    try:
        with session_scope(database_url=database_url) as session:
            store = SqlLedgerStore(session)
            updates = apply_rules_to_pending(
                load_history(session, user_id), store.standard_rules(user_id)
            )
            changed = update_transactions(session, user_id, updates)
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"updated\t{changed}")
    return 0


def cmd_preview_rule(
    pattern: str,
    *,
    user_id: str,
    match_type: MatchType = MatchType.CONTAINS,
    database_url: str | None = None,
) -> int:
    """Print how many stored transactions a prospective rule would match."""

    from db.client import session_scope

    from .persistence import load_history
    from .rules import count_rule_matches

    try:
        with session_scope(database_url=database_url) as session:
            history = load_history(session, user_id)
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    rule = StandardRule(pattern=pattern, match_type=match_type)
    print(f"matches\t{count_rule_matches(rule, (tx.description for tx in history))}")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import bank statements into the rental property ledger, classify them "
        "with rules and inspect recurring payments. Loads DATABASE_URL from a "
        "local .env before running."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
USER_ID_OPTION: OptionInfo = typer.Option(..., "--user-id", help="Owner of the ledger rows.")
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    "--database-url", help="Override DATABASE_URL (falls back to env var)."
)
FILE_OPTION: OptionInfo = typer.Option(
    ...,
    "--file",
    help="Path to a bank statement export (CSV or plain text).",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
)


@app.command("import-statement")
def import_statement_cmd(
    file_path: Annotated[Path, FILE_OPTION],
    user_id: Annotated[str, USER_ID_OPTION],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    strict: Annotated[
        bool,
        typer.Option(
            "--strict",
            envvar=_STRICT_ENV_VAR,
            help="Skip rows with unrecognized dates and count them as errors.",
        ),
    ] = False,
) -> None:
    """Import one statement file."""

    code = cmd_import_statement(
        str(file_path), user_id=user_id, database_url=database_url, strict=strict
    )
    raise typer.Exit(code)


@app.command("recurring")
def recurring_cmd(
    user_id: Annotated[str, USER_ID_OPTION],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Show recurring payments detected in the stored history."""

    raise typer.Exit(cmd_recurring(user_id=user_id, database_url=database_url))


@app.command("export")
def export_cmd(
    out_path: Annotated[Path, typer.Option(..., "--out", help="Destination CSV file.")],
    user_id: Annotated[str, USER_ID_OPTION],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Export stored transactions as CSV."""

    raise typer.Exit(cmd_export(str(out_path), user_id=user_id, database_url=database_url))


@app.command("apply-rules")
def apply_rules_cmd(
    user_id: Annotated[str, USER_ID_OPTION],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Categorize pending transactions with the current standard rules."""

    raise typer.Exit(cmd_apply_rules(user_id=user_id, database_url=database_url))


@app.command("preview-rule")
def preview_rule_cmd(
    pattern: Annotated[str, typer.Option(..., "--pattern", help="Rule pattern text.")],
    user_id: Annotated[str, USER_ID_OPTION],
    match_type: Annotated[
        MatchType, typer.Option("--match-type", help="How the pattern is compared.")
    ] = MatchType.CONTAINS,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Count stored transactions a standard rule would match."""

    raise typer.Exit(
        cmd_preview_rule(
            pattern, user_id=user_id, match_type=match_type, database_url=database_url
        )
    )


@app.callback()
def _root(
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Override PROPERTY_LEDGER_LOG_LEVEL."),
    ] = None,
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    app()
