"""CLI for the ``cash_audit`` package.

Command handlers (``cmd_*``) are plain functions returning an exit code; the
Typer app below wraps them. Environment variables (notably
``OPENAI_API_KEY``) are loaded from a local ``.env`` with ``python-dotenv``
before any command runs. Errors are written to stderr as ``Error: ...`` and
the exit status is non-zero.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv

from .errors import ImportFailure, NoValidRecordsError
from .reporting import render_dashboard, render_worksheet, summarize
from .seed import seed_transactions
from .settings import load_settings
from .state import AuditSession

_LOG_HANDLER_NAME = "cash_audit.cli"
_LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Send ``cash_audit`` log records to stderr.

    ``level`` comes from ``--log-level``; without it ``CASH_AUDIT_LOG_LEVEL``
    is used, then ``WARNING``. Calling again replaces the handler installed
    by the previous call, so each invocation writes to the current stderr.
    """

    if level is not None:
        resolved = logging.getLevelName(level.strip().upper())
        if not isinstance(resolved, int):
            raise typer.BadParameter(f"unknown logging level {level!r}", param_hint="--log-level")
    else:
        resolved = logging.getLevelName(os.getenv("CASH_AUDIT_LOG_LEVEL", "").strip().upper())
        if not isinstance(resolved, int):
            resolved = logging.WARNING

    logger = logging.getLogger("cash_audit")
    for h in list(logger.handlers):
        if h.get_name() == _LOG_HANDLER_NAME:
            logger.removeHandler(h)
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_LOG_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(resolved)
    # Records stop here rather than also reaching a root handler.
    logger.propagate = False


def _import_into(audit: AuditSession, path: Path) -> int:
    """Import ``path`` into ``audit``; return 0 or print an error and return 1."""

    try:
        imported = audit.import_file(path)
    except FileNotFoundError:
        print(f"Error: File not found: {path}", file=sys.stderr)
        return 1
    except PermissionError:
        print(f"Error: Permission denied: {path}", file=sys.stderr)
        return 1
    except NoValidRecordsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ImportFailure as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Successfully imported {len(imported)} transactions.", file=sys.stderr)
    return 0


def cmd_review(
    file: Path | None,
    *,
    seed: bool = True,
    sync: bool = False,
    caat: bool = False,
) -> int:
    """One-shot session: seed, import, optionally sync and score, then print.

    Writes the dashboard followed by the vouching worksheet to stdout.
    """

    audit = AuditSession(seed_transactions() if seed else (), settings=load_settings())

    if file is not None:
        rc = _import_into(audit, file)
        if rc != 0:
            return rc
    if sync:
        tx = audit.sync_from_system()
        print(f"Synced {tx.id} ({tx.reference_no}) from system integration.", file=sys.stderr)
    if caat:
        results = audit.run_caat()
        if not results:
            print("Warning: risk analysis returned no results; nothing updated.", file=sys.stderr)

    print(render_dashboard(summarize(audit.transactions)))
    print()
    print(render_worksheet(audit.transactions))
    return 0


def cmd_caat(file: Path) -> int:
    """Import ``file`` and print one risk result per line.

    Format: ``<transaction_id>\\t<risk_level>\\t<risk_score>\\t<anomaly>\\t<reasoning>``
    in the order the results were returned.
    """

    audit = AuditSession(settings=load_settings())
    rc = _import_into(audit, file)
    if rc != 0:
        return rc

    results = audit.run_caat()
    if not results:
        print("Error: risk analysis returned no results.", file=sys.stderr)
        return 1
    for r in results:
        flag = "anomaly" if r.is_anomaly else "-"
        print(f"{r.transaction_id}\t{r.risk_level}\t{r.risk_score}\t{flag}\t{r.reasoning}")
    return 0


def cmd_shell(file: Path | None, *, seed: bool = True) -> int:
    from .term_ui import run_shell

    audit = AuditSession(seed_transactions() if seed else (), settings=load_settings())
    if file is not None:
        rc = _import_into(audit, file)
        if rc != 0:
            return rc
    run_shell(audit)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Digital Cash Audit System: import client ledgers (CSV/XLSX/XLS), score transaction "
        "risk (CAAT) and review the vouching worksheet. Loads OPENAI_API_KEY from a "
        "local .env; without it a deterministic local analysis is used."
    ),
)

FileOption = Annotated[
    Path | None,
    typer.Option("--file", "-f", help="Ledger to import (.csv, .xlsx or .xls).", dir_okay=False),
]
SeedOption = Annotated[
    bool, typer.Option("--seed/--no-seed", help="Start from the demo ledger.")
]


@app.command("review")
def review_cmd(
    file: FileOption = None,
    seed: SeedOption = True,
    sync: Annotated[
        bool, typer.Option("--sync", help="Simulate a sync from the accounting system.")
    ] = False,
    caat: Annotated[
        bool, typer.Option("--caat", help="Run risk analysis before printing.")
    ] = False,
) -> None:
    """Print the dashboard and vouching worksheet for a one-shot session."""

    raise typer.Exit(cmd_review(file, seed=seed, sync=sync, caat=caat))


@app.command("caat")
def caat_cmd(
    file: Annotated[
        Path,
        typer.Option("--file", "-f", help="Ledger to import and score.", dir_okay=False),
    ],
) -> None:
    """Import a ledger and print its risk analysis results."""

    raise typer.Exit(cmd_caat(file))


@app.command("shell")
def shell_cmd(file: FileOption = None, seed: SeedOption = True) -> None:
    """Start an interactive audit session."""

    raise typer.Exit(cmd_shell(file, seed=seed))


@app.callback()
def _root(
    log_level: Annotated[
        str | None,
        typer.Option(help="Logging level (falls back to CASH_AUDIT_LOG_LEVEL)."),
    ] = None,
) -> None:
    """Load ``.env`` from the current directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
