"""Interactive audit shell (prompt_toolkit-based).

One shell run is one in-memory session: the transaction list lives in an
:class:`~cash_audit.state.AuditSession` and the working-paper state in a
:class:`~cash_audit.workflow.KKPWorkflow`. Command dispatch
(:func:`execute_command`) is kept separate from the prompt loop so it can be
tested without a terminal.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable
from enum import StrEnum

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter

from .errors import CashAuditError, ImportFailure, NoValidRecordsError
from .models import KKPStatus, UserRole
from .reporting import render_dashboard, render_worksheet, summarize
from .state import AuditSession
from .workflow import KKPWorkflow

SHELL_COMMANDS: tuple[str, ...] = (
    "import",
    "sync",
    "caat",
    "dashboard",
    "worksheet",
    "role",
    "kkp",
    "tasks",
    "chat",
    "help",
    "quit",
)

HELP_TEXT = """\
Commands:
  import <path>     Import a .csv/.xlsx/.xls ledger
  sync              Fetch from the accounting system (simulated)
  caat              Run risk analysis and merge the scores
  dashboard         Show cash position and risk KPIs
  worksheet         Show the vouching worksheet
  role [<role>]     Show or switch role (junior, senior, manager, partner)
  kkp [<status>]    Show or change KKP status (in-progress, finish, approved)
  tasks             List audit tasks
  chat [<message>]  Show the team chat or post a message
  help              Show this help
  quit              Leave the shell"""

_logger = logging.getLogger(__name__)


def _match_enum(enum_cls: type[StrEnum], text: str) -> StrEnum | None:
    key = text.strip().lower().replace("-", " ").replace("_", " ")
    if not key:
        return None
    for member in enum_cls:
        if key in (member.value.lower(), member.name.lower().replace("_", " ")):
            return member
    matches = [m for m in enum_cls if m.value.lower().startswith(key)]
    return matches[0] if len(matches) == 1 else None


def _cmd_import(args: list[str], audit: AuditSession, echo: Callable[[str], None]) -> None:
    if not args:
        echo("Usage: import <path>")
        return
    try:
        imported = audit.import_file(args[0])
    except NoValidRecordsError as e:
        echo(str(e))
        return
    except ImportFailure as e:
        echo(f"Error: {e}")
        return
    except OSError as e:
        echo(f"Error: cannot read {args[0]!r}: {e}")
        return
    echo(f"Successfully imported {len(imported)} transactions.")


def _cmd_kkp(args: list[str], workflow: KKPWorkflow, echo: Callable[[str], None]) -> None:
    if not args:
        allowed = ", ".join(str(s) for s in workflow.allowed_transitions()) or "none"
        echo(f"KKP status: {workflow.status} (role: {workflow.role}; allowed: {allowed})")
        return
    target = _match_enum(KKPStatus, " ".join(args))
    if target is None:
        echo(f"Unknown KKP status: {' '.join(args)!r}")
        return
    workflow.transition(target)
    echo(f"KKP status: {workflow.status}")


def _cmd_chat(args: list[str], workflow: KKPWorkflow, echo: Callable[[str], None]) -> None:
    if args:
        workflow.post_message(" ".join(args))
    for msg in workflow.messages:
        echo(f"[{msg.timestamp}] {msg.sender}: {msg.content}")


def execute_command(
    line: str,
    *,
    audit: AuditSession,
    workflow: KKPWorkflow,
    echo: Callable[[str], None] = print,
) -> bool:
    """Run one shell command line. Returns ``False`` when the shell should exit."""

    try:
        parts = shlex.split(line)
    except ValueError as e:
        echo(f"Error: {e}")
        return True
    if not parts:
        return True
    cmd, args = parts[0].lower(), parts[1:]

    try:
        if cmd in {"quit", "exit"}:
            return False
        if cmd == "help":
            echo(HELP_TEXT)
        elif cmd == "import":
            _cmd_import(args, audit, echo)
        elif cmd == "sync":
            echo("Syncing...")
            tx = audit.sync_from_system()
            echo(f"Data Import Successful from System Integration! ({tx.id} {tx.reference_no})")
        elif cmd == "caat":
            results = audit.run_caat()
            if results:
                echo(f"CAAT analysis updated {len(results)} transactions.")
            else:
                echo("CAAT analysis returned no results; no transactions were updated.")
        elif cmd == "dashboard":
            echo(render_dashboard(summarize(audit.transactions)))
        elif cmd == "worksheet":
            echo(render_worksheet(audit.transactions))
        elif cmd == "role":
            if args:
                role = _match_enum(UserRole, " ".join(args))
                if role is None:
                    echo(f"Unknown role: {' '.join(args)!r}")
                    return True
                workflow.switch_role(role)
            echo(f"Role: {workflow.role}")
        elif cmd == "kkp":
            _cmd_kkp(args, workflow, echo)
        elif cmd == "tasks":
            for task in workflow.tasks:
                echo(f"[{task.status}] {task.title} ({task.assignee}, due {task.due_date})")
        elif cmd == "chat":
            _cmd_chat(args, workflow, echo)
        else:
            echo(f"Unknown command: {cmd!r}. Type 'help' for commands.")
    except CashAuditError as e:
        echo(f"Error: {e}")
    return True


def run_shell(
    audit: AuditSession,
    workflow: KKPWorkflow | None = None,
    *,
    session: PromptSession | None = None,
    echo: Callable[[str], None] = print,
    message: str = "dcas> ",
) -> None:
    """Read commands until ``quit``, EOF or Ctrl+C."""

    workflow = workflow or KKPWorkflow()
    completer = WordCompleter(list(SHELL_COMMANDS), ignore_case=True, sentence=True)
    if session is None:
        sess: PromptSession = PromptSession(completer=completer)
    else:
        sess = PromptSession(
            input=getattr(session, "input", None),
            output=getattr(session, "output", None),
            completer=completer,
        )

    echo("Digital Cash Audit System. Type 'help' for commands.")
    while True:
        try:
            line = sess.prompt(message)
        except (EOFError, KeyboardInterrupt):
            break
        if not execute_command(line, audit=audit, workflow=workflow, echo=echo):
            break
    _logger.info("shell:exit transactions=%d", len(audit.transactions))


__all__ = ["HELP_TEXT", "SHELL_COMMANDS", "execute_command", "run_shell"]
