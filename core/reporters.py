"""
LeakProbe Report Generator
Builds the leak report and renders it to the console or JSON.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from core.controller import IdentifierController, ViewState
from core.leak_forcer import LeakForceSession
from core.pattern_matcher import IdentifierPatternMatcher
from shared.constants import GOOGLE_ID_TOOLTIP_TEXT, STATUS_MESSAGES
from shared.schemas.leak_report import ForcedSessionSummary, IdentifierMatch, LeakReport

logger = logging.getLogger(__name__)


def build_report(
    controller: IdentifierController,
    host_url: str,
    database_names: Iterable[str] = (),
    forced_session: Optional[LeakForceSession] = None,
) -> LeakReport:
    """Snapshot the controller state into a LeakReport"""
    names = list(database_names)
    matcher = controller.matcher or IdentifierPatternMatcher()

    matches = []
    for name in names:
        for rule, identifier in matcher.match_name(name):
            matches.append(IdentifierMatch(
                identifier=identifier,
                database=name,
                source=rule.source or rule.pattern,
            ))

    summary = None
    if forced_session is not None:
        summary = ForcedSessionSummary(**forced_session.to_dict())

    return LeakReport(
        host_url=host_url,
        identifiers=sorted(controller.identifiers),
        matches=matches,
        database_count=len(names),
        loading=controller.loading,
        forced_leak_failed=controller.forced_leak_failed,
        view_state=controller.view_state.value,
        forced_session=summary,
    )


def render_console(report: LeakReport, console: Optional[Console] = None) -> None:
    """Print the report the way the interactive view presents it"""
    console = console or Console()
    state = ViewState(report.view_state)

    if state == ViewState.LOADING:
        console.print(f"[cyan]{STATUS_MESSAGES['loading']}[/cyan]")
        return

    if state == ViewState.NOT_LOGGED_IN:
        console.print(f"[yellow][!]   {STATUS_MESSAGES['not_logged_in']}[/yellow]")
    elif state == ViewState.NOT_TESTED:
        console.print(f"[cyan]{STATUS_MESSAGES['not_tested']}[/cyan]")
    else:
        plural = "s" if len(report.identifiers) > 1 else ""
        console.print(f"[bold red]{STATUS_MESSAGES['identifiers_found'].format(plural=plural)}[/bold red]")

        table = Table(title="Leaked Identifiers")
        table.add_column("Identifier", style="bold")
        table.add_column("Source", style="cyan")
        table.add_column("Database", style="yellow")

        listed = set()
        for match in report.matches:
            table.add_row(match.identifier, match.source, match.database)
            listed.add(match.identifier)
        for identifier in report.identifiers:
            if identifier not in listed:
                table.add_row(identifier, "forced leak", "-")

        console.print(table)
        console.print(Panel(GOOGLE_ID_TOOLTIP_TEXT, title="What is this?", border_style="dim"))

    if report.forced_session is not None:
        session = report.forced_session
        elapsed = f"{session.elapsed_ms:.0f}ms" if session.elapsed_ms is not None else "n/a"
        console.print(
            f"[dim]Forced leak on {session.target}: {session.status} "
            f"({session.probes} probe(s), {elapsed}, popup opened: {session.session_opened})[/dim]"
        )


def write_json(report: LeakReport, output_path: Optional[str] = None) -> str:
    """Serialize the report; written to ``output_path`` when given"""
    payload = report.model_dump_json(indent=2)
    if output_path:
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(payload, encoding="utf-8")
        logger.info(f"JSON report written to {path}")
    return payload
