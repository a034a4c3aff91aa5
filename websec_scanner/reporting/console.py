from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..report import Report
from ..settings import RunStatus, SeverityLevel

_SEVERITY_STYLES = {
    SeverityLevel.CRITICAL: "bold red",
    SeverityLevel.HIGH: "red",
    SeverityLevel.MEDIUM: "yellow",
    SeverityLevel.LOW: "cyan",
}


def render_console(report: Report, verbose: bool = False, console: Optional[Console] = None) -> None:
    console = console or Console()
    table = Table(title="Web Security Scanner Findings")
    table.add_column("Severity", overflow="fold")
    table.add_column("Category", overflow="fold")
    table.add_column("Rule", overflow="fold")
    table.add_column("Location", overflow="fold")
    table.add_column("Message", overflow="fold")

    for finding in report.visible_findings(verbose):
        severity = finding.severity.value.upper()
        if finding.suppressed:
            severity = f"{severity} (suppressed)"
        table.add_row(
            f"[{_SEVERITY_STYLES[finding.severity]}]{severity}[/]",
            finding.category.value,
            escape(finding.rule_id),
            escape(finding.location),
            escape(finding.message),
        )

    if report.status is not RunStatus.SUCCESS:
        console.print(f"[yellow]Scan status: {report.status.value}[/yellow]")
        for failure in report.failures:
            console.print(f"[red]  failed: {escape(failure.file_path)}: {escape(failure.message)}[/red]")
        if report.skipped_files:
            console.print(f"[yellow]  skipped {len(report.skipped_files)} file(s)[/yellow]")

    if len(table.rows) == 0:
        console.print("[green]No findings detected.[/green]")
        return

    console.print(table)
    console.print(f"{report.summary.total} finding(s), {report.summary.suppressed} suppressed")
