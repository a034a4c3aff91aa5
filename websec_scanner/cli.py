"""
Typer-based CLI for running scans, listing rules, and explaining a rule.
"""

from __future__ import annotations

import json
from functools import partial
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from .config import ScannerConfig, load_config
from .errors import ScannerError
from .logging_utils import ScanLogger, VerbosityLevel
from .reporting.console import render_console
from .reporting.json_report import generate_json
from .reporting.markdown import generate_markdown
from .reporting.sarif import generate_sarif
from .reporting.text import render_text
from .rules.base import RuleSet
from .scanner import Scanner
from .settings import SeverityLevel
from .suppressions import load_suppressions, write_suppressions

app = typer.Typer(help="Web application security scanner CLI")
console = Console()
err_console = Console(stderr=True)

OUTPUT_FORMATS = ("text", "console", "json", "sarif", "markdown")


def _parse_severity(level: str) -> SeverityLevel:
    try:
        return SeverityLevel(level.lower())
    except ValueError as exc:
        raise typer.BadParameter(
            "Severity must be one of low, medium, high, critical."
        ) from exc


def _parse_verbosity(value: str) -> VerbosityLevel:
    try:
        return VerbosityLevel(value.lower())
    except ValueError as exc:
        raise typer.BadParameter(
            "Verbosity must be one of quiet, normal, verbose."
        ) from exc


def _abort(message: str) -> typer.Exit:
    err_console.print(f"[red]{escape(message)}[/red]")
    return typer.Exit(code=2)


def _load_config(path: Optional[Path]) -> ScannerConfig:
    if path is None:
        return ScannerConfig()
    try:
        return load_config(path)
    except (OSError, ValueError) as exc:
        raise _abort(f"Error loading config: {exc}") from exc


def _load_rule_set(config: ScannerConfig) -> RuleSet:
    try:
        return Scanner(config=config).load_rules()
    except ScannerError as exc:
        raise _abort(f"Error loading rules: {exc}") from exc


@app.command()
def scan(
    paths: List[Path] = typer.Argument(..., help="Files or directories to scan."),
    output_format: str = typer.Option(
        "console",
        "--output",
        "-o",
        help="Output format: text, console, json, sarif, markdown.",
    ),
    fail_on: Optional[str] = typer.Option(
        None,
        "--fail-on",
        help="Fail when findings reach this severity level (default: high).",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Path to scanner configuration file (YAML or JSON).",
    ),
    rule_files: Optional[List[Path]] = typer.Option(
        None,
        "--rules",
        help="Extra rule catalog (YAML or JSON). Repeatable.",
    ),
    suppressions: Optional[Path] = typer.Option(
        None,
        "--suppressions",
        help="Suppression file with path:line:rule-id entries.",
    ),
    write_baseline: Optional[Path] = typer.Option(
        None,
        "--write-baseline",
        help="Write a suppression file covering every finding of this run.",
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        min=1,
        help="Number of scan worker threads (default: CPU count).",
    ),
    fail_fast: bool = typer.Option(
        False,
        "--fail-fast",
        help="Abort the run on the first file that cannot be scanned.",
    ),
    show_suppressed: bool = typer.Option(
        False,
        "--show-suppressed",
        help="Include suppressed findings in the output.",
    ),
    verbosity: str = typer.Option(
        VerbosityLevel.QUIET.value,
        "--verbosity",
        "-v",
        help="Verbosity level: quiet (default), normal, verbose.",
        show_default=True,
    ),
) -> None:
    """Scan files and directories for web security issues."""
    if output_format not in OUTPUT_FORMATS:
        raise typer.BadParameter(f"Unsupported output format: {output_format}")
    verbosity_level = _parse_verbosity(verbosity)

    scanner_config = _load_config(config)
    threshold = _parse_severity(fail_on) if fail_on else scanner_config.fail_on
    if rule_files:
        scanner_config.rule_files.extend(rule_files)
    if workers is not None:
        scanner_config.workers = workers
    scanner_config.fail_fast = scanner_config.fail_fast or fail_fast

    suppression_set = None
    if suppressions is not None:
        try:
            suppression_set = load_suppressions(suppressions)
        except (OSError, ScannerError) as exc:
            raise _abort(f"Error loading suppressions: {exc}") from exc

    logger = ScanLogger(
        verbosity=verbosity_level,
        emit=partial(err_console.print, markup=False, highlight=False),
    )
    scanner = Scanner(config=scanner_config, logger=logger)
    result = scanner.run([str(path) for path in paths], suppressions=suppression_set)

    if result.report is None:
        raise _abort(f"Scan failed: {result.error}")
    report = result.report

    if output_format == "console":
        render_console(report, verbose=show_suppressed, console=console)
    elif output_format == "text":
        typer.echo(render_text(report, verbose=show_suppressed), nl=False)
    elif output_format == "json":
        typer.echo(generate_json(report, verbose=show_suppressed))
    elif output_format == "sarif":
        typer.echo(generate_sarif(report, verbose=show_suppressed))
    else:
        typer.echo(generate_markdown(report, verbose=show_suppressed))

    if write_baseline is not None:
        with open(write_baseline, "w", encoding="utf-8") as stream:
            write_suppressions(report.findings, stream)
        logger.info(f"Wrote baseline to {write_baseline}")

    code = result.exit_code(threshold)
    if code:
        raise typer.Exit(code=code)


@app.command("list-rules")
def list_rules(
    config: Optional[Path] = typer.Option(None, "--config"),
    rule_files: Optional[List[Path]] = typer.Option(None, "--rules"),
) -> None:
    """List all active rules and their metadata."""
    scanner_config = _load_config(config)
    if rule_files:
        scanner_config.rule_files.extend(rule_files)
    rules = _load_rule_set(scanner_config)
    payload = [
        {
            "rule_id": rule.rule_id,
            "title": rule.title,
            "category": rule.category.value,
            "severity": rule.severity.value,
            "matchers": [matcher.kind for matcher in rule.matchers],
        }
        for rule in rules
    ]
    typer.echo(json.dumps(payload, indent=2))


@app.command()
def explain(
    rule_id: str = typer.Argument(..., help="Rule id, e.g. xss-reflected."),
    config: Optional[Path] = typer.Option(None, "--config"),
    rule_files: Optional[List[Path]] = typer.Option(None, "--rules"),
) -> None:
    """Print what a rule detects and how to fix it."""
    scanner_config = _load_config(config)
    if rule_files:
        scanner_config.rule_files.extend(rule_files)
    rule = _load_rule_set(scanner_config).get(rule_id)
    if rule is None:
        raise _abort(f"Unknown rule id: {rule_id}")

    lines = [
        f"### {rule.rule_id} - {rule.title}",
        "",
        f"Category: {rule.category.value}",
        f"Severity: {rule.severity.value}",
    ]
    if rule.description:
        lines.extend(["", rule.description])
    lines.extend(["", "Remediation:", rule.remediation])
    if rule.references:
        lines.append("")
        lines.extend(f"- {reference}" for reference in rule.references)
    typer.echo("\n".join(lines))


def run() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    run()
