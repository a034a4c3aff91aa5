"""Plain-text report, one block per finding. Stable for diffs and CI logs."""

from __future__ import annotations

from typing import List

from ..report import Report


def render_text(report: Report, verbose: bool = False) -> str:
    lines: List[str] = [f"status: {report.status.value}"]
    for finding in report.visible_findings(verbose):
        marker = " [suppressed]" if finding.suppressed else ""
        lines.append("")
        lines.append(
            f"{finding.severity.value.upper()} {finding.rule_id} ({finding.category.value}) "
            f"{finding.location}{marker}"
        )
        lines.append(f"  {finding.message}")
        for snippet_line in finding.snippet.splitlines():
            lines.append(f"    | {snippet_line}")
        remediation = report.remediation_for(finding)
        if remediation:
            lines.append(f"  fix: {remediation}")

    for failure in report.failures:
        lines.append("")
        lines.append(f"FAILED {failure.file_path}: {failure.error}: {failure.message}")
    if report.skipped_files:
        lines.append("")
        lines.append(f"skipped {len(report.skipped_files)} file(s): {', '.join(report.skipped_files)}")

    summary = report.summary
    counts = ", ".join(f"{level}={count}" for level, count in summary.by_severity.items())
    lines.append("")
    if summary.by_category:
        categories = ", ".join(f"{name}={count}" for name, count in summary.by_category.items())
        lines.append(f"by category: {categories}")
    lines.append(f"{summary.total} finding(s) ({counts}); {summary.suppressed} suppressed")
    return "\n".join(lines) + "\n"
