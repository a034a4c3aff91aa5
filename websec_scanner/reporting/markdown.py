from __future__ import annotations

from typing import List

from ..report import Report


def _cell(value: str) -> str:
    return value.replace("|", "\\|").replace("\n", " ")


def generate_markdown(report: Report, verbose: bool = False) -> str:
    lines: List[str] = ["# Web Security Scan Report", ""]
    lines.append(f"**Status:** {report.status.value}")
    lines.append("")

    summary = report.summary
    lines.append("## Summary")
    lines.append("")
    lines.append(f"- **Total findings:** {summary.total}")
    lines.append(f"- **Suppressed:** {summary.suppressed}")
    for level, count in summary.by_severity.items():
        lines.append(f"- **{level.capitalize()}:** {count}")
    lines.append("")
    if summary.by_category:
        lines.append("| Category | Findings |")
        lines.append("|----------|----------|")
        for name, count in summary.by_category.items():
            lines.append(f"| {name} | {count} |")
        lines.append("")

    findings = report.visible_findings(verbose)
    if findings:
        lines.append("## Findings")
        lines.append("")
        lines.append("| Severity | Category | Rule | Location | Message |")
        lines.append("|----------|----------|------|----------|---------|")
        for finding in findings:
            severity = finding.severity.value.upper()
            if finding.suppressed:
                severity += " (suppressed)"
            lines.append(
                f"| {severity} | {finding.category.value} | {_cell(finding.rule_id)} "
                f"| {_cell(finding.location)} | {_cell(finding.message)} |"
            )
        lines.append("")

        lines.append("## Remediation")
        lines.append("")
        seen = set()
        for finding in findings:
            if finding.rule_id in seen:
                continue
            seen.add(finding.rule_id)
            rule = report.rule_for(finding)
            title = rule.title if rule else finding.rule_id
            lines.append(f"### {finding.rule_id}: {title}")
            lines.append("")
            lines.append(report.remediation_for(finding))
            lines.append("")
    else:
        lines.append("No findings detected.")
        lines.append("")

    if report.failures:
        lines.append("## Failed files")
        lines.append("")
        for failure in report.failures:
            lines.append(f"- `{failure.file_path}`: {failure.message}")
        lines.append("")
    if report.skipped_files:
        lines.append("## Skipped files")
        lines.append("")
        for path in report.skipped_files:
            lines.append(f"- `{path}`")
        lines.append("")

    return "\n".join(lines)
