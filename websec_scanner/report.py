"""
Report model and builder. ``Report.to_dict`` is the structured contract;
every renderer in ``reporting/`` derives from it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .core_types import FileFailure, Finding
from .rules.base import Rule, RuleSet
from .settings import Category, RunStatus, SeverityLevel


@dataclass
class ReportSummary:
    total: int
    suppressed: int
    by_severity: Dict[str, int]
    by_category: Dict[str, int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "suppressed": self.suppressed,
            "by_severity": dict(self.by_severity),
            "by_category": dict(self.by_category),
        }


@dataclass
class Report:
    status: RunStatus
    findings: List[Finding]
    summary: ReportSummary
    failures: List[FileFailure] = field(default_factory=list)
    scanned_files: List[str] = field(default_factory=list)
    skipped_files: List[str] = field(default_factory=list)
    rules: Dict[str, Rule] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return self.status is RunStatus.SUCCESS

    def visible_findings(self, verbose: bool = False) -> List[Finding]:
        if verbose:
            return list(self.findings)
        return [f for f in self.findings if not f.suppressed]

    def rule_for(self, finding: Finding) -> Optional[Rule]:
        return self.rules.get(finding.rule_id)

    def remediation_for(self, finding: Finding) -> str:
        rule = self.rule_for(finding)
        return rule.remediation if rule else ""

    def finding_to_dict(self, finding: Finding) -> Dict[str, Any]:
        rule = self.rule_for(finding)
        return {
            "rule_id": finding.rule_id,
            "title": rule.title if rule else finding.rule_id,
            "category": finding.category.value,
            "severity": finding.severity.value,
            "file": finding.file_path,
            "start_line": finding.start_line,
            "end_line": finding.end_line,
            "snippet": finding.snippet,
            "message": finding.message,
            "remediation": rule.remediation if rule else "",
            "references": list(rule.references) if rule else [],
            "suppressed": finding.suppressed,
        }

    def to_dict(self, verbose: bool = False) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "complete": self.complete,
            "summary": self.summary.to_dict(),
            "findings": [self.finding_to_dict(f) for f in self.visible_findings(verbose)],
            "failures": [
                {"file": failure.file_path, "error": failure.error, "message": failure.message}
                for failure in self.failures
            ],
            "scanned_files": list(self.scanned_files),
            "skipped_files": list(self.skipped_files),
        }


def summarize(findings: Sequence[Finding]) -> ReportSummary:
    visible = [f for f in findings if not f.suppressed]
    by_severity = {level.value: 0 for level in sorted(SeverityLevel, key=lambda s: -s.rank)}
    by_category: Dict[str, int] = {}
    for finding in visible:
        by_severity[finding.severity.value] += 1
        by_category[finding.category.value] = by_category.get(finding.category.value, 0) + 1
    ordered_categories = {
        category.value: by_category[category.value]
        for category in Category
        if category.value in by_category
    }
    return ReportSummary(
        total=len(visible),
        suppressed=len(findings) - len(visible),
        by_severity=by_severity,
        by_category=ordered_categories,
    )


def build(
    findings: Sequence[Finding],
    rules: RuleSet | Iterable[Rule],
    *,
    status: RunStatus = RunStatus.SUCCESS,
    failures: Iterable[FileFailure] = (),
    scanned_files: Iterable[str] = (),
    skipped_files: Iterable[str] = (),
) -> Report:
    """Build a report from aggregated (already ordered) findings."""
    rule_map = {rule.rule_id: rule for rule in rules}
    unknown = sorted({f.rule_id for f in findings if f.rule_id not in rule_map})
    if unknown:
        raise ValueError(f"Findings reference unknown rule ids: {unknown}")
    return Report(
        status=status,
        findings=list(findings),
        summary=summarize(findings),
        failures=sorted(failures, key=lambda failure: failure.file_path),
        scanned_files=sorted(scanned_files),
        skipped_files=sorted(skipped_files),
        rules=rule_map,
    )
