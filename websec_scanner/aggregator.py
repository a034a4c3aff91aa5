"""
Finding aggregation: dedupe, suppression marking and deterministic ordering.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

from .core_types import Finding
from .suppressions import SuppressionSet


def sort_key(finding: Finding) -> Tuple:
    return (
        -finding.severity.rank,
        finding.category.value,
        finding.file_path,
        finding.start_line,
        finding.end_line,
        finding.rule_id,
    )


def _merge_snippets(first: str, second: str) -> str:
    if second == first or second in first.split("\n---\n"):
        return first
    return f"{first}\n---\n{second}"


def aggregate(
    findings: Iterable[Finding],
    suppressions: Optional[SuppressionSet] = None,
) -> List[Finding]:
    """Dedupe by (file, line range, rule id), mark suppressions, and sort.

    Returns new Finding objects; the input is left untouched. Suppressed
    findings are kept (flagged) so verbose views can still show them.
    """
    merged: Dict[Tuple[str, int, int, str], Finding] = {}
    for finding in findings:
        existing = merged.get(finding.key)
        if existing is None:
            merged[finding.key] = replace(finding)
            continue
        existing.snippet = _merge_snippets(existing.snippet, finding.snippet)
        existing.suppressed = existing.suppressed or finding.suppressed

    result = list(merged.values())
    if suppressions is not None:
        for finding in result:
            if suppressions.matches(finding):
                finding.suppressed = True
    result.sort(key=sort_key)
    return result
