"""
Per-file scan: apply every rule's matchers to one file's content.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Set, Tuple

from .core_types import Finding
from .rules.base import Rule
from .source import SourceText
from .taint import BlockTaintAnalyzer, TaintAnalyzer

_DEFAULT_ANALYZER = BlockTaintAnalyzer()


def scan(
    file_content: str,
    rules: Iterable[Rule],
    *,
    path: str = "<memory>",
    taint_analyzer: Optional[TaintAnalyzer] = None,
) -> List[Finding]:
    """Scan one file. Raises ``ScanError`` if the content cannot be tokenized.

    Matchers of a rule run in order; a line already reported by an earlier
    matcher of the same rule is not reported again.
    """
    source = SourceText(file_content, path=path)
    analyzer = taint_analyzer or _DEFAULT_ANALYZER
    findings: List[Finding] = []

    for rule in rules:
        claimed: Set[int] = set()
        for matcher in rule.matchers:
            produced: List[Tuple[int, int]] = []
            for hit in matcher.match(source, analyzer):
                lines = range(hit.start_line, hit.end_line + 1)
                if any(line in claimed for line in lines):
                    continue
                if (hit.start_line, hit.end_line) in produced:
                    continue
                produced.append((hit.start_line, hit.end_line))
                findings.append(
                    Finding(
                        rule_id=rule.rule_id,
                        file_path=path,
                        start_line=hit.start_line,
                        end_line=hit.end_line,
                        snippet=source.snippet(hit.start_line, hit.end_line),
                        severity=rule.severity,
                        category=rule.category,
                        message=hit.message,
                    )
                )
            for start_line, end_line in produced:
                claimed.update(range(start_line, end_line + 1))
    return findings
