from __future__ import annotations

import random
from typing import List

from websec_scanner.aggregator import aggregate
from websec_scanner.core_types import Finding
from websec_scanner.settings import Category, SeverityLevel
from websec_scanner.suppressions import Suppression, SuppressionSet


def _finding(
    rule_id: str = "xss-reflected",
    file_path: str = "app.js",
    start_line: int = 1,
    end_line: int | None = None,
    severity: SeverityLevel = SeverityLevel.HIGH,
    category: Category = Category.XSS_REFLECTED,
    snippet: str = "res.send(q)",
) -> Finding:
    return Finding(
        rule_id=rule_id,
        file_path=file_path,
        start_line=start_line,
        end_line=end_line if end_line is not None else start_line,
        snippet=snippet,
        severity=severity,
        category=category,
        message="demo",
    )


def _sample() -> List[Finding]:
    return [
        _finding("rate-limiting", "b.js", 4, severity=SeverityLevel.MEDIUM, category=Category.RATE_LIMITING),
        _finding("xss-reflected", "b.js", 9),
        _finding("broken-auth", "a.js", 2, severity=SeverityLevel.CRITICAL, category=Category.AUTH),
        _finding("xss-dom", "a.js", 7, category=Category.XSS_DOM),
        _finding("xss-reflected", "a.js", 3),
        _finding("csp-missing", "a.js", 1, severity=SeverityLevel.MEDIUM, category=Category.CSP),
    ]


def test_sorted_by_severity_category_file_and_line() -> None:
    ordered = aggregate(_sample())

    assert [(f.rule_id, f.file_path, f.start_line) for f in ordered] == [
        ("broken-auth", "a.js", 2),
        ("xss-dom", "a.js", 7),
        ("xss-reflected", "a.js", 3),
        ("xss-reflected", "b.js", 9),
        ("csp-missing", "a.js", 1),
        ("rate-limiting", "b.js", 4),
    ]


def test_order_does_not_depend_on_input_order() -> None:
    findings = _sample()
    shuffled = list(findings)
    random.Random(7).shuffle(shuffled)

    assert aggregate(shuffled) == aggregate(findings)


def test_aggregate_is_idempotent() -> None:
    once = aggregate(_sample() + _sample())

    assert aggregate(once) == once


def test_duplicates_collapse_and_merge_snippets() -> None:
    first = _finding(snippet="res.send(a)")
    second = _finding(snippet="res.send(b)")
    same = _finding(snippet="res.send(a)")

    merged = aggregate([first, second, same])

    assert len(merged) == 1
    assert merged[0].snippet == "res.send(a)\n---\nres.send(b)"
    assert first.snippet == "res.send(a)"


def test_same_line_different_rule_is_kept() -> None:
    merged = aggregate([_finding("xss-reflected"), _finding("xss-stored", category=Category.XSS_STORED)])

    assert len(merged) == 2


def test_suppression_marks_but_keeps_findings() -> None:
    suppressions = SuppressionSet([Suppression("a.js", 3, "xss-reflected")])

    merged = aggregate(_sample(), suppressions)

    flagged = [f for f in merged if f.suppressed]
    assert [(f.rule_id, f.file_path, f.start_line) for f in flagged] == [("xss-reflected", "a.js", 3)]
    assert len(merged) == len(_sample())


def test_suppression_covers_multiline_findings() -> None:
    suppressions = SuppressionSet([Suppression("app.js", 5, "xss-reflected")])

    merged = aggregate([_finding(start_line=4, end_line=6)], suppressions)

    assert merged[0].suppressed is True
