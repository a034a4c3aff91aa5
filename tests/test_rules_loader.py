from __future__ import annotations

import dataclasses
import json
import re
from pathlib import Path
from typing import Any, Dict

import pytest

from websec_scanner.errors import MalformedRuleError
from websec_scanner.patterns import expand_patterns
from websec_scanner.rules.loader import load_rules, parse_rule, read_catalog, validate_rules
from websec_scanner.settings import Category, SeverityLevel

EXTRA_RULES = """
rules:
  - id: custom-eval
    title: Eval of user data
    category: xss-dom
    severity: low
    remediation: Do not eval.
    matchers:
      - kind: regex
        pattern: '\\beval\\s*\\('
"""


def _entry(**overrides: Any) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "id": "custom",
        "title": "Custom",
        "category": "misconfig",
        "severity": "low",
        "remediation": "Fix it.",
        "matchers": [{"kind": "regex", "pattern": "debug"}],
    }
    entry.update(overrides)
    return entry


def test_builtin_catalog_covers_every_category() -> None:
    rules = load_rules()

    assert len(rules) == 15
    assert {rule.category for rule in rules} == set(Category)
    assert "xss-reflected" in rules
    assert rules.get("broken-auth").severity is SeverityLevel.CRITICAL
    assert all(rule.remediation for rule in rules)


def test_rules_are_immutable() -> None:
    rule = load_rules().get("xss-dom")

    with pytest.raises(dataclasses.FrozenInstanceError):
        rule.severity = SeverityLevel.LOW  # type: ignore[misc]


def test_extra_yaml_rule_file_is_appended(tmp_path: Path) -> None:
    path = tmp_path / "extra.yaml"
    path.write_text(EXTRA_RULES, encoding="utf-8")

    rules = load_rules([path])

    assert len(rules) == 16
    assert rules.ids()[-1] == "custom-eval"
    assert rules.get("custom-eval").matchers[0].kind == "regex"


def test_json_rule_file_without_builtin(tmp_path: Path) -> None:
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"rules": [_entry()]}), encoding="utf-8")

    rules = load_rules([path], include_builtin=False)

    assert rules.ids() == ("custom",)


def test_duplicate_rule_id_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "dupe.yaml"
    path.write_text(EXTRA_RULES.replace("custom-eval", "xss-reflected"), encoding="utf-8")

    with pytest.raises(MalformedRuleError, match="duplicate rule id") as excinfo:
        load_rules([path])

    assert excinfo.value.rule_id == "xss-reflected"


def test_validate_rules_rejects_duplicates_of_built_rules() -> None:
    rules = list(load_rules())

    with pytest.raises(MalformedRuleError):
        validate_rules(rules + [rules[0]])


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"id": ""}, "missing an id"),
        ({"category": "nope"}, "unknown category"),
        ({"severity": "urgent"}, "unknown severity"),
        ({"severity": None}, "missing a severity"),
        ({"matchers": []}, "at least one matcher"),
        ({"matchers": [{"pattern": "x"}]}, "has no kind"),
        ({"matchers": [{"kind": "ast", "pattern": "x"}]}, "Unknown matcher kind"),
        ({"matchers": [{"kind": "regex", "pattern": "("}]}, "matcher #0"),
        ({"matchers": [{"kind": "regex"}]}, "Missing required matcher option"),
        ({"matchers": [{"kind": "regex", "pattern": "@nope"}]}, "Unknown pattern group"),
        (
            {"matchers": [{"kind": "missing", "trigger": "a", "required": "b", "scope": "repo"}]},
            "Unsupported scope",
        ),
        ({"owner": "team"}, "unknown keys"),
    ],
)
def test_parse_rule_rejects_malformed_entries(overrides: Dict[str, Any], message: str) -> None:
    with pytest.raises(MalformedRuleError, match=message):
        parse_rule(_entry(**overrides))


def test_severity_and_category_are_case_insensitive() -> None:
    rule = parse_rule(_entry(severity="HIGH", category="CSP"))

    assert rule.severity is SeverityLevel.HIGH
    assert rule.category is Category.CSP


def test_read_catalog_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_catalog(tmp_path / "missing.yaml")

    text_file = tmp_path / "rules.txt"
    text_file.write_text("rules: []", encoding="utf-8")
    with pytest.raises(ValueError):
        read_catalog(text_file)

    broken = tmp_path / "broken.yaml"
    broken.write_text("rules: [", encoding="utf-8")
    with pytest.raises(MalformedRuleError, match="Invalid YAML"):
        read_catalog(broken)


def test_builtin_regexes_bound_their_character_runs() -> None:
    unbounded = re.compile(r"\[\^[^\]]*\][*+]")
    offenders = []
    for rule in load_rules():
        for matcher in rule.matchers:
            for key in (
                "pattern", "unless", "trigger", "required", "sources", "sinks", "sanitizers"
            ):
                if key not in matcher.options:
                    continue
                offenders.extend(
                    (rule.rule_id, pattern)
                    for pattern in expand_patterns(matcher.options[key])
                    if unbounded.search(pattern)
                )

    assert offenders == []
