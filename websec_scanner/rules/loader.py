"""
Rule catalog loading and validation.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence

import yaml

from ..errors import MalformedRuleError
from ..matchers import build_matcher
from ..settings import Category, SeverityLevel
from .base import Rule, RuleSet

BUILTIN_CATALOG = Path(__file__).with_name("catalog.yaml")

_RULE_KEYS = {"id", "title", "category", "severity", "matchers", "remediation", "description", "references"}


def load_rules(
    paths: Sequence[str | Path] | None = None,
    *,
    include_builtin: bool = True,
) -> RuleSet:
    """Load the built-in catalog plus any extra rule files into a validated RuleSet."""
    sources: List[Path] = [BUILTIN_CATALOG] if include_builtin else []
    sources.extend(Path(path) for path in paths or [])

    rules: List[Rule] = []
    for source in sources:
        rules.extend(parse_catalog(read_catalog(source), origin=str(source)))
    return validate_rules(rules)


def read_catalog(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"Rule file not found: {path}")
    with open(path, "r", encoding="utf-8") as handle:
        if path.suffix in (".yaml", ".yml"):
            try:
                return yaml.safe_load(handle) or {}
            except yaml.YAMLError as exc:
                raise MalformedRuleError(f"Invalid YAML in {path}: {exc}") from exc
        if path.suffix == ".json":
            try:
                return json.load(handle)
            except json.JSONDecodeError as exc:
                raise MalformedRuleError(f"Invalid JSON in {path}: {exc}") from exc
    raise ValueError(f"Unsupported rule file format: {path.suffix}")


def parse_catalog(data: Any, origin: str = "<catalog>") -> List[Rule]:
    if isinstance(data, Mapping):
        entries = data.get("rules", [])
    else:
        entries = data
    if not isinstance(entries, list):
        raise MalformedRuleError(f"{origin}: 'rules' must be a list")
    return [parse_rule(entry, origin) for entry in entries]


def parse_rule(entry: Any, origin: str = "<catalog>") -> Rule:
    if not isinstance(entry, Mapping):
        raise MalformedRuleError(f"{origin}: rule entries must be mappings")

    rule_id = entry.get("id")
    if not isinstance(rule_id, str) or not rule_id.strip():
        raise MalformedRuleError(f"{origin}: rule is missing an id")
    rule_id = rule_id.strip()

    unknown = set(entry) - _RULE_KEYS
    if unknown:
        raise MalformedRuleError(f"unknown keys {sorted(unknown)}", rule_id)

    category = _parse_enum(Category, entry.get("category"), "category", rule_id)
    severity = _parse_enum(SeverityLevel, entry.get("severity"), "severity", rule_id)

    raw_matchers = entry.get("matchers")
    if not isinstance(raw_matchers, list) or not raw_matchers:
        raise MalformedRuleError("rule needs at least one matcher", rule_id)

    matchers = []
    for index, raw in enumerate(raw_matchers):
        if not isinstance(raw, Mapping) or "kind" not in raw:
            raise MalformedRuleError(f"matcher #{index} has no kind", rule_id)
        options: Dict[str, Any] = {k: v for k, v in raw.items() if k != "kind"}
        try:
            matchers.append(build_matcher(str(raw["kind"]), options))
        except KeyError as exc:
            raise MalformedRuleError(str(exc.args[0]), rule_id) from exc
        except (ValueError, re.error) as exc:
            raise MalformedRuleError(f"matcher #{index}: {exc}", rule_id) from exc

    return Rule(
        rule_id=rule_id,
        title=str(entry.get("title") or rule_id),
        category=category,
        severity=severity,
        matchers=tuple(matchers),
        remediation=str(entry.get("remediation") or "").strip(),
        description=str(entry.get("description") or "").strip(),
        references=tuple(str(ref) for ref in entry.get("references") or ()),
    )


def validate_rules(rules: Iterable[Rule]) -> RuleSet:
    """Check ids, enums and matchers of already-built rules; reject duplicates."""
    seen = set()
    validated: List[Rule] = []
    for rule in rules:
        if not isinstance(rule.rule_id, str) or not rule.rule_id.strip():
            raise MalformedRuleError("rule is missing an id")
        if not isinstance(rule.category, Category):
            raise MalformedRuleError("rule is missing a valid category", rule.rule_id)
        if not isinstance(rule.severity, SeverityLevel):
            raise MalformedRuleError("rule is missing a valid severity", rule.rule_id)
        if not rule.matchers:
            raise MalformedRuleError("rule needs at least one matcher", rule.rule_id)
        if rule.rule_id in seen:
            raise MalformedRuleError("duplicate rule id", rule.rule_id)
        seen.add(rule.rule_id)
        validated.append(rule)
    return RuleSet(validated)


def _parse_enum(enum_type, value: Any, field: str, rule_id: str):
    if value is None or value == "":
        raise MalformedRuleError(f"rule is missing a {field}", rule_id)
    try:
        return enum_type(str(value).lower())
    except ValueError as exc:
        raise MalformedRuleError(f"unknown {field} {value!r}", rule_id) from exc
