from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from .rules.base import Rule
from .settings import DEFAULT_FAIL_ON, SeverityLevel

_CONFIG_KEYS = {
    "rules",
    "rule_files",
    "suppressions",
    "workers",
    "fail_fast",
    "fail_on",
    "exclude_dirs",
    "extensions",
}


@dataclass
class RuleConfig:
    enabled: bool = True
    severity_override: Optional[SeverityLevel] = None


@dataclass
class ScannerConfig:
    rules: Dict[str, RuleConfig] = field(default_factory=dict)
    rule_files: List[Path] = field(default_factory=list)
    suppressions: Optional[Path] = None
    workers: Optional[int] = None
    fail_fast: bool = False
    fail_on: SeverityLevel = DEFAULT_FAIL_ON
    exclude_dirs: List[str] = field(default_factory=list)
    extensions: List[str] = field(default_factory=list)

    def get_severity_override(self, rule_id: str) -> Optional[SeverityLevel]:
        """Get severity override for a rule."""
        rule_config = self.rules.get(rule_id)
        if rule_config is None:
            return None
        return rule_config.severity_override

    def is_rule_enabled(self, rule_id: str) -> bool:
        """Check if a rule is enabled."""
        rule_config = self.rules.get(rule_id)
        if rule_config is None:
            return True  # Default: enabled
        return rule_config.enabled

    def apply(self, rules: Iterable[Rule]) -> List[Rule]:
        """Drop disabled rules and bake severity overrides into the rest."""
        configured: List[Rule] = []
        for rule in rules:
            if not self.is_rule_enabled(rule.rule_id):
                continue
            override = self.get_severity_override(rule.rule_id)
            configured.append(replace(rule, severity=override) if override else rule)
        return configured

    def effective_workers(self) -> int:
        return max(1, self.workers or os.cpu_count() or 1)


def _parse_severity(value: Any, where: str) -> SeverityLevel:
    try:
        return SeverityLevel(str(value).lower())
    except ValueError as exc:
        raise ValueError(f"{where}: unknown severity {value!r}") from exc


def _resolve(base: Path, value: Any) -> Path:
    path = Path(str(value))
    return path if path.is_absolute() else base / path


def load_config(path: str | Path) -> ScannerConfig:
    """Load scanner configuration from YAML or JSON file.

    Relative ``rule_files`` and ``suppressions`` paths are resolved against
    the directory holding the config file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, "r", encoding="utf-8") as f:
        if config_path.suffix in (".yaml", ".yml"):
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc
        elif config_path.suffix == ".json":
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported config format: {config_path.suffix}")

    if not isinstance(data, dict):
        raise ValueError(f"{config_path}: top level must be a mapping")
    unknown = set(data) - _CONFIG_KEYS
    if unknown:
        raise ValueError(f"{config_path}: unknown keys {sorted(unknown)}")

    base = config_path.parent
    rule_entries = data.get("rules") or {}
    if not isinstance(rule_entries, dict):
        raise ValueError(f"{config_path}: rules must be a mapping of rule id to settings")
    rules = {}
    for rule_id, rule_data in rule_entries.items():
        rule_data = rule_data or {}
        if not isinstance(rule_data, dict):
            raise ValueError(f"{config_path}: rules.{rule_id} must be a mapping")
        override = rule_data.get("severity_override")
        rules[rule_id] = RuleConfig(
            enabled=bool(rule_data.get("enabled", True)),
            severity_override=_parse_severity(override, f"rules.{rule_id}") if override else None,
        )

    workers = data.get("workers")
    if workers is not None and (not isinstance(workers, int) or workers < 1):
        raise ValueError(f"{config_path}: workers must be a positive integer")

    suppressions = data.get("suppressions")
    if suppressions is not None and not isinstance(suppressions, str):
        raise ValueError(f"{config_path}: suppressions must be a path")
    return ScannerConfig(
        rules=rules,
        rule_files=[_resolve(base, item) for item in _list(data, "rule_files", config_path)],
        suppressions=_resolve(base, suppressions) if suppressions else None,
        workers=workers,
        fail_fast=bool(data.get("fail_fast", False)),
        fail_on=_parse_severity(data.get("fail_on", DEFAULT_FAIL_ON.value), "fail_on"),
        exclude_dirs=[str(item) for item in _list(data, "exclude_dirs", config_path)],
        extensions=[_normalize_extension(item) for item in _list(data, "extensions", config_path)],
    )


def _list(data: Dict[str, Any], key: str, config_path: Path) -> List[Any]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise ValueError(f"{config_path}: {key} must be a list")
    return value


def _normalize_extension(value: Any) -> str:
    text = str(value).lower()
    return text if text.startswith(".") else f".{text}"
