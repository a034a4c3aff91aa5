"""
Rule data model: rules are immutable data, matchers are function values built
from a registered kind plus options.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, Iterator, Mapping, Optional, Tuple

from ..settings import Category, SeverityLevel

if TYPE_CHECKING:
    from ..source import SourceText
    from ..taint import TaintAnalyzer


@dataclass(frozen=True)
class Hit:
    start_line: int
    end_line: int
    message: str


MatchFn = Callable[["SourceText", "TaintAnalyzer"], Iterable[Hit]]


@dataclass(frozen=True)
class Matcher:
    kind: str
    options: Mapping[str, Any]
    fn: MatchFn = field(compare=False, repr=False)

    def match(self, source: "SourceText", analyzer: "TaintAnalyzer") -> Iterable[Hit]:
        return self.fn(source, analyzer)


@dataclass(frozen=True)
class Rule:
    rule_id: str
    title: str
    category: Category
    severity: SeverityLevel
    matchers: Tuple[Matcher, ...]
    remediation: str
    description: str = ""
    references: Tuple[str, ...] = ()


class RuleSet:
    """Validated, read-only collection of rules keyed by id, in catalog order."""

    def __init__(self, rules: Iterable[Rule]) -> None:
        by_id: Dict[str, Rule] = {}
        for rule in rules:
            by_id[rule.rule_id] = rule
        self._rules = MappingProxyType(by_id)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def get(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    def ids(self) -> Tuple[str, ...]:
        return tuple(self._rules)
