"""
Matcher kinds. Each kind is a factory registered under a name; the factory
turns catalog options into a pure ``MatchFn(source, analyzer) -> hits``.
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Pattern

from .patterns import expand_patterns
from .rules.base import Hit, Matcher, MatchFn
from .source import SourceText
from .taint import TaintAnalyzer, TaintSpec

MatcherFactory = Callable[[Mapping[str, Any]], MatchFn]

_REGISTRY: Dict[str, MatcherFactory] = {}


def register_matcher(kind: str) -> Callable[[MatcherFactory], MatcherFactory]:
    def decorator(factory: MatcherFactory) -> MatcherFactory:
        _REGISTRY[kind] = factory
        return factory

    return decorator


def matcher_kinds() -> List[str]:
    return sorted(_REGISTRY)


def build_matcher(kind: str, options: Mapping[str, Any]) -> Matcher:
    """Build a matcher; raises ``KeyError`` for unknown kinds and ``ValueError``
    (or ``re.error``) for bad options."""
    factory = _REGISTRY.get(kind)
    if factory is None:
        raise KeyError(f"Unknown matcher kind: {kind}")
    frozen = MappingProxyType(dict(options))
    return Matcher(kind=kind, options=frozen, fn=factory(frozen))


def compile_patterns(value: Any, ignore_case: bool = False) -> Pattern[str]:
    patterns = expand_patterns(value)
    if not patterns:
        raise ValueError("Empty pattern list")
    flags = re.MULTILINE | (re.IGNORECASE if ignore_case else 0)
    return re.compile("|".join(f"(?:{pattern})" for pattern in patterns), flags)


def _optional_patterns(options: Mapping[str, Any], key: str, ignore_case: bool) -> Optional[Pattern[str]]:
    value = options.get(key)
    if value is None:
        return None
    return compile_patterns(value, ignore_case)


def _extension_filter(options: Mapping[str, Any]) -> Callable[[SourceText], bool]:
    extensions = options.get("extensions")
    if not extensions:
        return lambda source: True
    allowed = {ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions}
    return lambda source: source.suffix in allowed


def _require(options: Mapping[str, Any], key: str) -> Any:
    if key not in options:
        raise ValueError(f"Missing required matcher option: {key}")
    return options[key]


@register_matcher("regex")
def regex_matcher(options: Mapping[str, Any]) -> MatchFn:
    ignore_case = bool(options.get("ignore_case", False))
    pattern = compile_patterns(_require(options, "pattern"), ignore_case)
    unless = _optional_patterns(options, "unless", ignore_case)
    applies = _extension_filter(options)
    message = options.get("message", "Matched a known insecure pattern.")

    def match(source: SourceText, analyzer: TaintAnalyzer) -> Iterable[Hit]:
        if not applies(source):
            return
        for found in pattern.finditer(source.code):
            if found.end() == found.start():
                continue
            start_line, end_line = source.line_span(found.start(), found.end())
            if unless is not None and unless.search(source.code_region(start_line, end_line)):
                continue
            yield Hit(start_line=start_line, end_line=end_line, message=message)

    return match


@register_matcher("taint")
def taint_matcher(options: Mapping[str, Any]) -> MatchFn:
    ignore_case = bool(options.get("ignore_case", False))
    spec = TaintSpec(
        sources=compile_patterns(_require(options, "sources"), ignore_case),
        sinks=compile_patterns(_require(options, "sinks"), ignore_case),
        sanitizers=_optional_patterns(options, "sanitizers", ignore_case),
    )
    applies = _extension_filter(options)
    message = options.get("message", "Untrusted input reaches a sink without sanitization.")

    def match(source: SourceText, analyzer: TaintAnalyzer) -> Iterable[Hit]:
        if not applies(source):
            return
        for flow in analyzer.flows(source, spec):
            detail = message
            if flow.variable:
                detail = f"{message} (`{flow.variable}` from line {flow.source_line})"
            yield Hit(start_line=flow.start_line, end_line=flow.end_line, message=detail)

    return match


@register_matcher("missing")
def missing_matcher(options: Mapping[str, Any]) -> MatchFn:
    ignore_case = bool(options.get("ignore_case", False))
    trigger = compile_patterns(_require(options, "trigger"), ignore_case)
    required = compile_patterns(_require(options, "required"), ignore_case)
    scope = options.get("scope", "file")
    if scope not in ("file", "block"):
        raise ValueError(f"Unsupported scope for missing matcher: {scope}")
    applies = _extension_filter(options)
    message = options.get("message", "Expected safeguard is missing.")

    def match(source: SourceText, analyzer: TaintAnalyzer) -> Iterable[Hit]:
        if not applies(source):
            return
        if scope == "file" and required.search(source.code):
            return
        for found in trigger.finditer(source.code):
            if scope == "block" and required.search(_block_region(source, found.start())):
                continue
            start_line, end_line = source.line_span(found.start(), found.end())
            yield Hit(start_line=start_line, end_line=end_line, message=message)

    return match


def _block_region(source: SourceText, offset: int) -> str:
    """Code of the block enclosing ``offset``, including the line that opens it.

    At top level the enclosing statement stands in for the block.
    """
    block = source.block_at(offset)
    if block.parent is None:
        statement = source.statement_at(offset)
        if statement is None:
            return source.code[source.line_start(offset) : offset]
        return source.code[statement.start : statement.end]
    # Step back one character so Python blocks pick up their header line.
    return source.code[source.line_start(max(0, block.start - 1)) : block.end]
