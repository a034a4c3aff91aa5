"""
Scope-aware, intra-block taint tracking.

The analyzer walks statements in file order. Identifiers bound from a source
expression become tainted for the block they are bound in (and its nested
blocks). Taint follows straight-line assignments, ``+=`` concatenation,
``for ... of/in`` loops and array callbacks (``items.map(item => ...)``).
A sink whose arguments mention a source or a tainted identifier yields a
``Flow`` unless a sanitizer call appears in the sink arguments or anywhere in
the code between the source and the sink.
"""

from __future__ import annotations

import abc
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Pattern

from .source import SourceText

_IDENT = r"[A-Za-z_$][\w$]*"

_ASSIGNMENT = re.compile(
    rf"^(?:(?:const|let|var|final)\s+)?(?P<target>{_IDENT})\s*"
    r"(?::\s*[\w$<>\[\]|., ]+?\s*)?(?P<op>\+=|=)(?!=)\s*(?P<value>.*)$",
    re.DOTALL,
)
_DESTRUCTURE = re.compile(
    r"^(?:const|let|var)\s*[{\[](?P<names>[^}\]]*)[}\]]\s*=(?!=)\s*(?P<value>.*)$",
    re.DOTALL,
)
_FOR_LOOP = re.compile(
    rf"^for\s*\(?\s*(?:(?:const|let|var)\s+)?(?P<target>{_IDENT})\s+(?:of|in)\s+(?P<value>[^):]+)"
)
_CALLBACK = re.compile(
    rf"(?P<base>{_IDENT})\s*\.\s*(?:forEach|map|flatMap|filter|find|some|every|reduce)\s*\(\s*"
    rf"(?:async\s+)?(?:function\s*)?\(?\s*(?P<param>{_IDENT})"
)


@dataclass(frozen=True)
class TaintSpec:
    sources: Pattern[str]
    sinks: Pattern[str]
    sanitizers: Optional[Pattern[str]] = None


@dataclass(frozen=True)
class Flow:
    start_line: int
    end_line: int
    source_line: int
    variable: Optional[str]


class TaintAnalyzer(abc.ABC):
    """Finds source-to-sink flows in a single file."""

    @abc.abstractmethod
    def flows(self, source: SourceText, spec: TaintSpec) -> Iterable[Flow]:
        ...


@dataclass
class _Taint:
    name: str
    origin: int
    scope_start: int
    scope_end: int

    def visible_at(self, offset: int) -> bool:
        return self.scope_start <= offset < self.scope_end


def _references(text: str, name: str) -> bool:
    return re.search(rf"(?<![\w$.]){re.escape(name)}(?![\w$])", text) is not None


class BlockTaintAnalyzer(TaintAnalyzer):
    def flows(self, source: SourceText, spec: TaintSpec) -> Iterable[Flow]:
        sinks = list(spec.sinks.finditer(source.code))
        next_sink = 0
        tainted: Dict[str, _Taint] = {}

        for statement in source.statements:
            tainted = {
                name: taint for name, taint in tainted.items() if taint.visible_at(statement.start)
            }
            while next_sink < len(sinks) and sinks[next_sink].start() < statement.end:
                match = sinks[next_sink]
                next_sink += 1
                if source.in_string(match.start()):
                    continue
                flow = self._check_sink(source, spec, match, tainted)
                if flow is not None:
                    yield flow
            self._bind(source, spec, statement.start, statement.end, tainted)

    def _check_sink(
        self,
        source: SourceText,
        spec: TaintSpec,
        match: "re.Match[str]",
        tainted: Dict[str, _Taint],
    ) -> Optional[Flow]:
        sink_start = match.start()
        if match.group(0).rstrip().endswith("("):
            open_index = match.end() - 1
            arg_start, arg_end = open_index + 1, source.matching_close(open_index)
            span_end = arg_end + 1
        else:
            statement = source.statement_at(sink_start)
            arg_start = match.end()
            arg_end = statement.end if statement is not None else len(source.code)
            span_end = arg_end

        arguments = source.structure[arg_start:arg_end]
        if spec.sources.search(arguments):
            origin = sink_start
            variable = None
        else:
            referenced = [
                taint for name, taint in tainted.items() if _references(arguments, name)
            ]
            if not referenced:
                return None
            earliest = min(referenced, key=lambda taint: (taint.origin, taint.name))
            origin = earliest.origin
            variable = earliest.name

        if spec.sanitizers is not None:
            if spec.sanitizers.search(source.code[arg_start:arg_end]):
                return None
            if spec.sanitizers.search(source.code[origin:sink_start]):
                return None

        start_line, end_line = source.line_span(sink_start, span_end)
        return Flow(
            start_line=start_line,
            end_line=end_line,
            source_line=source.line_of(origin),
            variable=variable,
        )

    def _bind(
        self,
        source: SourceText,
        spec: TaintSpec,
        start: int,
        end: int,
        tainted: Dict[str, _Taint],
    ) -> None:
        text = source.structure[start:end]
        code = source.code[start:end]
        block = source.block_at(start)

        targets: List[str] = []
        value = ""
        value_start = 0
        augmented = False
        loop = _FOR_LOOP.match(text)
        destructure = _DESTRUCTURE.match(text)
        assignment = _ASSIGNMENT.match(text)
        if loop:
            targets = [loop.group("target")]
            value, value_start = loop.group("value"), loop.start("value")
        elif destructure:
            names = [
                name.split(":")[-1].split("=")[0].strip().lstrip(".")
                for name in destructure.group("names").split(",")
            ]
            targets = [name for name in names if name]
            value, value_start = destructure.group("value"), destructure.start("value")
        elif assignment:
            targets = [assignment.group("target")]
            value, value_start = assignment.group("value"), assignment.start("value")
            augmented = assignment.group("op") == "+="

        if targets:
            origin = self._origin_of(spec, value, start, tainted)
            sanitized = spec.sanitizers is not None and bool(
                spec.sanitizers.search(code[value_start:])
            )
            for target in targets:
                if origin is not None and not sanitized:
                    existing = tainted.get(target)
                    tainted[target] = _Taint(
                        name=target,
                        origin=min(origin, existing.origin) if existing else origin,
                        scope_start=block.start,
                        scope_end=block.end,
                    )
                elif not augmented or sanitized:
                    tainted.pop(target, None)

        for callback in _CALLBACK.finditer(text):
            base = tainted.get(callback.group("base"))
            if base is not None:
                param = callback.group("param")
                tainted[param] = _Taint(
                    name=param,
                    origin=base.origin,
                    scope_start=block.start,
                    scope_end=block.end,
                )

    @staticmethod
    def _origin_of(
        spec: TaintSpec, value: str, offset: int, tainted: Dict[str, _Taint]
    ) -> Optional[int]:
        if not value:
            return None
        if spec.sources.search(value):
            return offset
        origins = [taint.origin for name, taint in tainted.items() if _references(value, name)]
        return min(origins) if origins else None
