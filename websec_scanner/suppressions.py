"""
Suppression (baseline) files.

One entry per line as ``path:line:rule-id``; blank lines and ``#`` comments
are ignored. A suppression hides a finding of that rule whose line range
covers the given line in the given file.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, TextIO

from .core_types import Finding
from .errors import SuppressionFormatError


@dataclass(frozen=True)
class Suppression:
    file_path: str
    line: int
    rule_id: str

    def matches(self, finding: Finding) -> bool:
        return (
            self.rule_id == finding.rule_id
            and self.file_path == finding.file_path
            and finding.start_line <= self.line <= finding.end_line
        )

    def __str__(self) -> str:
        return f"{self.file_path}:{self.line}:{self.rule_id}"


class SuppressionSet:
    def __init__(self, entries: Iterable[Suppression] | None = None) -> None:
        self._entries: List[Suppression] = list(entries or [])

    def __iter__(self) -> Iterator[Suppression]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def matches(self, finding: Finding) -> bool:
        return any(entry.matches(finding) for entry in self._entries)


def parse_suppressions(text: str) -> SuppressionSet:
    entries: List[Suppression] = []
    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        parts = line.rsplit(":", 2)
        if len(parts) != 3 or not all(part.strip() for part in parts):
            raise SuppressionFormatError(f"expected path:line:rule-id, got {raw.strip()!r}", line_no)
        file_path, line_text, rule_id = (part.strip() for part in parts)
        try:
            number = int(line_text)
        except ValueError as exc:
            raise SuppressionFormatError(f"line number is not an integer: {line_text!r}", line_no) from exc
        if number < 1:
            raise SuppressionFormatError(f"line number must be positive: {number}", line_no)
        entries.append(Suppression(file_path=file_path, line=number, rule_id=rule_id))
    return SuppressionSet(entries)


def load_suppressions(path: str | Path) -> SuppressionSet:
    suppression_path = Path(path)
    if not suppression_path.exists():
        raise FileNotFoundError(f"Suppression file not found: {path}")
    return parse_suppressions(suppression_path.read_text(encoding="utf-8"))


def dump_suppressions(findings: Iterable[Finding]) -> str:
    """Render a baseline that suppresses every given finding."""
    seen = set()
    lines = ["# websec-scanner baseline: path:line:rule-id"]
    for finding in findings:
        entry = Suppression(finding.file_path, finding.start_line, finding.rule_id)
        if entry in seen:
            continue
        seen.add(entry)
        lines.append(str(entry))
    return "\n".join(lines) + "\n"


def write_suppressions(findings: Iterable[Finding], stream: TextIO) -> None:
    stream.write(dump_suppressions(findings))
