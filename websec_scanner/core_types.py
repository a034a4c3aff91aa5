from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .settings import Category, SeverityLevel


@dataclass
class Finding:
    rule_id: str
    file_path: str
    start_line: int
    end_line: int
    snippet: str
    severity: SeverityLevel
    category: Category
    message: str
    suppressed: bool = False

    @property
    def key(self) -> Tuple[str, int, int, str]:
        return (self.file_path, self.start_line, self.end_line, self.rule_id)

    @property
    def location(self) -> str:
        if self.start_line == self.end_line:
            return f"{self.file_path}:{self.start_line}"
        return f"{self.file_path}:{self.start_line}-{self.end_line}"

    def severity_threshold_passes(self, fail_on: SeverityLevel) -> bool:
        return self.severity.rank >= fail_on.rank


@dataclass(frozen=True)
class FileFailure:
    file_path: str
    error: str
    message: str

    @classmethod
    def from_exception(cls, file_path: str, exc: BaseException) -> "FileFailure":
        return cls(file_path=file_path, error=type(exc).__name__, message=str(exc))


class FindingsCollection:
    def __init__(self, findings: Iterable[Finding] | None = None) -> None:
        self._findings: List[Finding] = list(findings or [])

    def add(self, finding: Finding) -> None:
        self._findings.append(finding)

    def extend(self, findings: Iterable[Finding]) -> None:
        for finding in findings:
            self.add(finding)

    def __iter__(self):
        yield from self._findings

    def __len__(self) -> int:
        return len(self._findings)
