from __future__ import annotations

from typing import Optional


class ScannerError(Exception):
    """Base class for scanner errors."""


class MalformedRuleError(ScannerError):
    def __init__(self, message: str, rule_id: Optional[str] = None) -> None:
        self.rule_id = rule_id
        if rule_id:
            message = f"{rule_id}: {message}"
        super().__init__(message)


class ScanError(ScannerError):
    def __init__(self, message: str, file_path: Optional[str] = None) -> None:
        self.file_path = file_path
        super().__init__(message)


class SuppressionFormatError(ScannerError):
    def __init__(self, message: str, line_no: int) -> None:
        self.line_no = line_no
        super().__init__(f"line {line_no}: {message}")
