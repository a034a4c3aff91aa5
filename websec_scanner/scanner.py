"""
Core scan orchestrator: loads rules, fans file scans out to a worker pool,
aggregates the findings and builds a Report wrapped in a ScanResult.
"""

from __future__ import annotations

import threading
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Deque, Dict, Iterable, List, Mapping, Optional, Sequence

from .aggregator import aggregate
from .config import ScannerConfig
from .core_types import FileFailure, Finding, FindingsCollection
from .engine import scan
from .errors import MalformedRuleError, ScanError, ScannerError
from .loader.source_loader import SourceUnit, collect_sources
from .logging_utils import ScanLogger, VerbosityLevel
from .report import Report, build
from .rules.base import Rule, RuleSet
from .rules.loader import BUILTIN_CATALOG, parse_catalog, read_catalog, validate_rules
from .settings import DEFAULT_FAIL_ON, DISPATCH_FACTOR, RunState, RunStatus, SeverityLevel
from .suppressions import SuppressionSet, load_suppressions
from .taint import BlockTaintAnalyzer, TaintAnalyzer


@dataclass
class ScanResult:
    state: RunState
    status: RunStatus
    report: Optional[Report] = None
    error: Optional[Exception] = None

    @property
    def findings(self) -> List[Finding]:
        return list(self.report.findings) if self.report else []

    def has_blocking_findings(self, fail_on: SeverityLevel) -> bool:
        return any(
            f.severity_threshold_passes(fail_on) for f in self.findings if not f.suppressed
        )

    def exit_code(self, fail_on: SeverityLevel = DEFAULT_FAIL_ON) -> int:
        if self.state is RunState.FAILED:
            return 2
        return 1 if self.has_blocking_findings(fail_on) else 0


@dataclass
class _ScanProgress:
    findings: FindingsCollection = field(default_factory=FindingsCollection)
    failures: List[FileFailure] = field(default_factory=list)
    scanned: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    cancelled: bool = False


class Scanner:
    def __init__(
        self,
        rules: Iterable[Rule] | None = None,
        config: Optional[ScannerConfig] = None,
        logger: Optional[ScanLogger] = None,
        taint_analyzer: Optional[TaintAnalyzer] = None,
    ) -> None:
        """
        Initialize scanner.

        Args:
            rules: Custom rules, or None for the built-in catalog plus any
                rule files named in the config
            config: Scanner configuration
            logger: Optional logger for verbose output
            taint_analyzer: Source-to-sink analyzer used by taint matchers
        """
        self._rules: Optional[List[Rule]] = list(rules) if rules is not None else None
        self.config = config or ScannerConfig()
        self.logger = logger or ScanLogger(verbosity=VerbosityLevel.QUIET)
        self.taint_analyzer = taint_analyzer or BlockTaintAnalyzer()
        self.state = RunState.IDLE

    def _transition(self, state: RunState) -> None:
        self.logger.debug(f"State {self.state.value} -> {state.value}")
        self.state = state

    def _fail(self, exc: Exception) -> ScanResult:
        self.logger.error(str(exc))
        self._transition(RunState.FAILED)
        return ScanResult(state=RunState.FAILED, status=RunStatus.FAILED, error=exc)

    def load_rules(self) -> RuleSet:
        """Resolve the active rule set: config filters and overrides, then validation."""
        if self._rules is not None:
            candidates = list(self._rules)
        else:
            candidates = []
            for source in [BUILTIN_CATALOG, *self.config.rule_files]:
                try:
                    candidates.extend(parse_catalog(read_catalog(Path(source)), origin=str(source)))
                except (OSError, ValueError) as exc:
                    raise MalformedRuleError(f"cannot load rule file {source}: {exc}") from exc
        return validate_rules(self.config.apply(candidates))

    def run(
        self,
        inputs: Sequence[str | Path] | Mapping[str, str],
        suppressions: Optional[SuppressionSet] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ScanResult:
        self.state = RunState.IDLE
        self._transition(RunState.LOADING)
        try:
            rules = self.load_rules()
            if suppressions is None and self.config.suppressions is not None:
                suppressions = load_suppressions(self.config.suppressions)
            units = collect_sources(
                inputs,
                extensions=self.config.extensions or None,
                exclude_dirs=self.config.exclude_dirs,
            )
        except (ScannerError, OSError) as exc:
            return self._fail(exc)
        self.logger.info(f"Loaded {len(rules)} rule(s); {len(units)} file(s) to scan")

        self._transition(RunState.SCANNING)
        try:
            progress = self._scan_units(units, list(rules), cancel_event)
        except ScanError as exc:
            return self._fail(exc)

        self._transition(RunState.AGGREGATING)
        findings = aggregate(progress.findings, suppressions)

        if progress.cancelled:
            status = RunStatus.CANCELLED
        elif progress.failures:
            status = RunStatus.PARTIAL_SUCCESS
        else:
            status = RunStatus.SUCCESS

        self._transition(RunState.REPORTING)
        report = build(
            findings,
            rules,
            status=status,
            failures=progress.failures,
            scanned_files=progress.scanned,
            skipped_files=progress.skipped,
        )
        self._transition(RunState.DONE)
        self.logger.info(
            f"Scan finished ({status.value}). Total findings: {report.summary.total}, "
            f"suppressed: {report.summary.suppressed}"
        )
        return ScanResult(state=RunState.DONE, status=status, report=report)

    def _scan_units(
        self,
        units: Sequence[SourceUnit],
        rules: List[Rule],
        cancel_event: Optional[threading.Event],
    ) -> _ScanProgress:
        progress = _ScanProgress()
        queue: Deque[SourceUnit] = deque(units)
        pending: Dict[Future, str] = {}
        workers = self.config.effective_workers()
        limit = DISPATCH_FACTOR * workers

        def cancelled() -> bool:
            return cancel_event is not None and cancel_event.is_set()

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="websec-scan") as pool:
            try:
                while queue or pending:
                    while queue and len(pending) < limit and not cancelled():
                        unit = queue.popleft()
                        try:
                            text = unit.read()
                        except ScanError as exc:
                            self._record_failure(progress, unit.path, exc)
                            continue
                        self.logger.debug(f"Scanning {unit.path}")
                        future = pool.submit(
                            scan, text, rules, path=unit.path, taint_analyzer=self.taint_analyzer
                        )
                        pending[future] = unit.path

                    if queue and cancelled():
                        self.logger.warning(f"Scan cancelled; skipping {len(queue)} file(s)")
                        progress.cancelled = True
                        progress.skipped.extend(unit.path for unit in queue)
                        queue.clear()

                    if not pending:
                        continue
                    done, _ = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        path = pending.pop(future)
                        try:
                            file_findings = future.result()
                        except ScanError as exc:
                            self._record_failure(progress, path, exc)
                            continue
                        progress.findings.extend(file_findings)
                        progress.scanned.append(path)
                        if file_findings:
                            self.logger.debug(f"{path}: {len(file_findings)} finding(s)")
            except ScanError:
                for future in pending:
                    future.cancel()
                raise
        return progress

    def _record_failure(self, progress: _ScanProgress, path: str, exc: ScanError) -> None:
        if self.config.fail_fast:
            raise exc
        self.logger.warning(f"Failed to scan {path}: {exc}")
        progress.failures.append(FileFailure.from_exception(path, exc))
