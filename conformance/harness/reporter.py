"""
Report generation for Cofre conformance results.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from comparator import ComparisonResult, Divergence

_REPORT_KEYS = (
    "timestamp", "clients", "reference_client", "total_tests", "total_passed",
    "total_failed", "total_skipped", "execution_time_ms",
)
_SUITE_KEYS = (
    "suite_name", "total_tests", "passed_tests", "failed_tests",
    "skipped_tests", "execution_time_ms", "pass_rate",
)


@dataclass
class TestResult:
    """Result of a single vector."""
    vector_name: str
    suite_name: str
    passed: bool
    execution_time_ms: float
    comparison: Optional[ComparisonResult] = None
    skipped: bool = False
    error: Optional[str] = None


@dataclass
class SuiteResult:
    """Result of one vector file."""
    suite_name: str
    execution_time_ms: float
    test_results: List[TestResult] = field(default_factory=list)

    @property
    def total_tests(self) -> int:
        return sum(1 for r in self.test_results if not r.skipped)

    @property
    def passed_tests(self) -> int:
        return sum(1 for r in self.test_results if r.passed and not r.skipped)

    @property
    def failed_tests(self) -> int:
        return self.total_tests - self.passed_tests

    @property
    def skipped_tests(self) -> int:
        return sum(1 for r in self.test_results if r.skipped)

    @property
    def pass_rate(self) -> float:
        if self.total_tests == 0:
            return 0.0
        return self.passed_tests / self.total_tests * 100


@dataclass
class ConformanceReport:
    """Complete conformance run."""
    timestamp: str
    clients: List[str]
    reference_client: str
    execution_time_ms: float
    suite_results: List[SuiteResult]
    divergences: List[Divergence]

    @property
    def total_tests(self) -> int:
        return sum(s.total_tests for s in self.suite_results)

    @property
    def total_passed(self) -> int:
        return sum(s.passed_tests for s in self.suite_results)

    @property
    def total_failed(self) -> int:
        return sum(s.failed_tests for s in self.suite_results)

    @property
    def total_skipped(self) -> int:
        return sum(s.skipped_tests for s in self.suite_results)

    @property
    def pass_rate(self) -> float:
        return self.total_passed / max(self.total_tests, 1) * 100


class ReportGenerator:
    """Writes JSON and text reports into a result directory."""

    def __init__(self, result_dir: str):
        self.result_dir = result_dir
        Path(result_dir).mkdir(parents=True, exist_ok=True)

    def generate_report(
        self,
        suite_results: List[SuiteResult],
        clients: List[str],
        reference_client: str,
        execution_time_ms: float,
    ) -> ConformanceReport:
        divergences = [
            d
            for suite in suite_results
            for test in suite.test_results
            if test.comparison
            for d in test.comparison.divergences
        ]
        return ConformanceReport(
            timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            clients=clients,
            reference_client=reference_client,
            execution_time_ms=execution_time_ms,
            suite_results=suite_results,
            divergences=divergences,
        )

    def _write(self, filename: str, text: str) -> str:
        target = Path(self.result_dir) / filename
        target.write_text(text)
        return str(target)

    def write_json_report(self, report: ConformanceReport, filename: str = "conformance-report.json") -> str:
        return self._write(filename, json.dumps(self._report_to_dict(report), indent=2))

    def write_summary(self, report: ConformanceReport, filename: str = "conformance-summary.txt") -> str:
        return self._write(filename, "\n".join(self._header(report) + self._details(report)))

    def print_summary(self, report: ConformanceReport) -> None:
        print("\n".join(["", *self._header(report)]))
        shown = report.divergences[:10]
        if shown:
            print(f"{len(report.divergences)} divergence(s):")
            for div in shown:
                print(f"  {div.vector_name} [{div.client}] {div.field}")
            hidden = len(report.divergences) - len(shown)
            if hidden:
                print(f"  (+{hidden} not shown, see {self.result_dir})")
        print("Overall: " + ("PASSED" if report.total_failed == 0 else "FAILED"))

    def _header(self, report: ConformanceReport) -> List[str]:
        rule = "=" * 60
        lines = [
            rule,
            "Cofre conformance",
            rule,
            f"run at     {report.timestamp}",
            f"clients    {', '.join(report.clients)} (reference {report.reference_client})",
            f"vectors    {report.total_tests} run, {report.total_passed} passed, "
            f"{report.total_failed} failed, {report.total_skipped} skipped",
            f"pass rate  {report.pass_rate:.1f}% in {report.execution_time_ms:.2f}ms",
            "",
        ]
        for suite in report.suite_results:
            mark = "ok  " if suite.failed_tests == 0 else "FAIL"
            lines.append(
                f"  {mark} {suite.suite_name} {suite.passed_tests}/{suite.total_tests}"
                f" skipped={suite.skipped_tests}"
            )
        return lines

    def _details(self, report: ConformanceReport) -> List[str]:
        lines: List[str] = []
        errored = [t for s in report.suite_results for t in s.test_results if t.error]
        if errored:
            lines += ["", "errors:"]
            lines += [f"  {t.suite_name}/{t.vector_name}: {t.error}" for t in errored]
        if report.divergences:
            lines += ["", "divergences:"]
        for div in report.divergences:
            lines += [
                f"  {div.vector_name} {div.field}",
                f"    {div.reference_client} = {div.expected}",
                f"    {div.client} = {div.actual}",
            ]
            if div.details:
                lines.append(f"    {div.details}")
        return lines

    def _report_to_dict(self, report: ConformanceReport) -> Dict[str, Any]:
        out: Dict[str, Any] = {key: getattr(report, key) for key in _REPORT_KEYS}
        out["total_suites"] = len(report.suite_results)
        out["total_divergences"] = len(report.divergences)
        out["suite_results"] = []
        for suite in report.suite_results:
            entry = {key: getattr(suite, key) for key in _SUITE_KEYS}
            entry["failures"] = [
                {"vector_name": t.vector_name, "error": t.error}
                for t in suite.test_results
                if not (t.passed or t.skipped)
            ]
            out["suite_results"].append(entry)
        out["divergences"] = [
            {**asdict(d), "expected": str(d.expected), "actual": str(d.actual)}
            for d in report.divergences
        ]
        return out
