import threading
from collections import deque

from pmscript_models import TestExecutionResult, TestReport, TestRunSummary

from .constants import DEFAULT_HISTORY_LIMIT, DEFAULT_HISTORY_SIZE, DEFAULT_REPORT_RECENT


class TestHistory:
    """Bounded record of test-script runs; the oldest runs are dropped first."""

    __test__ = False

    def __init__(self, size: int = DEFAULT_HISTORY_SIZE, report_recent: int = DEFAULT_REPORT_RECENT):
        self._lock = threading.Lock()
        self._runs: deque[TestExecutionResult] = deque(maxlen=size)
        self.report_recent = report_recent

    def __len__(self) -> int:
        with self._lock:
            return len(self._runs)

    def append(self, result: TestExecutionResult) -> None:
        with self._lock:
            self._runs.append(result)

    def history(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[TestExecutionResult]:
        """Most recent runs first."""
        with self._lock:
            runs = list(self._runs)
        runs.sort(key=lambda run: run.executed_at, reverse=True)
        return runs[:limit]

    def clear(self) -> None:
        with self._lock:
            self._runs.clear()

    def report(self) -> TestReport:
        with self._lock:
            runs = list(self._runs)

        total_tests = sum(run.total_tests for run in runs)
        total_passed = sum(run.passed_tests for run in runs)

        return TestReport(
            total_runs=len(runs),
            total_tests=total_tests,
            total_passed=total_passed,
            total_failed=sum(run.failed_tests for run in runs),
            average_pass_rate=f"{total_passed / total_tests * 100:.2f}" if total_tests > 0 else "0",
            recent_results=[
                TestRunSummary(
                    executed_at=run.executed_at,
                    total_tests=run.total_tests,
                    passed_tests=run.passed_tests,
                    failed_tests=run.failed_tests,
                    pass_rate=run.pass_rate,
                )
                for run in runs[-self.report_recent :]
            ],
        )
