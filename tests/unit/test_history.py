from datetime import UTC, datetime, timedelta

from pmscript_models import TestExecutionResult, TestResult, TestStats

from pmscript import TestHistory

START = datetime(2026, 1, 1, tzinfo=UTC)


def make_run(passed: int, failed: int, minute: int) -> TestExecutionResult:
    tests = [TestResult(name=f"pass {i}", passed=True) for i in range(passed)]
    tests += [TestResult(name=f"fail {i}", passed=False, error="x") for i in range(failed)]
    return TestExecutionResult(
        success=True,
        tests=tests,
        executed_at=START + timedelta(minutes=minute),
        **TestStats.from_tests(tests).model_dump(),
    )


def test_history_is_most_recent_first():
    history = TestHistory()
    for minute in range(3):
        history.append(make_run(1, 0, minute))

    runs = history.history()

    assert [run.executed_at for run in runs] == [START + timedelta(minutes=m) for m in (2, 1, 0)]


def test_history_limit():
    history = TestHistory()
    for minute in range(5):
        history.append(make_run(1, 0, minute))

    runs = history.history(limit=2)

    assert len(runs) == 2
    assert runs[0].executed_at == START + timedelta(minutes=4)


def test_history_is_bounded():
    history = TestHistory(size=3)
    for minute in range(5):
        history.append(make_run(1, 0, minute))

    assert len(history) == 3
    assert history.history()[-1].executed_at == START + timedelta(minutes=2)


def test_clear():
    history = TestHistory()
    history.append(make_run(1, 0, 0))

    history.clear()

    assert len(history) == 0
    assert history.history() == []


def test_empty_report():
    report = TestHistory().report()

    assert report.total_runs == 0
    assert report.total_tests == 0
    assert report.average_pass_rate == "0"
    assert report.recent_results == []


def test_report():
    history = TestHistory()
    history.append(make_run(2, 1, 0))
    history.append(make_run(1, 0, 1))

    report = history.report()

    assert report.total_runs == 2
    assert report.total_tests == 4
    assert report.total_passed == 3
    assert report.total_failed == 1
    assert report.average_pass_rate == "75.00"
    assert [summary.pass_rate for summary in report.recent_results] == ["66.67", "100.00"]


def test_report_lists_recent_runs_only():
    history = TestHistory(report_recent=2)
    for minute in range(4):
        history.append(make_run(1, 0, minute))

    report = history.report()

    assert report.total_runs == 4
    assert [summary.executed_at for summary in report.recent_results] == [START + timedelta(minutes=m) for m in (2, 3)]
