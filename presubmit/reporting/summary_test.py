"""Unit tests for run summaries."""

from __future__ import annotations

from presubmit.reporting.summary import ExecutedTest, Report, summarize
from presubmit.scheduling.executor import SequentialExecutor
from presubmit.scheduling.graph import FAILED, PASSED, Run


def _run_and_summarize(selected, deps, outcomes):
    run = Run.build(selected, deps)
    executed = SequentialExecutor(run, lambda name: outcomes.get(name, True)).execute()
    return summarize(run, executed)


class TestSummarize:
    """Tests for summarize()."""

    def test_all_pass(self):
        """All tests pass: everything executed, nothing skipped."""
        report = _run_and_summarize(
            ["build", "unit", "integration"],
            {"unit": ["build"], "integration": ["unit"]},
            {},
        )
        assert [t.name for t in report.executed] == ["build", "unit", "integration"]
        assert report.skipped == []
        assert report.all_passed

    def test_failure_skips_dependents(self):
        """unit fails: integration is skipped."""
        report = _run_and_summarize(
            ["build", "unit", "integration"],
            {"unit": ["build"], "integration": ["unit"]},
            {"unit": False},
        )
        assert report.executed == [
            ExecutedTest("build", PASSED),
            ExecutedTest("unit", FAILED),
        ]
        assert report.skipped == ["integration"]
        assert report.failed == ["unit"]
        assert report.passed == ["build"]
        assert not report.all_passed

    def test_skipped_sorted_by_name(self):
        """Skipped tests are listed lexicographically."""
        report = _run_and_summarize(
            ["root", "zeta", "alpha", "mid"],
            {"zeta": ["root"], "alpha": ["root"], "mid": ["root"]},
            {"root": False},
        )
        assert report.skipped == ["alpha", "mid", "zeta"]

    def test_executed_keeps_execution_order(self):
        """Executed tests are listed in the order they ran."""
        run = Run.build(["a", "b"], {"a": ["b"]})
        run.set_status("b", PASSED)
        run.set_status("a", FAILED)
        report = summarize(run, ["b", "a"])
        assert [t.name for t in report.executed] == ["b", "a"]

    def test_dropped_dependencies_reported(self):
        """Dependencies removed during construction appear in the report."""
        report = _run_and_summarize(["a"], {"a": ["missing"]}, {})
        assert report.dropped_dependencies == {"a": ["missing"]}

    def test_empty_run(self):
        """An empty run gives an empty, passing report."""
        report = summarize(Run.build([], {}), [])
        assert report.executed == []
        assert report.skipped == []
        assert report.all_passed

    def test_summarize_has_no_side_effects(self):
        """Summarizing leaves the run untouched."""
        run = Run.build(["a", "b"], {"b": ["a"]})
        run.set_status("a", FAILED)
        summarize(run, ["a"])
        assert run.tests["a"].status == FAILED
        assert run.tests["b"].dependencies == ["a"]


class TestReportToDict:
    """Tests for Report.to_dict()."""

    def test_counts(self):
        """Summary counts add up."""
        report = Report(
            executed=[ExecutedTest("a", PASSED), ExecutedTest("b", FAILED)],
            skipped=["c"],
        )
        data = report.to_dict()
        assert data["summary"] == {"total": 3, "passed": 1, "failed": 1, "skipped": 1}
        assert data["executed"] == [
            {"name": "a", "status": "passed"},
            {"name": "b", "status": "failed"},
        ]
        assert data["skipped"] == ["c"]
        assert data["dropped_dependencies"] == {}
