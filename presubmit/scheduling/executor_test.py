"""Unit tests for the sequential and parallel executors."""

from __future__ import annotations

import threading
import time

import pytest

from presubmit.scheduling.executor import ParallelExecutor, SequentialExecutor
from presubmit.scheduling.graph import (
    FAILED,
    NOT_EXECUTED,
    PASSED,
    DependencyCycleError,
    Run,
)


class FakeRunner:
    """Records calls and returns a scripted outcome per test."""

    def __init__(self, outcomes: dict[str, bool] | None = None, delay: float = 0.0):
        self.outcomes = outcomes or {}
        self.delay = delay
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def __call__(self, name: str) -> bool:
        with self._lock:
            self.calls.append(name)
        if self.delay:
            time.sleep(self.delay)
        return self.outcomes.get(name, True)


def _assert_dependencies_first(run: Run, executed: list[str]) -> None:
    for i, name in enumerate(executed):
        for dep in run.tests[name].dependencies:
            assert dep in executed[:i], f"{name} ran before its dependency {dep}"


class TestSequentialExecutor:
    """Tests for the declared-order serial executor."""

    def test_no_dependencies_selection_order(self):
        """Without dependencies, tests run exactly in selection order."""
        run = Run.build(["c", "a", "b"], {})
        runner = FakeRunner()
        executed = SequentialExecutor(run, runner).execute()

        assert executed == ["c", "a", "b"]
        assert runner.calls == ["c", "a", "b"]
        assert all(t.status == PASSED for t in run)

    def test_all_pass_chain(self):
        """build -> unit -> integration all pass."""
        run = Run.build(
            ["build", "unit", "integration"],
            {"unit": ["build"], "integration": ["unit"]},
        )
        executed = SequentialExecutor(run, FakeRunner()).execute()
        assert executed == ["build", "unit", "integration"]

    def test_failed_dependency_skips_dependent(self):
        """When unit fails, integration is never run."""
        run = Run.build(
            ["build", "unit", "integration"],
            {"unit": ["build"], "integration": ["unit"]},
        )
        runner = FakeRunner({"unit": False})
        executed = SequentialExecutor(run, runner).execute()

        assert executed == ["build", "unit"]
        assert run.tests["unit"].status == FAILED
        assert run.tests["integration"].status == NOT_EXECUTED
        assert "integration" not in runner.calls

    def test_dependency_declared_later_runs_first(self):
        """A test waits for a dependency listed after it."""
        run = Run.build(["a", "b"], {"a": ["b"]})
        executed = SequentialExecutor(run, FakeRunner()).execute()
        assert executed == ["b", "a"]

    def test_scan_restarts_from_top(self):
        """After each dispatch the earliest eligible test is preferred."""
        # a waits on c; once c passes, a beats d in declared order
        run = Run.build(["a", "b", "c", "d"], {"a": ["c"], "b": ["c"]})
        executed = SequentialExecutor(run, FakeRunner()).execute()
        assert executed == ["c", "a", "b", "d"]

    def test_independent_branch_unaffected(self):
        """Failures only block their own dependents."""
        run = Run.build(["a", "b", "c"], {"b": ["a"]})
        executed = SequentialExecutor(run, FakeRunner({"a": False})).execute()
        assert executed == ["a", "c"]
        assert run.tests["c"].status == PASSED

    def test_transitive_skip(self):
        """Skips propagate through chains."""
        run = Run.build(["a", "b", "c"], {"b": ["a"], "c": ["b"]})
        executed = SequentialExecutor(run, FakeRunner({"a": False})).execute()
        assert executed == ["a"]
        assert run.tests["b"].status == NOT_EXECUTED
        assert run.tests["c"].status == NOT_EXECUTED

    def test_unselected_dependency_does_not_block(self):
        """A dependency outside the selection never blocks a test."""
        run = Run.build(["a"], {"a": ["c"]})
        executed = SequentialExecutor(run, FakeRunner()).execute()
        assert executed == ["a"]

    def test_failed_test_not_retried(self):
        """Each test is run at most once."""
        run = Run.build(["a", "b"], {})
        runner = FakeRunner({"a": False, "b": False})
        SequentialExecutor(run, runner).execute()
        assert runner.calls == ["a", "b"]

    def test_cycle_prevents_any_execution(self):
        """A cyclic run raises before anything is executed."""
        run = Run.build(["a", "b", "c"], {"a": ["b"], "b": ["a"]})
        runner = FakeRunner()
        with pytest.raises(DependencyCycleError):
            SequentialExecutor(run, runner).execute()
        assert runner.calls == []

    def test_empty_run(self):
        """An empty run executes nothing."""
        run = Run.build([], {})
        assert SequentialExecutor(run, FakeRunner()).execute() == []

    def test_truthy_results_coerced(self):
        """Non-bool callback results are interpreted by truthiness."""
        run = Run.build(["a", "b"], {})
        outcomes = {"a": 1, "b": 0}
        executed = SequentialExecutor(run, lambda n: outcomes[n]).execute()
        assert executed == ["a", "b"]
        assert run.tests["a"].status == PASSED
        assert run.tests["b"].status == FAILED

    def test_callback_exception_propagates(self):
        """Errors raised by the callback are not swallowed."""
        run = Run.build(["a"], {})

        def boom(name: str) -> bool:
            raise RuntimeError("runner broke")

        with pytest.raises(RuntimeError, match="runner broke"):
            SequentialExecutor(run, boom).execute()

    def test_dependencies_precede_dependents(self):
        """Every executed test's dependencies were executed earlier."""
        run = Run.build(
            ["e", "d", "c", "b", "a"],
            {"e": ["d", "a"], "d": ["c"], "c": ["b"], "b": ["a"]},
        )
        executed = SequentialExecutor(run, FakeRunner()).execute()
        assert len(executed) == 5
        _assert_dependencies_first(run, executed)


class TestParallelExecutor:
    """Tests for the concurrent executor."""

    def test_all_pass(self):
        """All tests run and pass."""
        run = Run.build(["a", "b", "c"], {"c": ["a", "b"]})
        executed = ParallelExecutor(run, FakeRunner(), max_parallel=4).execute()
        assert sorted(executed) == ["a", "b", "c"]
        assert executed[-1] == "c"
        assert all(t.status == PASSED for t in run)

    def test_dependency_gating(self):
        """A failed dependency keeps its dependents from running."""
        run = Run.build(
            ["build", "unit", "integration", "lint"],
            {"unit": ["build"], "integration": ["unit"]},
        )
        runner = FakeRunner({"unit": False})
        executed = ParallelExecutor(run, runner, max_parallel=2).execute()

        assert sorted(executed) == ["build", "lint", "unit"]
        assert run.tests["integration"].status == NOT_EXECUTED
        assert "integration" not in runner.calls

    def test_dependencies_precede_dependents(self):
        """Completion order still respects dependencies."""
        run = Run.build(
            ["a", "b", "c", "d", "e"],
            {"c": ["a"], "d": ["b", "c"], "e": ["d"]},
        )
        executed = ParallelExecutor(
            run, FakeRunner(delay=0.01), max_parallel=3
        ).execute()
        assert len(executed) == 5
        _assert_dependencies_first(run, executed)

    def test_independent_tests_overlap(self):
        """Independent tests run concurrently."""
        active = 0
        peak = 0
        lock = threading.Lock()

        def run_one(name: str) -> bool:
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.05)
            with lock:
                active -= 1
            return True

        run = Run.build(["a", "b", "c"], {})
        ParallelExecutor(run, run_one, max_parallel=3).execute()
        assert peak >= 2

    def test_max_parallel_bounds_concurrency(self):
        """No more than max_parallel tests run at once."""
        active = 0
        peak = 0
        lock = threading.Lock()

        def run_one(name: str) -> bool:
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.02)
            with lock:
                active -= 1
            return True

        run = Run.build(["a", "b", "c", "d", "e"], {})
        ParallelExecutor(run, run_one, max_parallel=2).execute()
        assert peak <= 2

    def test_cycle_prevents_any_execution(self):
        """Cyclic runs raise before dispatching anything."""
        run = Run.build(["a"], {"a": ["a"]})
        runner = FakeRunner()
        with pytest.raises(DependencyCycleError):
            ParallelExecutor(run, runner).execute()
        assert runner.calls == []

    def test_empty_run(self):
        """An empty run executes nothing."""
        run = Run.build([], {})
        assert ParallelExecutor(run, FakeRunner()).execute() == []

    def test_callback_exception_propagates(self):
        """Errors raised by the callback surface after the run drains."""
        run = Run.build(["a", "b"], {"b": ["a"]})

        def boom(name: str) -> bool:
            raise RuntimeError("runner broke")

        with pytest.raises(RuntimeError, match="runner broke"):
            ParallelExecutor(run, boom, max_parallel=2).execute()
        assert run.tests["b"].status == NOT_EXECUTED

    def test_default_max_parallel(self):
        """max_parallel defaults to a positive worker count."""
        run = Run.build(["a"], {})
        assert ParallelExecutor(run, FakeRunner()).max_parallel >= 1
