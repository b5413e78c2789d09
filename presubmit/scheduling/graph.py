"""Dependency graph for one presubmit run.

Provides ScheduledTest (a selected test and its filtered prerequisites) and
Run (the set of tests selected for one invocation, with cycle detection).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping, Sequence

NOT_EXECUTED = "not_executed"
PASSED = "passed"
FAILED = "failed"

VALID_STATUSES = frozenset({NOT_EXECUTED, PASSED, FAILED})


class DependencyCycleError(ValueError):
    """Raised when the selected tests contain a circular dependency."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__(f"Dependency cycle detected: {' -> '.join(cycle)}")


@dataclass
class ScheduledTest:
    """A selected test and its prerequisites within the current run."""

    name: str
    dependencies: list[str] = field(default_factory=list)
    status: str = NOT_EXECUTED

    # Declared prerequisites that were not selected for this run
    dropped_dependencies: list[str] = field(default_factory=list)


class Run:
    """The tests selected for one scheduling invocation.

    Lookups go through ``tests`` (keyed by name); ``order`` keeps the
    caller's selection order, which executors use to break ties.
    """

    def __init__(self) -> None:
        self.tests: dict[str, ScheduledTest] = {}
        self.order: list[str] = []

    @classmethod
    def build(
        cls,
        selected_tests: Iterable[str],
        all_dependencies: Mapping[str, Sequence[str]] | None = None,
    ) -> Run:
        """Construct a Run restricted to the selected tests.

        Dependencies naming a test outside the selection are dropped from
        the test's dependency list and kept in ``dropped_dependencies``.

        Args:
            selected_tests: Test names in scheduling order. Repeated names
                keep their first position.
            all_dependencies: Map of test name to the names it depends on.

        Returns:
            A Run with every test in the not_executed state.
        """
        run = cls()
        all_dependencies = all_dependencies or {}

        for name in selected_tests:
            if name not in run.tests:
                run.tests[name] = ScheduledTest(name=name)
                run.order.append(name)

        for name in run.order:
            test = run.tests[name]
            for dep_name in all_dependencies.get(name, ()):
                if dep_name in run.tests:
                    if dep_name not in test.dependencies:
                        test.dependencies.append(dep_name)
                elif dep_name not in test.dropped_dependencies:
                    test.dropped_dependencies.append(dep_name)

        return run

    def __len__(self) -> int:
        return len(self.order)

    def __contains__(self, name: object) -> bool:
        return name in self.tests

    def __iter__(self) -> Iterator[ScheduledTest]:
        for name in self.order:
            yield self.tests[name]

    def find_cycle(self) -> list[str] | None:
        """Detect cycles in the run using DFS.

        Colors are kept in a table local to this call, so the tests
        themselves are never touched.

        Returns:
            The node names forming the cycle, starting and ending with the
            same name, or None if the run is acyclic.
        """
        WHITE, GRAY, BLACK = 0, 1, 2
        color: dict[str, int] = {name: WHITE for name in self.order}
        path: list[str] = []

        def dfs(name: str) -> list[str] | None:
            color[name] = GRAY
            path.append(name)

            for dep_name in self.tests[name].dependencies:
                if color[dep_name] == GRAY:
                    cycle_start = path.index(dep_name)
                    return path[cycle_start:] + [dep_name]
                if color[dep_name] == WHITE:
                    result = dfs(dep_name)
                    if result is not None:
                        return result

            path.pop()
            color[name] = BLACK
            return None

        for name in self.order:
            if color[name] == WHITE:
                result = dfs(name)
                if result is not None:
                    return result

        return None

    def has_cycle(self) -> bool:
        """Return True if any circular dependency exists."""
        return self.find_cycle() is not None

    def validate(self) -> None:
        """Ensure the run can be scheduled.

        Raises:
            DependencyCycleError: If the run contains a cycle.
        """
        cycle = self.find_cycle()
        if cycle is not None:
            raise DependencyCycleError(cycle)

    def is_eligible(self, name: str) -> bool:
        """Check whether a test may run now.

        A test is eligible when it has not been executed and every one of
        its dependencies has passed.
        """
        test = self.tests[name]
        if test.status != NOT_EXECUTED:
            return False
        return all(self.tests[dep].status == PASSED for dep in test.dependencies)

    def set_status(self, name: str, status: str) -> None:
        """Record the outcome of a test.

        Raises:
            ValueError: If the status is unknown.
        """
        if status not in VALID_STATUSES:
            raise ValueError(f"Unknown test status: {status}")
        self.tests[name].status = status

    def dropped_dependencies(self) -> dict[str, list[str]]:
        """Map each test to the declared dependencies that were dropped."""
        return {
            name: list(self.tests[name].dropped_dependencies)
            for name in self.order
            if self.tests[name].dropped_dependencies
        }
