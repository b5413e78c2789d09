"""Summaries of a finished presubmit run.

Separates executed tests (with their final status, in execution order) from
skipped tests (never eligible because a dependency did not pass).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from presubmit.scheduling.graph import FAILED, NOT_EXECUTED, PASSED, Run


@dataclass
class ExecutedTest:
    """Final outcome of a test that was executed."""

    name: str
    status: str  # passed, failed


@dataclass
class Report:
    """Structured result of one presubmit run."""

    executed: list[ExecutedTest] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    dropped_dependencies: dict[str, list[str]] = field(default_factory=dict)

    @property
    def passed(self) -> list[str]:
        return [t.name for t in self.executed if t.status == PASSED]

    @property
    def failed(self) -> list[str]:
        return [t.name for t in self.executed if t.status == FAILED]

    @property
    def all_passed(self) -> bool:
        """True when nothing failed and nothing was skipped."""
        return not self.failed and not self.skipped

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dict suitable for JSON/YAML serialization."""
        return {
            "summary": {
                "total": len(self.executed) + len(self.skipped),
                "passed": len(self.passed),
                "failed": len(self.failed),
                "skipped": len(self.skipped),
            },
            "executed": [
                {"name": t.name, "status": t.status} for t in self.executed
            ],
            "skipped": list(self.skipped),
            "dropped_dependencies": {
                name: list(deps)
                for name, deps in self.dropped_dependencies.items()
            },
        }


def summarize(run: Run, executed_in_order: list[str]) -> Report:
    """Build a Report from the final state of a run.

    Args:
        run: The run after the executor has finished.
        executed_in_order: Names returned by the executor.

    Returns:
        Report with executed tests in execution order and skipped tests
        sorted by name.
    """
    executed = [
        ExecutedTest(name=name, status=run.tests[name].status)
        for name in executed_in_order
    ]
    skipped = sorted(
        test.name for test in run if test.status == NOT_EXECUTED
    )
    return Report(
        executed=executed,
        skipped=skipped,
        dropped_dependencies=run.dropped_dependencies(),
    )
