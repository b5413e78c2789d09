"""Test scheduling: dependency graph construction and executors."""

from presubmit.scheduling.executor import ParallelExecutor, SequentialExecutor
from presubmit.scheduling.graph import DependencyCycleError, Run, ScheduledTest

__all__ = [
    "DependencyCycleError",
    "ParallelExecutor",
    "Run",
    "ScheduledTest",
    "SequentialExecutor",
]
