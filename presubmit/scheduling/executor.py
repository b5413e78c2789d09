"""Executors that run the tests of a Run in dependency order.

SequentialExecutor dispatches one test at a time, always picking the first
eligible test in selection order. ParallelExecutor dispatches every eligible
test onto a thread pool with a sliding window of max_parallel tests.
"""

from __future__ import annotations

import asyncio
import os
from typing import Callable

from presubmit.scheduling.graph import FAILED, PASSED, Run

RunOne = Callable[[str], bool]


class SequentialExecutor:
    """Executes tests one at a time in selection order.

    After every test the selection is rescanned from the top, so a test that
    becomes eligible early in the declared order is preferred over later
    ones.
    """

    def __init__(self, run: Run, run_one: RunOne) -> None:
        self.run = run
        self.run_one = run_one

    def execute(self) -> list[str]:
        """Execute tests until no eligible test is left.

        Returns:
            Names of the executed tests in execution order.

        Raises:
            DependencyCycleError: If the run contains a cycle. Nothing is
                executed in that case.
        """
        self.run.validate()

        executed: list[str] = []
        for _ in range(len(self.run)):
            name = self._next_eligible()
            if name is None:
                break

            passed = bool(self.run_one(name))
            self.run.set_status(name, PASSED if passed else FAILED)
            executed.append(name)

        return executed

    def _next_eligible(self) -> str | None:
        for name in self.run.order:
            if self.run.is_eligible(name):
                return name
        return None


class ParallelExecutor:
    """Executes independent tests concurrently using asyncio.

    Uses a semaphore to limit concurrency to max_parallel tests. Each test
    is dispatched as soon as all of its dependencies have passed;
    ``run_one`` is called from a worker thread, while the run itself is only
    updated from the event loop.
    """

    def __init__(
        self,
        run: Run,
        run_one: RunOne,
        max_parallel: int | None = None,
    ) -> None:
        self.run = run
        self.run_one = run_one
        self.max_parallel = max_parallel or os.cpu_count() or 4

    def execute(self) -> list[str]:
        """Execute all tests that become eligible.

        Returns:
            Names of the executed tests in completion order.

        Raises:
            DependencyCycleError: If the run contains a cycle.
        """
        self.run.validate()
        if not len(self.run):
            return []
        return asyncio.run(self._execute_async())

    async def _execute_async(self) -> list[str]:
        semaphore = asyncio.Semaphore(self.max_parallel)
        loop = asyncio.get_running_loop()

        pending: list[str] = list(self.run.order)
        running: set[str] = set()
        executed: list[str] = []

        # Wakes the scheduler when a test finishes
        wake = asyncio.Event()

        async def run_test(name: str) -> None:
            try:
                async with semaphore:
                    passed = await loop.run_in_executor(None, self.run_one, name)
                self.run.set_status(name, PASSED if passed else FAILED)
                executed.append(name)
            finally:
                running.discard(name)
                wake.set()

        tasks: list[asyncio.Task[None]] = []

        while True:
            ready = [name for name in pending if self.run.is_eligible(name)]
            for name in ready:
                pending.remove(name)
                running.add(name)
                tasks.append(asyncio.create_task(run_test(name)))

            if not running:
                break

            wake.clear()
            await wake.wait()

        # Surfaces any exception raised by run_one
        await asyncio.gather(*tasks)

        return executed
