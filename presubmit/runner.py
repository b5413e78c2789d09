"""Runs presubmit test scripts.

Each test named ``foo`` is the executable ``<tests_base_path>/foo.sh``; the
test passes when the script exits 0. ScriptRunner is the callback the
executors invoke for every dispatched test.
"""

from __future__ import annotations

import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO


@dataclass
class ScriptResult:
    """Result of a single test script execution."""

    name: str
    passed: bool
    exit_code: int | None = None
    duration: float = 0.0
    stdout: str = ""
    stderr: str = ""


class ScriptRunner:
    """Callable that runs one test script and reports whether it passed."""

    def __init__(
        self,
        tests_base_path: Path,
        timeout: float = 1800.0,
        stream: TextIO | None = None,
    ) -> None:
        self.tests_base_path = tests_base_path
        self.timeout = timeout
        self.stream = stream
        self.results: dict[str, ScriptResult] = {}
        self._lock = threading.Lock()

    def script_path(self, name: str) -> Path:
        return self.tests_base_path / f"{name}.sh"

    def __call__(self, name: str) -> bool:
        stream = self.stream or sys.stdout
        with self._lock:
            print(file=stream)
            print(f'### Running "{name}"', file=stream)

        result = self.run_script(name)
        with self._lock:
            self.results[name] = result
            if result.stdout:
                stream.write(result.stdout)
            if not result.passed and result.stderr:
                print(result.stderr.rstrip(), file=sys.stderr)
        return result.passed

    def run_script(self, name: str) -> ScriptResult:
        """Run the script of a single test.

        Args:
            name: Test name.

        Returns:
            ScriptResult with execution outcome. Scripts that time out or
            cannot be started count as failed.
        """
        script = self.script_path(name)

        start_time = time.monotonic()
        try:
            proc = subprocess.run(
                [str(script)],
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            message = f"Test timed out after {self.timeout} seconds"
        except FileNotFoundError:
            message = f"Test script not found: {script}"
        except OSError as e:
            message = f"OS error running test: {e}"
        else:
            return ScriptResult(
                name=name,
                passed=proc.returncode == 0,
                exit_code=proc.returncode,
                duration=time.monotonic() - start_time,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        return ScriptResult(
            name=name,
            passed=False,
            exit_code=-1,
            duration=time.monotonic() - start_time,
            stderr=message,
        )
