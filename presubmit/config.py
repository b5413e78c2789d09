"""Presubmit configuration files.

PresubmitConfig reads the JSON settings file (script locations, parallelism,
Jenkins access) and falls back to defaults for anything missing.
PresubmitTestsConfig reads the tests config: which tests run for each
repository, and which tests each test depends on.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "tests_base_path": "scripts/presubmit",
    "max_parallel": 1,
    "timeout": 1800.0,
    "jenkins_host": None,
    "jenkins_token": None,
    "jenkins_project": "presubmit-test",
    "reports_dir": None,
}


class PresubmitConfig:
    """Manages the presubmit settings JSON file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        if path is not None and path.exists():
            self._load()

    def _load(self) -> None:
        """Load config from the file.

        Raises:
            ValueError: If a setting has a value of the wrong type.
        """
        assert self.path is not None
        try:
            text = self.path.read_text(encoding="utf-8")
            data = json.loads(text)
            if isinstance(data, dict):
                self._data = {**DEFAULT_CONFIG, **data}
        except (json.JSONDecodeError, OSError):
            self._data = dict(DEFAULT_CONFIG)
        _check_values(self._data)

    def save(self) -> None:
        """Write config to the file."""
        if self.path is None:
            raise ValueError("No config file path specified")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2)
            f.write("\n")

    def with_overrides(self, **values: Any) -> PresubmitConfig:
        """Return a copy with the given values replaced.

        None values are ignored, so unset command-line flags keep the
        configured value.

        Raises:
            ValueError: If a key is not a known config option, or a value
                has the wrong type.
        """
        unknown = sorted(k for k in values if k not in DEFAULT_CONFIG)
        if unknown:
            raise ValueError(f"Unknown config options: {', '.join(unknown)}")
        copy = PresubmitConfig(None)
        copy.path = self.path
        copy._data = dict(self._data)
        for key, value in values.items():
            if value is not None:
                copy._data[key] = value
        _check_values(copy._data)
        return copy

    @property
    def tests_base_path(self) -> Path:
        """Get the directory holding the ``<test>.sh`` scripts."""
        return Path(
            self._data.get("tests_base_path", DEFAULT_CONFIG["tests_base_path"])
        )

    @property
    def max_parallel(self) -> int:
        """Get the max concurrently running tests (1 = serial)."""
        val = self._data.get("max_parallel", DEFAULT_CONFIG["max_parallel"])
        return max(1, int(val))

    @property
    def timeout(self) -> float:
        """Get the per-test timeout in seconds."""
        return float(self._data.get("timeout", DEFAULT_CONFIG["timeout"]))

    @property
    def jenkins_host(self) -> str | None:
        return self._data.get("jenkins_host") or None

    @property
    def jenkins_token(self) -> str | None:
        return self._data.get("jenkins_token") or None

    @property
    def jenkins_project(self) -> str:
        """Get the Jenkins job that runs presubmit builds."""
        return str(
            self._data.get("jenkins_project", DEFAULT_CONFIG["jenkins_project"])
        )

    @property
    def reports_dir(self) -> Path | None:
        """Get the directory of JUnit reports (None = tests_base_path)."""
        val = self._data.get("reports_dir")
        return Path(val) if val else None


class PresubmitTestsConfig:
    """Tests to run per repository and dependencies between tests."""

    def __init__(
        self,
        tests: dict[str, list[str]] | None = None,
        dependencies: dict[str, list[str]] | None = None,
    ) -> None:
        self.tests: dict[str, list[str]] = tests or {}
        self.dependencies: dict[str, list[str]] = dependencies or {}

    @classmethod
    def from_dict(cls, data: Any) -> PresubmitTestsConfig:
        """Construct from a parsed tests config document.

        Args:
            data: Dict with optional 'tests' and 'dependencies' keys, each
                an object mapping names to lists of test names.

        Raises:
            ValueError: If the document does not have that shape.
        """
        if not isinstance(data, dict):
            raise ValueError("Tests config must be a JSON object")
        return cls(
            tests=_string_list_map(data.get("tests", {}), "tests"),
            dependencies=_string_list_map(
                data.get("dependencies", {}), "dependencies"
            ),
        )

    @classmethod
    def load(cls, path: Path) -> PresubmitTestsConfig:
        """Read a tests config file.

        Raises:
            OSError: If the file cannot be read.
            ValueError: If the file is not a valid tests config.
        """
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
        return cls.from_dict(data)

    def tests_for_repo(self, repo: str) -> list[str]:
        """Get the tests configured for a repository ([] if none)."""
        return list(self.tests.get(repo, []))

    def has_repo(self, repo: str) -> bool:
        return repo in self.tests


def _string_list_map(value: Any, key: str) -> dict[str, list[str]]:
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be an object")
    result: dict[str, list[str]] = {}
    for name, items in value.items():
        if not isinstance(items, list) or not all(isinstance(i, str) for i in items):
            raise ValueError(f"'{key}.{name}' must be a list of test names")
        result[name] = list(items)
    return result


def _check_values(data: dict[str, Any]) -> None:
    """Raise ValueError for settings the typed properties cannot convert."""
    for key, convert in (("max_parallel", int), ("timeout", float)):
        val = data[key]
        try:
            number = convert(val)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid value for {key}: {val!r}") from e
        if key == "timeout" and not number > 0:
            raise ValueError(f"Invalid value for {key}: {val!r} (must be positive)")
    for key in ("tests_base_path", "jenkins_project"):
        if not isinstance(data[key], (str, Path)):
            raise ValueError(f"Invalid value for {key}: {data[key]!r}")
    for key in ("jenkins_host", "jenkins_token", "reports_dir"):
        if data[key] is not None and not isinstance(data[key], (str, Path)):
            raise ValueError(f"Invalid value for {key}: {data[key]!r}")
