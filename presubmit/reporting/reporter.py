"""Report file generation for presubmit runs.

Writes the structured run summary as JSON or YAML, tagged with the
repository, the Jenkins build number, and the time it was generated.
"""

from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Any

import yaml

from presubmit.reporting.summary import Report

YAML_SUFFIXES = frozenset({".yaml", ".yml"})


class Reporter:
    """Collects a run summary plus context and writes report files."""

    def __init__(self, report: Report) -> None:
        self.report = report
        self.repo: str | None = None
        self.build_number: int | None = None
        self.last_statuses: dict[str, bool | None] = {}
        self.failed_links: list[str] = []

    def set_repo(self, repo: str) -> None:
        self.repo = repo

    def set_build_number(self, build_number: int) -> None:
        """Set the Jenkins build number the run belongs to.

        Args:
            build_number: Build number; negative values mean no build.
        """
        self.build_number = build_number if build_number >= 0 else None

    def set_last_statuses(self, statuses: dict[str, bool | None]) -> None:
        """Set the last completed Jenkins build status of each test.

        Args:
            statuses: Map of test name to True (passed), False (failed) or
                None (unknown).
        """
        self.last_statuses = dict(statuses)

    def set_failed_links(self, links: list[str]) -> None:
        self.failed_links = list(links)

    def generate_report(self) -> dict[str, Any]:
        """Generate the report data structure.

        Returns:
            Dictionary representing the full report, suitable for
            JSON or YAML serialization.
        """
        now = datetime.datetime.now(tz=datetime.timezone.utc).isoformat()
        body = self.report.to_dict()

        for entry in body["executed"]:
            if entry["name"] in self.last_statuses:
                entry["last_status"] = _format_last_status(
                    self.last_statuses[entry["name"]]
                )

        report: dict[str, Any] = {"generated_at": now}
        if self.repo:
            report["repo"] = self.repo
        if self.build_number is not None:
            report["build_number"] = self.build_number
        report.update(body)
        if self.failed_links:
            report["failed_test_links"] = list(self.failed_links)

        return {"report": report}

    def write_report(self, path: Path) -> None:
        """Write the report, picking YAML or JSON from the file suffix.

        Args:
            path: Destination file. ``.yaml``/``.yml`` produce YAML,
                anything else JSON.
        """
        if path.suffix.lower() in YAML_SUFFIXES:
            self.write_yaml(path)
        else:
            self.write_json(path)

    def write_json(self, path: Path) -> None:
        report = self.generate_report()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2, ensure_ascii=False)
            f.write("\n")

    def write_yaml(self, path: Path) -> None:
        report = self.generate_report()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                report,
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )


def _format_last_status(status: bool | None) -> str:
    if status is None:
        return "unknown"
    return "passed" if status else "failed"
