"""Plain-text rendering of a run summary, used as a review message body."""

from __future__ import annotations

from presubmit.reporting.summary import Report
from presubmit.scheduling.graph import PASSED

PASS_MARK = "✔"
FAIL_MARK = "✖"
UNKNOWN_MARK = "?"
ARROW = "➔"


def status_mark(passed: bool | None) -> str:
    """Return the mark for a pass (True), fail (False) or unknown (None)."""
    if passed is None:
        return UNKNOWN_MARK
    return PASS_MARK if passed else FAIL_MARK


def format_results(
    report: Report,
    last_statuses: dict[str, bool | None] | None = None,
    failed_links: list[str] | None = None,
    details_url: str | None = None,
) -> str:
    """Render the results block.

    Each executed test gets a line ``<last> ➔ <current>: <name>`` where
    ``<last>`` is the status of the test's last completed Jenkins build.
    Skipped tests follow, one ``skipped: <name>`` line each.

    Args:
        report: Summary of the run.
        last_statuses: Last completed build status per test. Missing
            entries render as ``?``.
        failed_links: Lines describing failed test cases, if any.
        details_url: Link to the full build output.

    Returns:
        The rendered text, ending with a newline.
    """
    last_statuses = last_statuses or {}
    lines = ["Test results:"]

    for test in report.executed:
        last = status_mark(last_statuses.get(test.name))
        current = status_mark(test.status == PASSED)
        lines.append(f"{last} {ARROW} {current}: {test.name}")

    for name in report.skipped:
        lines.append(f"skipped: {name}")

    if failed_links:
        lines.append("")
        lines.append("Failed tests:")
        lines.extend(failed_links)

    if details_url:
        lines.append("")
        lines.append("More details at:")
        lines.append(details_url.rstrip("/") + "/")

    return "\n".join(lines) + "\n"
