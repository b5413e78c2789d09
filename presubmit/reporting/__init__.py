"""Run summaries and their rendering: report files, review text, links."""

from presubmit.reporting.reporter import Reporter
from presubmit.reporting.results_text import format_results
from presubmit.reporting.summary import ExecutedTest, Report, summarize

__all__ = [
    "ExecutedTest",
    "Report",
    "Reporter",
    "format_results",
    "summarize",
]
