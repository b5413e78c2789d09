"""Entry point for the presubmit test runner.

Selects the tests configured for a repository, runs their scripts in
dependency order, and prints a results block suitable for posting as a
code review message.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable

from presubmit.config import PresubmitConfig, PresubmitTestsConfig
from presubmit.integrations.jenkins import last_completed_build_status
from presubmit.reporting.junit import failed_test_links
from presubmit.reporting.reporter import Reporter
from presubmit.reporting.results_text import format_results
from presubmit.reporting.summary import Report, summarize
from presubmit.runner import ScriptRunner
from presubmit.scheduling.executor import ParallelExecutor, SequentialExecutor
from presubmit.scheduling.graph import DependencyCycleError, Run


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Presubmit test runner - runs a repository's tests in dependency order"
    )
    parser.add_argument(
        "--conf",
        required=True,
        type=Path,
        help="Path to the tests config JSON file",
    )
    parser.add_argument(
        "--repo",
        required=True,
        help="Name of the repository whose tests should run",
    )
    parser.add_argument(
        "--config-file",
        type=Path,
        default=None,
        help="Path to the presubmit settings JSON file",
    )
    parser.add_argument(
        "--tests-base-path",
        type=Path,
        default=None,
        help="Directory containing the <test>.sh scripts",
    )
    parser.add_argument(
        "--max-parallel",
        type=int,
        default=None,
        help="Max tests running at once (default: 1, serial)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-test timeout in seconds",
    )
    parser.add_argument(
        "--build-number",
        type=int,
        default=-1,
        help="Number of the Jenkins build running this presubmit",
    )
    parser.add_argument(
        "--jenkins-host",
        default=None,
        help="Jenkins base URL used for build status and report links",
    )
    parser.add_argument(
        "--jenkins-token",
        default=None,
        help="Jenkins API token",
    )
    parser.add_argument(
        "--jenkins-project",
        default=None,
        help="Jenkins job that runs presubmit builds",
    )
    parser.add_argument(
        "--reports-dir",
        type=Path,
        default=None,
        help="Directory containing tests_<name>.xml JUnit reports",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Path to write the report file (.json, .yaml or .yml)",
    )
    parser.add_argument(
        "--message-file",
        type=Path,
        default=None,
        help="Path to write the results text for posting to code review",
    )
    return parser.parse_args(argv)


def _config_from_args(args: argparse.Namespace) -> PresubmitConfig:
    config = PresubmitConfig(args.config_file)
    return config.with_overrides(
        tests_base_path=str(args.tests_base_path) if args.tests_base_path else None,
        max_parallel=args.max_parallel,
        timeout=args.timeout,
        jenkins_host=args.jenkins_host,
        jenkins_token=args.jenkins_token,
        jenkins_project=args.jenkins_project,
        reports_dir=str(args.reports_dir) if args.reports_dir else None,
    )


def run_tests(
    selected_tests: list[str],
    dependencies: dict[str, list[str]],
    run_one: Callable[[str], bool],
    max_parallel: int = 1,
) -> Report:
    """Schedule and execute the selected tests.

    Args:
        selected_tests: Test names in scheduling order.
        dependencies: Map of test name to the tests it depends on.
        run_one: Runs a test and returns whether it passed.
        max_parallel: Max concurrently running tests; 1 runs serially in
            selection order.

    Returns:
        Summary of executed and skipped tests.

    Raises:
        DependencyCycleError: If the selected tests contain a cycle.
    """
    run = Run.build(selected_tests, dependencies)
    _warn_dropped_dependencies(run)

    executor: SequentialExecutor | ParallelExecutor
    if max_parallel == 1:
        executor = SequentialExecutor(run, run_one)
    else:
        executor = ParallelExecutor(run, run_one, max_parallel=max_parallel)

    executed = executor.execute()
    return summarize(run, executed)


def _warn_dropped_dependencies(run: Run) -> None:
    for name, dropped in run.dropped_dependencies().items():
        for dep_name in dropped:
            print(
                f"Warning: {name} depends on {dep_name}, which is not selected "
                f"for this run; ignoring the dependency",
                file=sys.stderr,
            )


def _last_statuses(
    report: Report, config: PresubmitConfig,
) -> dict[str, bool | None]:
    """Look up the last completed Jenkins build of each executed test.

    Tests whose status cannot be fetched map to None.
    """
    if not config.jenkins_host:
        return {}

    statuses: dict[str, bool | None] = {}
    for test in report.executed:
        try:
            statuses[test.name] = last_completed_build_status(
                config.jenkins_host, test.name, config.jenkins_token,
            )
        except RuntimeError as e:
            print(f"Warning: {e}", file=sys.stderr)
            statuses[test.name] = None
    return statuses


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = _config_from_args(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        tests_config = PresubmitTestsConfig.load(args.conf)
    except FileNotFoundError:
        print(f"Error: Tests config file not found: {args.conf}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not tests_config.has_repo(args.repo):
        print(
            f'Configuration for repository "{args.repo}" not found. '
            f"Not running any tests."
        )
        return 0

    tests = sorted(tests_config.tests_for_repo(args.repo))
    if not tests:
        return 0

    runner = ScriptRunner(config.tests_base_path, timeout=config.timeout)
    try:
        report = run_tests(
            tests,
            tests_config.dependencies,
            runner,
            max_parallel=config.max_parallel,
        )
    except DependencyCycleError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    last_statuses = _last_statuses(report, config)

    failed_links: list[str] = []
    details_url: str | None = None
    if args.build_number >= 0 and config.jenkins_host:
        link_base = f"{config.jenkins_host.rstrip('/')}/job/{config.jenkins_project}"
        reports_dir = config.reports_dir or config.tests_base_path
        failed_links = failed_test_links(
            [t.name for t in report.executed],
            reports_dir,
            link_base,
            args.build_number,
        )
        details_url = f"{link_base}/{args.build_number}"

    results_text = format_results(
        report,
        last_statuses=last_statuses,
        failed_links=failed_links,
        details_url=details_url,
    )

    print()
    print("### Test results")
    print(results_text, end="")
    print()
    print(
        f"Results: {len(report.passed)} passed, {len(report.failed)} failed, "
        f"{len(report.skipped)} skipped"
    )

    if args.message_file:
        args.message_file.parent.mkdir(parents=True, exist_ok=True)
        args.message_file.write_text(results_text, encoding="utf-8")

    if args.output:
        reporter = Reporter(report)
        reporter.set_repo(args.repo)
        reporter.set_build_number(args.build_number)
        reporter.set_last_statuses(last_statuses)
        reporter.set_failed_links(failed_links)
        reporter.write_report(args.output)
        print(f"Report written to {args.output}")

    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
