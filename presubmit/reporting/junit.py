"""Links to failed test cases from JUnit XML reports.

Each test script writes a JUnit report named ``tests_<name>.xml`` (dashes in
the test name become underscores). Failed test cases are turned into links
to the Jenkins test report pages of the build.
"""

from __future__ import annotations

import re
import sys
import xml.etree.ElementTree as ET
from pathlib import Path

URL_UNSAFE_CHARS = re.compile(r"[\\/:?#%]")
NOT_IDENTIFIER_CHARS = re.compile(r"[^0-9A-Za-z_$]")

# Prefixes test scripts add to tell apart builds of the same tests
STRIPPED_PREFIXES = ("go-build::", "build::", "android-test::")


def safe_package_or_class_name(name: str) -> str:
    """Make a package or class name safe for a test report URL."""
    return URL_UNSAFE_CHARS.sub("_", name)


def safe_test_name(name: str) -> str:
    """Make a test case name safe for a test report URL.

    Stricter than safe_package_or_class_name: only identifier characters
    survive.
    """
    return NOT_IDENTIFIER_CHARS.sub("_", name)


def junit_report_file_name(test_name: str) -> str:
    return f"tests_{test_name.replace('-', '_')}.xml"


def parse_failed_test_links(
    xml_content: str | bytes,
    seen_tests: dict[str, int],
    link_base: str,
    build_number: int,
) -> list[str]:
    """Parse a JUnit report and return links for its failed test cases.

    Args:
        xml_content: The JUnit XML document, as text or raw bytes (bytes
            honor the encoding declaration). The root is either
            ``<testsuites>`` or a single ``<testsuite>``.
        seen_tests: Count of each full test name seen so far, across all
            reports of the build. Updated in place; a test seen for the
            n-th time (n > 1) gets a ``_n`` suffix on its link.
        link_base: Jenkins job URL the build number is appended to.
        build_number: Jenkins build number.

    Returns:
        One ``- <full name>\\n  <link>`` entry per failed test case.

    Raises:
        ValueError: If the XML cannot be parsed.
    """
    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as e:
        raise ValueError(f"Invalid JUnit XML: {e}") from e

    if root.tag == "testsuite":
        suites = [root]
    else:
        suites = root.findall("testsuite")

    links: list[str] = []
    for suite in suites:
        for case in suite.findall("testcase"):
            classname = case.get("classname", "")
            case_name = case.get("name", "")

            # "::" keeps mail clients from turning the name into a link
            full_name = f"{classname}.{case_name}".replace(".", "::")
            for prefix in STRIPPED_PREFIXES:
                if full_name.startswith(prefix):
                    full_name = full_name[len(prefix):]
            seen_tests[full_name] = seen_tests.get(full_name, 0) + 1

            failure = case.find("failure")
            if failure is None or not failure.text:
                continue

            # Jenkins treats the part before the first "." as the package
            package_name = "(root)"
            class_name = classname
            if "." in class_name:
                package_name, class_name = class_name.split(".", 1)

            link = "{}/{}/testReport/{}/{}/{}".format(
                link_base.rstrip("/"),
                build_number,
                safe_package_or_class_name(package_name),
                safe_package_or_class_name(class_name),
                safe_test_name(case_name),
            )
            if seen_tests[full_name] > 1:
                link = f"{link}_{seen_tests[full_name]}"
            links.append(f"- {full_name}\n  {link}")

    return links


def failed_test_links(
    test_names: list[str],
    reports_dir: Path,
    link_base: str,
    build_number: int,
) -> list[str]:
    """Collect failed test case links from the reports of the given tests.

    Missing or malformed reports are reported on stderr and skipped.

    Args:
        test_names: Names of the executed tests.
        reports_dir: Directory holding the ``tests_<name>.xml`` files.
        link_base: Jenkins job URL.
        build_number: Jenkins build number.

    Returns:
        Links for all failed test cases, in sorted test name order.
    """
    seen_tests: dict[str, int] = {}
    links: list[str] = []
    for test_name in sorted(test_names):
        report_path = reports_dir / junit_report_file_name(test_name)
        try:
            content = report_path.read_bytes()
        except OSError as e:
            print(f"Warning: cannot read {report_path}: {e}", file=sys.stderr)
            continue
        try:
            links.extend(
                parse_failed_test_links(content, seen_tests, link_base, build_number)
            )
        except ValueError as e:
            print(f"Warning: {report_path}: {e}", file=sys.stderr)
    return links
