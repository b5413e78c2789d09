"""Jenkins lookups used to annotate presubmit results.

Only the status of a job's last completed build is needed: it is shown next
to the presubmit result of the test with the same name.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request
from typing import Callable


def last_completed_build_url(host: str, project: str, token: str | None = None) -> str:
    """Build the JSON API URL for a job's last completed build."""
    url = f"{host.rstrip('/')}/job/{urllib.parse.quote(project)}/lastCompletedBuild/api/json"
    if token:
        url += "?" + urllib.parse.urlencode({"token": token})
    return url


def parse_last_completed_build_status(content: str | bytes) -> bool:
    """Return True if the build described by the JSON response succeeded.

    Raises:
        ValueError: If the response is not a JSON object.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid Jenkins build JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Invalid Jenkins build JSON: expected an object")
    return data.get("result") == "SUCCESS"


def last_completed_build_status(
    host: str,
    project: str,
    token: str | None = None,
    timeout: float = 30.0,
    urlopen_fn: Callable[..., object] = urllib.request.urlopen,
) -> bool:
    """Fetch whether the last completed build of a Jenkins job succeeded.

    Args:
        host: Jenkins base URL.
        project: Job name.
        token: Jenkins API token, if the server requires one.
        timeout: Request timeout in seconds.
        urlopen_fn: Opener used for the request.

    Raises:
        RuntimeError: If the request fails or the response is invalid.
    """
    url = last_completed_build_url(host, project, token)
    req = urllib.request.Request(url, headers={"Accept": "application/json"})
    try:
        with urlopen_fn(req, timeout=timeout) as response:
            content = response.read()
    except (urllib.error.URLError, OSError) as e:
        raise RuntimeError(f"Jenkins request for {project} failed: {e}") from e

    try:
        return parse_last_completed_build_status(content)
    except ValueError as e:
        raise RuntimeError(f"Jenkins response for {project}: {e}") from e
