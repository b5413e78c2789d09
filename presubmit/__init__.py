"""Presubmit test runner: runs a repository's test scripts in dependency order."""
