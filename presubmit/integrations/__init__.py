"""Clients for the CI services presubmit results are annotated with."""
