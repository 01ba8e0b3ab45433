"""Shared fixtures for the prbuild test suite."""

from prbuild.testing.fixtures import (  # noqa: F401
    mock_api,
    pr_number,
    sample_candidate_build,
    sample_check_run,
)
