"""
Pytest plugin for prbuild testing fixtures.

To use these fixtures in your tests, add this to your conftest.py:

    pytest_plugins = ["prbuild.testing.conftest"]
"""

# Re-export all fixtures for pytest auto-discovery
from prbuild.testing.fixtures import (
    mock_api,
    pr_number,
    sample_candidate_build,
    sample_check_run,
)

__all__ = [
    "mock_api",
    "pr_number",
    "sample_check_run",
    "sample_candidate_build",
]
