"""prbuild testing utilities.

Provides mock components, factories and fixtures for testing code that
uses the build resolver.
"""

from prbuild.testing.fixtures import (
    artifacts_payload,
    build_json,
    build_results_url,
    check_runs_payload,
    commits_payload,
    create_candidate_build,
    create_check_run,
    make_sha,
)
from prbuild.testing.mock import MockBuildApi, MockCall, MockResponse

__all__ = [
    # Mock components
    "MockBuildApi",
    "MockCall",
    "MockResponse",
    # Helper functions
    "make_sha",
    "build_results_url",
    "create_check_run",
    "create_candidate_build",
    "commits_payload",
    "check_runs_payload",
    "build_json",
    "artifacts_payload",
]
