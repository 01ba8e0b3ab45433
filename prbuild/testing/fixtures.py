"""
Pytest fixtures and factories for prbuild testing.

Provides sample data, API payload builders and a MockBuildApi fixture.
"""

import hashlib
from collections.abc import Generator
from typing import Any

import pytest

from prbuild.testing.mock import MockBuildApi
from prbuild.types.builds import CandidateBuild
from prbuild.types.checks import CheckRun


# ============================================================================
# Factories
# ============================================================================


def make_sha(seed: str | int) -> str:
    """Deterministic 40-character commit SHA for a seed."""
    return hashlib.sha1(str(seed).encode()).hexdigest()


def build_results_url(
    build_id: int,
    organization: str = "dnceng-public",
    project: str = "public",
    host: str = "dev.azure.com",
) -> str:
    """Details URL as reported by a build check run."""
    return f"https://{host}/{organization}/{project}/_build/results?buildId={build_id}"


def create_check_run(
    name: str = "maui-pr",
    status: str = "completed",
    conclusion: str | None = "success",
    build_id: int | None = 155100,
    details_url: str | None = None,
) -> CheckRun:
    """
    Create a CheckRun with customizable fields.

    ``details_url`` defaults to a build results URL for ``build_id``; pass
    ``build_id=None`` for a check without a link.
    """
    if details_url is None and build_id is not None:
        details_url = build_results_url(build_id)
    return CheckRun(
        name=name,
        status=status,
        conclusion=conclusion,
        details_url=details_url,
    )


def create_candidate_build(
    build_id: int = 155100,
    **kwargs: Any,
) -> CandidateBuild:
    """Create a CandidateBuild with customizable fields."""
    defaults: dict[str, Any] = {
        "build_number": f"20240115.{build_id % 100}",
        "status": "completed",
        "result": "succeeded",
        "source_branch": "refs/pull/12345/merge",
        "source_version": make_sha(build_id),
        "organization": "dnceng-public",
        "project": "public",
    }
    defaults.update(kwargs)
    return CandidateBuild(build_id=build_id, **defaults)


# ============================================================================
# API payloads
# ============================================================================


def commits_payload(shas_oldest_first: list[str]) -> list[dict[str, Any]]:
    """Body of ``GET /repos/{repo}/pulls/{n}/commits`` (oldest first, as the API returns)."""
    return [{"sha": sha, "commit": {"message": f"commit {sha[:7]}"}} for sha in shas_oldest_first]


def check_run_json(run: CheckRun) -> dict[str, Any]:
    """One entry of ``check_runs`` in the code host's format."""
    return {
        "id": int(hashlib.md5(run.name.encode()).hexdigest()[:7], 16),
        "name": run.name,
        "status": run.status,
        "conclusion": run.conclusion,
        "details_url": run.details_url,
    }


def check_runs_payload(runs: list[CheckRun], total_count: int | None = None) -> dict[str, Any]:
    """Body of one check-runs page."""
    return {
        "total_count": len(runs) if total_count is None else total_count,
        "check_runs": [check_run_json(run) for run in runs],
    }


def build_json(
    build_id: int,
    status: str = "completed",
    result: str | None = "succeeded",
    definition_name: str = "maui-pr",
    source_branch: str = "refs/pull/12345/merge",
) -> dict[str, Any]:
    """One entry of the build system's build list."""
    return {
        "id": build_id,
        "buildNumber": f"20240115.{build_id % 100}",
        "status": status,
        "result": result,
        "sourceBranch": source_branch,
        "sourceVersion": make_sha(build_id),
        "definition": {"id": 302, "name": definition_name},
    }


def artifacts_payload(names: list[str], build_id: int = 155100) -> dict[str, Any]:
    """Body of the build system's artifact list."""
    return {
        "count": len(names),
        "value": [
            {
                "id": index,
                "name": name,
                "resource": {
                    "type": "Container",
                    "downloadUrl": (
                        f"https://dev.azure.com/dnceng-public/public/_apis/build/builds/"
                        f"{build_id}/artifacts?artifactName={name}&api-version=7.1&%24format=zip"
                    ),
                },
            }
            for index, name in enumerate(names, start=1)
        ],
    }


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def mock_api() -> Generator[MockBuildApi, None, None]:
    """
    Provide a MockBuildApi for testing.

    Example:
        ```python
        def test_my_feature(mock_api):
            mock_api.commits.configure(shas=[make_sha(1)])
            resolution = mock_api.resolver().resolve(1)
            assert mock_api.was_called("builds.find_merge_ref_build")
        ```
    """
    api = MockBuildApi()
    yield api
    api.reset()


@pytest.fixture
def pr_number() -> int:
    """Provide a test pull request number."""
    return 12345


@pytest.fixture
def sample_check_run() -> CheckRun:
    """Provide a completed, linked build check run."""
    return create_check_run()


@pytest.fixture
def sample_candidate_build() -> CandidateBuild:
    """Provide a sample CandidateBuild object."""
    return create_candidate_build()


__all__ = [
    # Fixtures (exported for documentation, actual fixtures are auto-discovered)
    "mock_api",
    "pr_number",
    "sample_check_run",
    "sample_candidate_build",
    # Factories
    "make_sha",
    "build_results_url",
    "create_check_run",
    "create_candidate_build",
    # Payloads
    "commits_payload",
    "check_run_json",
    "check_runs_payload",
    "build_json",
    "artifacts_payload",
]
