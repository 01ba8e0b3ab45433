"""Build and artifact data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CandidateBuild:
    """A build that may carry the required artifact."""

    build_id: int
    build_number: str
    status: str
    result: str | None
    source_branch: str
    source_version: str
    organization: str
    project: str


@dataclass(frozen=True)
class OrchestratorBuild:
    """A build record as listed by the build system."""

    build_id: int
    build_number: str
    status: str  # "completed", "inProgress", "notStarted", ...
    result: str | None  # "succeeded", "partiallySucceeded", "failed", ...
    source_branch: str
    source_version: str
    definition_name: str


@dataclass(frozen=True)
class Artifact:
    """A named output bundle attached to a build."""

    name: str
    download_url: str | None
