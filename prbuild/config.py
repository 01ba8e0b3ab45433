"""
Resolver configuration.

Every identifier the resolver matches against (check names, artifact name,
build host) lives here so the resolver can be pointed at another repository
or naming convention without touching control flow.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from prbuild.exceptions import ConfigurationError
from prbuild.transport import RetryConfig

DEFAULT_USER_AGENT = "prbuild/0.1.0"


@dataclass(frozen=True)
class ResolverConfig:
    """Fixed identifiers and API locations used by the build resolver."""

    # Code-hosting side
    repository: str = "dotnet/maui"
    github_api_url: str = "https://api.github.com"
    github_token: str | None = None

    # Build-orchestration side
    build_host: str = "dev.azure.com"
    build_api_url: str = "https://dev.azure.com"
    organization: str = "dnceng-public"
    project: str = "public"
    artifacts_api_version: str = "7.1"

    # Matching rules
    build_check_name: str = "maui-pr"
    excluded_check_substrings: tuple[str, ...] = ("uitests",)
    required_artifact_name: str = "PackageArtifacts"

    # Only the first page of PR commits is read. Pull requests with more
    # commits than this have their oldest commits invisible to the check-run
    # search; the merge-ref fallback still applies to them.
    commits_page_size: int = 100
    check_runs_page_size: int = 100
    orchestrator_top: int = 10

    timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    max_workers: int = 1
    retry_config: RetryConfig = field(default_factory=lambda: RetryConfig())

    # Where downloaded artifacts are unpacked, under the system temp dir
    work_dir_name: str = "maui-pr-artifacts"

    def validate(self) -> "ResolverConfig":
        """
        Check the configuration for obviously invalid values.

        Returns:
            self, for chaining

        Raises:
            ConfigurationError: On empty identifiers or non-positive sizes
        """
        if "/" not in self.repository.strip("/"):
            raise ConfigurationError(
                f"Repository must be in 'owner/name' form, got {self.repository!r}"
            )

        for name in (
            "build_check_name",
            "required_artifact_name",
            "build_host",
            "organization",
            "project",
        ):
            if not getattr(self, name):
                raise ConfigurationError(f"{name} must not be empty")

        for name in (
            "commits_page_size",
            "check_runs_page_size",
            "orchestrator_top",
            "max_workers",
        ):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be positive")

        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")

        if any(not s for s in self.excluded_check_substrings):
            raise ConfigurationError("excluded_check_substrings must not contain empty values")

        return self

    def with_overrides(self, **changes: object) -> "ResolverConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes).validate()

    def pull_request_url(self, pr_number: int) -> str:
        """Browser URL for a pull request on the code host."""
        return f"https://github.com/{self.repository}/pull/{pr_number}"

    @classmethod
    def from_env(cls) -> "ResolverConfig":
        """
        Create a configuration from environment variables.

        Environment variables:
            PRBUILD_REPOSITORY: owner/name of the repository (default: dotnet/maui)
            PRBUILD_GITHUB_TOKEN: GitHub token (falls back to GITHUB_TOKEN)
            PRBUILD_BUILD_CHECK: Build check / definition name (default: maui-pr)
            PRBUILD_EXCLUDED_CHECKS: Comma-separated exclusion substrings
            PRBUILD_ARTIFACT_NAME: Required artifact name (default: PackageArtifacts)
            PRBUILD_ORGANIZATION: Build system organization for the fallback search
            PRBUILD_PROJECT: Build system project for the fallback search
            PRBUILD_TIMEOUT: Per-request timeout in seconds
            PRBUILD_MAX_WORKERS: Concurrent commit scans (default: 1)

        Returns:
            Validated ResolverConfig

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        defaults = cls()
        env = os.environ

        excluded = defaults.excluded_check_substrings
        if "PRBUILD_EXCLUDED_CHECKS" in env:
            excluded = tuple(
                part.strip()
                for part in env["PRBUILD_EXCLUDED_CHECKS"].split(",")
                if part.strip()
            )

        return cls(
            repository=env.get("PRBUILD_REPOSITORY", defaults.repository),
            github_token=env.get("PRBUILD_GITHUB_TOKEN") or env.get("GITHUB_TOKEN"),
            build_check_name=env.get("PRBUILD_BUILD_CHECK", defaults.build_check_name),
            excluded_check_substrings=excluded,
            required_artifact_name=env.get(
                "PRBUILD_ARTIFACT_NAME", defaults.required_artifact_name
            ),
            organization=env.get("PRBUILD_ORGANIZATION", defaults.organization),
            project=env.get("PRBUILD_PROJECT", defaults.project),
            timeout=_env_number(env, "PRBUILD_TIMEOUT", float, defaults.timeout),
            max_workers=_env_number(env, "PRBUILD_MAX_WORKERS", int, defaults.max_workers),
        ).validate()


def _env_number(env: Mapping[str, str], name: str, kind: type, default: float | int) -> float | int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return kind(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid {name}: {raw!r}") from e
