"""
prbuild main client.

Constructs the HTTP transports once and wires every component of the
build search to them.
"""

from pathlib import Path
from typing import Any

import httpx

from prbuild.cancellation import CancellationToken
from prbuild.clients import ArtifactsClient, BuildsClient, ChecksClient, CommitsClient
from prbuild.config import ResolverConfig
from prbuild.fetcher import ArtifactFetcher
from prbuild.matching import BuildUrlMatcher, CheckRunFilter
from prbuild.resolver import BuildResolver, Resolution
from prbuild.transport import HTTPTransport
from prbuild.types.builds import CandidateBuild


class PrBuildClient:
    """
    Main client for resolving and downloading pull request builds.

    Example:
        ```python
        from prbuild import PrBuildClient

        with PrBuildClient.from_env() as client:
            resolution = client.resolve(12345)
            build = resolution.unwrap()
            path = client.download(build)
        ```
    """

    def __init__(
        self,
        config: ResolverConfig | None = None,
        github_transport: httpx.BaseTransport | None = None,
        build_transport: httpx.BaseTransport | None = None,
        work_root: Path | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: Resolver configuration (default: ResolverConfig())
            github_transport: Optional httpx transport for the code host API
            build_transport: Optional httpx transport for the build system API
            work_root: Directory for downloaded artifacts (default: system temp dir)
        """
        self.config = (config or ResolverConfig()).validate()
        cfg = self.config

        github_headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": cfg.user_agent,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if cfg.github_token:
            github_headers["Authorization"] = f"Bearer {cfg.github_token}"

        self._github = HTTPTransport(
            base_url=cfg.github_api_url,
            headers=github_headers,
            timeout=cfg.timeout,
            retry_config=cfg.retry_config,
            transport=github_transport,
        )
        self._build_system = HTTPTransport(
            base_url=cfg.build_api_url,
            headers={"User-Agent": cfg.user_agent},
            timeout=cfg.timeout,
            retry_config=cfg.retry_config,
            transport=build_transport,
        )

        self.commits = CommitsClient(self._github, cfg.repository, cfg.commits_page_size)
        self.checks = ChecksClient(self._github, cfg.repository, cfg.check_runs_page_size)
        self.builds = BuildsClient(
            self._build_system,
            organization=cfg.organization,
            project=cfg.project,
            definition_name=cfg.build_check_name,
            top=cfg.orchestrator_top,
            api_version=cfg.artifacts_api_version,
        )
        self.artifacts = ArtifactsClient(
            self._build_system,
            required_name=cfg.required_artifact_name,
            api_version=cfg.artifacts_api_version,
        )

        self.resolver = BuildResolver(
            commits=self.commits,
            checks=self.checks,
            builds=self.builds,
            artifacts=self.artifacts,
            check_filter=CheckRunFilter(cfg.build_check_name, cfg.excluded_check_substrings),
            url_matcher=BuildUrlMatcher(cfg.build_host),
            max_workers=cfg.max_workers,
            pull_request_url=cfg.pull_request_url("{pr_number}"),
        )
        self.fetcher = ArtifactFetcher(
            self.artifacts,
            self._build_system,
            work_root=work_root,
            work_dir_name=cfg.work_dir_name,
        )

    @classmethod
    def from_env(cls, work_root: Path | None = None) -> "PrBuildClient":
        """
        Create a client configured from environment variables.

        See ResolverConfig.from_env for the variables read.

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        return cls(config=ResolverConfig.from_env(), work_root=work_root)

    def resolve(self, pr_number: int, cancel: CancellationToken | None = None) -> Resolution:
        """Resolve a pull request to a verified build."""
        return self.resolver.resolve(pr_number, cancel=cancel)

    def download(
        self,
        build: CandidateBuild,
        cancel: CancellationToken | None = None,
    ) -> Path:
        """Download and extract a resolved build's artifact."""
        return self.fetcher.download_build(build, cancel=cancel)

    def close(self) -> None:
        """Close the client and release resources."""
        self._github.close()
        self._build_system.close()

    def __enter__(self) -> "PrBuildClient":
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit - closes the client."""
        self.close()
