"""
Apply a pull request's build to a project.

Resolves the build, downloads its artifact, and hands the package version
to the project's collaborators: a descriptor mutator, a package-source
writer and a restore step. The file formats behind those collaborators
live outside this package.
"""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from prbuild.cancellation import CancellationToken
from prbuild.exceptions import OperationCancelledError
from prbuild.logging import get_logger
from prbuild.packages import (
    PRIMARY_PACKAGE,
    dotnet_version_from_package_version,
    find_primary_package,
    is_version_compatible,
    version_from_package,
)

if TYPE_CHECKING:
    from prbuild.fetcher import ArtifactFetcher
    from prbuild.resolver import BuildResolver
    from prbuild.types.builds import CandidateBuild

logger = get_logger("pipeline")

PACKAGE_SOURCE_NAME = "pr-build"


class DescriptorMutator(Protocol):
    """Edits a project descriptor file."""

    def set_package_version(self, path: Path, package_name: str, version: str) -> None: ...

    def set_target_framework(self, path: Path, new_version: str) -> None: ...


class PackageSourceWriter(Protocol):
    """Registers a local folder as a package source for a project directory."""

    def add_package_source(self, project_dir: Path, source_path: Path, name: str) -> None: ...


class RestoreRunner(Protocol):
    """Runs the package restore step; raises on failure."""

    def restore(self, project_path: Path) -> None: ...


@dataclass(frozen=True)
class ProjectInfo:
    """The project being updated."""

    path: Path
    dotnet_version: str | None = None  # e.g. "9.0"


@dataclass(frozen=True)
class AppliedBuild:
    """Result of applying a pull request build."""

    build: "CandidateBuild"
    artifacts_path: Path
    package_path: Path
    package_version: str
    target_framework_updated_to: str | None


class PrBuildApplier:
    """
    Resolves a pull request build and applies its packages to a project.

    Example:
        ```python
        applier = PrBuildApplier(resolver, fetcher, mutator, sources, restore)
        applied = applier.apply(12345, ProjectInfo(Path("MyApp.csproj"), "9.0"))
        print(applied.package_version)
        ```
    """

    def __init__(
        self,
        resolver: "BuildResolver",
        fetcher: "ArtifactFetcher",
        mutator: DescriptorMutator,
        sources: PackageSourceWriter,
        restore: RestoreRunner,
        package_name: str = PRIMARY_PACKAGE,
        confirm_framework_update: Callable[[str | None, str | None], bool] | None = None,
    ) -> None:
        """
        Initialize the applier.

        Args:
            resolver: Resolves pull requests to verified builds
            fetcher: Downloads and extracts artifacts
            mutator: Edits the project descriptor
            sources: Registers the extracted packages as a package source
            restore: Runs the restore step
            package_name: Package whose version is applied
            confirm_framework_update: Called with (project version, package
                version) when they differ; returning False cancels. When
                omitted, the target framework is updated without asking.
        """
        self.resolver = resolver
        self.fetcher = fetcher
        self.mutator = mutator
        self.sources = sources
        self.restore = restore
        self.package_name = package_name
        self.confirm_framework_update = confirm_framework_update

    def apply(
        self,
        pr_number: int,
        project: ProjectInfo,
        cancel: CancellationToken | None = None,
    ) -> AppliedBuild:
        """
        Resolve, download and apply the build of a pull request.

        Args:
            pr_number: The pull request number
            project: The project to update
            cancel: Cancellation token

        Returns:
            AppliedBuild describing what was applied

        Raises:
            BuildNotFoundError: If no verified build exists for the pull request
            DownloadError: If the artifact cannot be downloaded or extracted
            PackageNotFoundError: If the artifact holds no usable package
            OperationCancelledError: If cancelled, or the framework update is declined
        """
        cancel = cancel or CancellationToken()

        logger.info("Looking for build artifacts for PR #%d", pr_number)
        build = self.resolver.resolve(pr_number, cancel=cancel).unwrap()
        logger.info("Found build %s (id %d)", build.build_number, build.build_id)

        artifacts_path = self.fetcher.download_build(build, cancel=cancel)
        return self.apply_artifacts(build, artifacts_path, project, cancel=cancel)

    def apply_artifacts(
        self,
        build: "CandidateBuild",
        artifacts_path: Path,
        project: ProjectInfo,
        cancel: CancellationToken | None = None,
    ) -> AppliedBuild:
        """Apply already-extracted artifacts to a project."""
        cancel = cancel or CancellationToken()
        logger.info("Updating to PR build from %s", artifacts_path)

        package_path = find_primary_package(artifacts_path, self.package_name)
        version = version_from_package(package_path)
        logger.info("Found %s version %s", self.package_name, version)

        updated_to = None
        package_dotnet = dotnet_version_from_package_version(version)
        if not is_version_compatible(project.dotnet_version, package_dotnet):
            if self.confirm_framework_update is not None and not self.confirm_framework_update(
                project.dotnet_version, package_dotnet
            ):
                raise OperationCancelledError("Cancelled due to target framework mismatch")

            self.mutator.set_target_framework(project.path, package_dotnet)
            updated_to = package_dotnet
            logger.info("Updated target frameworks to .NET %s", package_dotnet)

        cancel.raise_if_cancelled()
        self.sources.add_package_source(project.path.parent, package_path.parent, PACKAGE_SOURCE_NAME)
        self.mutator.set_package_version(project.path, self.package_name, version)

        cancel.raise_if_cancelled()
        self.restore.restore(project.path)
        logger.info("Updated to PR build version %s", version)

        return AppliedBuild(
            build=build,
            artifacts_path=artifacts_path,
            package_path=package_path,
            package_version=version,
            target_framework_updated_to=updated_to,
        )
