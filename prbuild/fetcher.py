"""Artifact download and extraction."""

import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING

from prbuild.exceptions import DownloadError, OperationCancelledError, PrBuildError
from prbuild.logging import get_logger

if TYPE_CHECKING:
    from prbuild.cancellation import CancellationToken
    from prbuild.clients.artifacts import ArtifactsClient
    from prbuild.transport import HTTPTransport
    from prbuild.types.builds import CandidateBuild

logger = get_logger("fetcher")


class ArtifactFetcher:
    """
    Downloads a build's required artifact and unpacks it.

    Files land in ``<root>/<build_id>/``: the archive as ``artifacts.zip``
    and its contents under ``extracted/``.
    """

    def __init__(
        self,
        artifacts: "ArtifactsClient",
        transport: "HTTPTransport",
        work_root: Path | None = None,
        work_dir_name: str = "maui-pr-artifacts",
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            artifacts: Client used to look up the artifact's download URL
            transport: Transport used to stream the archive
            work_root: Directory holding per-build folders (default: system temp dir)
            work_dir_name: Folder created under the system temp dir when
                ``work_root`` is not given
        """
        self.artifacts = artifacts
        self.transport = transport
        self.work_root = work_root or Path(tempfile.gettempdir()) / work_dir_name

    def download(
        self,
        build_id: int,
        organization: str,
        project: str,
        cancel: "CancellationToken | None" = None,
    ) -> Path:
        """
        Download and extract the required artifact of a build.

        Args:
            build_id: Build identifier
            organization: Build system organization
            project: Build system project
            cancel: Cancellation token

        Returns:
            Path of the extracted artifact contents

        Raises:
            DownloadError: If the artifact is missing, the download fails or
                the archive cannot be extracted
            OperationCancelledError: If cancelled
        """
        logger.info("Fetching artifacts for build %d", build_id)
        try:
            artifact = self.artifacts.find(build_id, organization, project, cancel=cancel)
        except OperationCancelledError:
            raise
        except PrBuildError as e:
            raise DownloadError(
                f"Failed to fetch artifacts for build {build_id}: {e.message}", build_id
            ) from e

        if artifact is None or not artifact.download_url:
            raise DownloadError(
                f"{self.artifacts.required_name} artifact not found for build {build_id}",
                build_id,
            )

        build_dir = self.work_root / str(build_id)
        zip_path = build_dir / "artifacts.zip"
        extract_path = build_dir / "extracted"

        logger.info("Downloading artifact from %s", artifact.download_url)
        try:
            self.transport.download(artifact.download_url, zip_path, cancel=cancel)
        except OperationCancelledError:
            raise
        except PrBuildError as e:
            raise DownloadError(
                f"Failed to download artifact for build {build_id}: {e.message}", build_id
            ) from e

        extract_archive(zip_path, extract_path, build_id)
        logger.info("Artifacts extracted to %s", extract_path)
        return extract_path

    def download_build(
        self,
        build: "CandidateBuild",
        cancel: "CancellationToken | None" = None,
    ) -> Path:
        """Download the artifact of a resolved candidate build."""
        return self.download(build.build_id, build.organization, build.project, cancel=cancel)


def extract_archive(zip_path: Path, extract_path: Path, build_id: int | None = None) -> Path:
    """
    Extract a zip archive, replacing any previous extraction.

    Members that would land outside ``extract_path`` are rejected.

    Raises:
        DownloadError: If the archive is corrupt, encrypted or unsafe, or
            cannot be written to disk
    """
    try:
        if extract_path.exists():
            shutil.rmtree(extract_path)
        extract_path.mkdir(parents=True)
        root = extract_path.resolve()

        with zipfile.ZipFile(zip_path) as archive:
            for member in archive.namelist():
                target = (root / member).resolve()
                if target != root and root not in target.parents:
                    raise DownloadError(
                        f"Archive member {member!r} escapes the extraction directory",
                        build_id,
                    )
            archive.extractall(root)
    except zipfile.BadZipFile as e:
        raise DownloadError(f"Downloaded artifact is not a valid zip: {e}", build_id) from e
    except (RuntimeError, OSError) as e:
        # RuntimeError: encrypted members
        raise DownloadError(f"Failed to extract artifact to {extract_path}: {e}", build_id) from e

    return extract_path
