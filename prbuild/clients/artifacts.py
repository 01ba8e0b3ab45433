"""Build artifacts client."""

from typing import TYPE_CHECKING, Any

from prbuild.exceptions import OperationCancelledError, PrBuildError, ResponseParseError
from prbuild.logging import get_logger
from prbuild.types.builds import Artifact

if TYPE_CHECKING:
    from prbuild.cancellation import CancellationToken
    from prbuild.transport import HTTPTransport
    from prbuild.types.builds import CandidateBuild

logger = get_logger("artifacts")


class ArtifactsClient:
    """Client for listing and verifying a build's artifacts."""

    def __init__(
        self,
        transport: "HTTPTransport",
        required_name: str,
        api_version: str = "7.1",
    ) -> None:
        """
        Initialize the artifacts client.

        Args:
            transport: HTTP transport for the build system API
            required_name: Artifact a build must expose to be usable
            api_version: REST API version
        """
        self.transport = transport
        self.required_name = required_name
        self.api_version = api_version

    def list(
        self,
        build_id: int,
        organization: str,
        project: str,
        cancel: "CancellationToken | None" = None,
    ) -> list[Artifact]:
        """
        List a build's artifacts.

        Raises:
            UnavailableError: If the API does not respond successfully
            ResponseParseError: If the response has no ``value`` list
        """
        path = f"/{organization}/{project}/_apis/build/builds/{build_id}/artifacts"
        response = self.transport.get_json(
            path,
            params={"api-version": self.api_version},
            cancel=cancel,
        )

        values = response.get("value") if isinstance(response, dict) else None
        if not isinstance(values, list):
            raise ResponseParseError(f"Response from {path} has no artifact list", url=path)

        return [self._parse_artifact(item, path) for item in values]

    def find(
        self,
        build_id: int,
        organization: str,
        project: str,
        name: str | None = None,
        cancel: "CancellationToken | None" = None,
    ) -> Artifact | None:
        """
        Find an artifact by name, case-insensitively.

        Args:
            name: Artifact name (default: the required artifact name)

        Returns:
            The matching Artifact, or None
        """
        wanted = (name or self.required_name).lower()
        for artifact in self.list(build_id, organization, project, cancel=cancel):
            if artifact.name.lower() == wanted:
                return artifact
        return None

    def verify(
        self,
        build: "CandidateBuild",
        cancel: "CancellationToken | None" = None,
    ) -> bool:
        """
        Check that a candidate build exposes the required artifact.

        Any failure to check counts as "not verified": a candidate that
        cannot be checked is not trusted. Cancellation still propagates.

        Args:
            build: Candidate build to check
            cancel: Cancellation token

        Returns:
            True if the required artifact exists
        """
        try:
            artifact = self.find(
                build.build_id, build.organization, build.project, cancel=cancel
            )
        except OperationCancelledError:
            raise
        except PrBuildError as e:
            logger.warning(
                "Could not verify artifacts for build %d: %s", build.build_id, e
            )
            return False

        if artifact is None:
            logger.warning(
                "Build %d has no %s artifact", build.build_id, self.required_name
            )
            return False

        logger.info("Build %d has %s artifact", build.build_id, artifact.name)
        return True

    def _parse_artifact(self, data: Any, path: str) -> Artifact:
        """Parse artifact data from API response."""
        if not isinstance(data, dict) or not isinstance(data.get("name"), str):
            raise ResponseParseError(f"Artifact entry without a name in {path}", url=path)

        resource = data.get("resource") or {}
        return Artifact(
            name=data["name"],
            download_url=resource.get("downloadUrl") or None,
        )
