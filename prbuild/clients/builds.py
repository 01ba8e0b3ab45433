"""Build system builds client."""

from typing import TYPE_CHECKING, Any

from prbuild.exceptions import ResponseParseError
from prbuild.logging import get_logger
from prbuild.types.builds import CandidateBuild, OrchestratorBuild

if TYPE_CHECKING:
    from prbuild.cancellation import CancellationToken
    from prbuild.transport import HTTPTransport

logger = get_logger("builds")

BUILD_STATUS_COMPLETED = "completed"


class BuildsClient:
    """Client for querying builds directly from the build system."""

    def __init__(
        self,
        transport: "HTTPTransport",
        organization: str,
        project: str,
        definition_name: str,
        top: int = 10,
        api_version: str = "7.1",
    ) -> None:
        """
        Initialize the builds client.

        Args:
            transport: HTTP transport for the build system API
            organization: Build system organization
            project: Build system project
            definition_name: Build definition whose builds carry the artifact
            top: Number of most recent builds to request
            api_version: REST API version
        """
        self.transport = transport
        self.organization = organization
        self.project = project
        self.definition_name = definition_name
        self.top = top
        self.api_version = api_version

    def list_for_branch(
        self,
        branch_name: str,
        cancel: "CancellationToken | None" = None,
    ) -> list[OrchestratorBuild]:
        """
        List the most recent builds for a branch, in the API's order.

        Args:
            branch_name: Full ref name (e.g., "refs/pull/123/merge")
            cancel: Cancellation token

        Returns:
            Builds as ordered by the API (most recent first)

        Raises:
            UnavailableError: If the API does not respond successfully
            ResponseParseError: If the response has no ``value`` list
        """
        path = f"/{self.organization}/{self.project}/_apis/build/builds"
        response = self.transport.get_json(
            path,
            params={
                "branchName": branch_name,
                "$top": self.top,
                "api-version": self.api_version,
            },
            cancel=cancel,
        )

        values = response.get("value") if isinstance(response, dict) else None
        if not isinstance(values, list):
            raise ResponseParseError(f"Response from {path} has no build list", url=path)

        return [self._parse_build(item, path) for item in values]

    def find_merge_ref_build(
        self,
        pr_number: int,
        cancel: "CancellationToken | None" = None,
    ) -> CandidateBuild | None:
        """
        Find the newest completed build of the configured definition for a
        pull request's merge ref.

        Builds triggered on the merge ref do not always report back to the
        code host's check runs, so this looks them up by branch instead.

        Args:
            pr_number: The pull request number
            cancel: Cancellation token

        Returns:
            CandidateBuild, or None if no completed build of the definition exists
        """
        branch = f"refs/pull/{pr_number}/merge"
        builds = self.list_for_branch(branch, cancel=cancel)
        logger.info("Found %d builds for %s", len(builds), branch)

        for build in builds:
            if build.status != BUILD_STATUS_COMPLETED:
                logger.debug("Skipping build %d: status=%s", build.build_id, build.status)
                continue
            if build.definition_name != self.definition_name:
                logger.debug(
                    "Skipping build %d: definition=%s", build.build_id, build.definition_name
                )
                continue

            logger.info(
                "Found build %d (%s) for %s, result=%s",
                build.build_id,
                build.build_number,
                branch,
                build.result,
            )
            return CandidateBuild(
                build_id=build.build_id,
                build_number=build.build_number,
                status=build.status,
                result=build.result,
                source_branch=build.source_branch,
                source_version=build.source_version,
                organization=self.organization,
                project=self.project,
            )

        return None

    def _parse_build(self, data: Any, path: str) -> OrchestratorBuild:
        """Parse build data from API response."""
        if not isinstance(data, dict) or not isinstance(data.get("id"), int):
            raise ResponseParseError(f"Build entry without an id in {path}", url=path)

        definition = data.get("definition") or {}
        return OrchestratorBuild(
            build_id=data["id"],
            build_number=data.get("buildNumber", str(data["id"])),
            status=data.get("status", ""),
            result=data.get("result"),
            source_branch=data.get("sourceBranch", ""),
            source_version=data.get("sourceVersion", ""),
            definition_name=definition.get("name", ""),
        )
