"""Check runs client."""

from typing import TYPE_CHECKING, Any

from prbuild.exceptions import ResponseParseError, UnavailableError
from prbuild.logging import get_logger
from prbuild.types.checks import CheckRun, CheckRunPage

if TYPE_CHECKING:
    from prbuild.cancellation import CancellationToken
    from prbuild.transport import HTTPTransport

logger = get_logger("checks")


class ChecksClient:
    """Client for a commit's check runs."""

    def __init__(
        self,
        transport: "HTTPTransport",
        repository: str,
        page_size: int = 100,
    ) -> None:
        """
        Initialize the checks client.

        Args:
            transport: HTTP transport for the code host API
            repository: Repository in "owner/name" form
            page_size: Check runs requested per page (the API caps this at 100)
        """
        self.transport = transport
        self.repository = repository
        self.page_size = page_size

    def get_page(
        self,
        sha: str,
        page: int,
        cancel: "CancellationToken | None" = None,
    ) -> CheckRunPage:
        """
        Fetch one page of check runs.

        Args:
            sha: Commit SHA
            page: 1-based page number
            cancel: Cancellation token

        Returns:
            CheckRunPage with the reported total and this page's runs

        Raises:
            UnavailableError: If the API does not respond successfully
            ResponseParseError: If required fields are missing
        """
        path = f"/repos/{self.repository}/commits/{sha}/check-runs"
        response = self.transport.get_json(
            path,
            params={"per_page": self.page_size, "page": page},
            cancel=cancel,
        )

        if not isinstance(response, dict):
            raise ResponseParseError(f"Expected an object from {path}", url=path)

        total_count = response.get("total_count")
        runs = response.get("check_runs")
        if not isinstance(total_count, int) or not isinstance(runs, list):
            raise ResponseParseError(
                f"Response from {path} is missing total_count or check_runs", url=path
            )

        return CheckRunPage(
            total_count=total_count,
            check_runs=[self._parse_check_run(run, path) for run in runs],
        )

    def list_for_commit(
        self,
        sha: str,
        cancel: "CancellationToken | None" = None,
    ) -> list[CheckRun]:
        """
        Fetch every check run for a commit, following pagination.

        Pages are requested until the collected runs reach the reported
        ``total_count`` or a page comes back empty. The result is returned
        only if it holds exactly ``total_count`` runs; a short or inconsistent
        set fails the whole fetch rather than being returned as complete.

        Args:
            sha: Commit SHA
            cancel: Cancellation token, checked before every page

        Returns:
            All check runs for the commit

        Raises:
            UnavailableError: If any page fails or pagination is incomplete
            ResponseParseError: If any page is malformed
            OperationCancelledError: If cancelled between pages
        """
        runs: list[CheckRun] = []
        total_count = 0
        page = 1

        while True:
            logger.info("Fetching check runs for commit %s (page %d)", sha[:8], page)
            result = self.get_page(sha, page, cancel=cancel)
            total_count = result.total_count

            if not result.check_runs:
                break

            runs.extend(result.check_runs)
            if len(runs) >= total_count:
                break

            page += 1

        if len(runs) != total_count:
            raise UnavailableError(
                "INCOMPLETE_PAGINATION",
                f"Collected {len(runs)} check runs for {sha[:8]} but the API reported {total_count}",
            )

        logger.info("Found %d total check runs for commit %s across all pages", len(runs), sha[:8])
        return runs

    def _parse_check_run(self, data: Any, path: str) -> CheckRun:
        """Parse check run data from API response."""
        if not isinstance(data, dict) or "name" not in data or "status" not in data:
            raise ResponseParseError(f"Check run without name or status in {path}", url=path)

        return CheckRun(
            name=data["name"],
            status=data["status"],
            conclusion=data.get("conclusion"),
            details_url=data.get("details_url"),
        )
