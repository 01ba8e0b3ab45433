"""Pull request commits client."""

import re
from typing import TYPE_CHECKING, Any

from prbuild.exceptions import ResponseParseError

if TYPE_CHECKING:
    from prbuild.cancellation import CancellationToken
    from prbuild.transport import HTTPTransport

_SHA_PATTERN = re.compile(r"^[0-9a-fA-F]{40}$")


class CommitsClient:
    """Client for listing the commits that belong to a pull request."""

    def __init__(
        self,
        transport: "HTTPTransport",
        repository: str,
        page_size: int = 100,
    ) -> None:
        """
        Initialize the commits client.

        Args:
            transport: HTTP transport for the code host API
            repository: Repository in "owner/name" form
            page_size: Commits requested per call (the API caps this at 100)
        """
        self.transport = transport
        self.repository = repository
        self.page_size = page_size

    def list_for_pull_request(
        self,
        pr_number: int,
        cancel: "CancellationToken | None" = None,
    ) -> list[str]:
        """
        List a pull request's commit SHAs, most recent first.

        Only the first page is requested. A pull request with more commits
        than ``page_size`` returns its oldest ``page_size`` commits from the
        API, reversed here.

        Args:
            pr_number: The pull request number
            cancel: Cancellation token

        Returns:
            Commit SHAs, newest first

        Raises:
            UnavailableError: If the API does not respond successfully
            ResponseParseError: If the response is not a list of commits
        """
        path = f"/repos/{self.repository}/pulls/{pr_number}/commits"
        response = self.transport.get_json(
            path,
            params={"per_page": self.page_size},
            cancel=cancel,
        )

        if not isinstance(response, list):
            raise ResponseParseError(f"Expected a list of commits from {path}", url=path)

        shas = [self._parse_sha(item, path) for item in response]
        shas.reverse()
        return shas

    def _parse_sha(self, item: Any, path: str) -> str:
        """Extract and validate the SHA of one commit entry."""
        sha = item.get("sha") if isinstance(item, dict) else None
        if not isinstance(sha, str) or not _SHA_PATTERN.match(sha):
            raise ResponseParseError(f"Commit entry without a valid sha in {path}", url=path)
        return sha.lower()
