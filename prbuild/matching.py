"""
Check-run relevance rules and build URL matching.

Both are driven entirely by configured identifiers, so a different
repository's check names or build host can be plugged in without
changing the resolver.
"""

import re
from dataclasses import dataclass


class CheckRunFilter:
    """
    Decides whether a check run belongs to the artifact-producing build.

    A name is relevant when it equals the build check name, or starts with
    ``"<name> ("`` or ``"<name>-"`` (sub-jobs of the same build), and does
    not contain any excluded substring, compared case-insensitively.

    Example:
        ```python
        f = CheckRunFilter("maui-pr", ("uitests",))
        f.is_relevant("maui-pr")             # True
        f.is_relevant("maui-pr (Pack)")      # True
        f.is_relevant("maui-pr (uitests)")   # False
        f.is_relevant("maui-prerelease")     # False
        ```
    """

    def __init__(self, build_check_name: str, excluded_substrings: tuple[str, ...] = ()) -> None:
        self.build_check_name = build_check_name
        self.excluded_substrings = tuple(s.lower() for s in excluded_substrings)
        self._prefixes = (f"{build_check_name} (", f"{build_check_name}-")

    def is_relevant(self, name: str | None) -> bool:
        if not name:
            return False

        if name != self.build_check_name and not name.startswith(self._prefixes):
            return False

        lowered = name.lower()
        return not any(excluded in lowered for excluded in self.excluded_substrings)


@dataclass(frozen=True)
class BuildUrlMatch:
    """Build coordinates extracted from a check run's details URL."""

    organization: str
    project: str
    build_id: int


class BuildUrlMatcher:
    """
    Extracts (organization, project, build id) from build result URLs.

    Matches ``https://<host>/<org>/<project>/<path>?buildId=<digits>``,
    for example
    ``https://dev.azure.com/dnceng-public/public/_build/results?buildId=155100``.
    ``buildId`` must be the first query parameter; others may follow it.
    """

    def __init__(self, host: str) -> None:
        self.host = host
        self._pattern = re.compile(
            rf"^(?:https?://)?{re.escape(host)}"
            r"/(?P<org>[^/?#]+)"
            r"/(?P<project>[^/?#]+)"
            r"/[^?#]*"
            r"\?buildId=(?P<build_id>\d+)(?:[&#]|$)",
            re.IGNORECASE,
        )

    def match(self, url: str | None) -> BuildUrlMatch | None:
        """
        Match a details URL.

        Args:
            url: Check run details URL (may be None)

        Returns:
            BuildUrlMatch, or None if the URL is missing or does not match
        """
        if not url:
            return None

        m = self._pattern.match(url.strip())
        if m is None:
            return None

        return BuildUrlMatch(
            organization=m.group("org"),
            project=m.group("project"),
            build_id=int(m.group("build_id")),
        )
