"""
Build resolution for pull requests.

Maps a pull request number to a build that is confirmed to carry the
required artifact. Two strategies run strictly in order:

1. Walk the pull request's commits, newest first. For each commit, fetch
   its check runs, keep the ones that belong to the build check, and take
   the first completed one whose details URL points at a build. Verify the
   build's artifacts; the first verified build wins. A build that fails
   verification moves the search to the next older commit.
2. If no commit produced a verified build (or the commits could not be
   listed), ask the build system for recent builds of the pull request's
   merge ref and verify the first completed build of the build definition.

A build is returned only after verification succeeds. Running out of
candidates is a normal outcome, reported as an exhausted Resolution.
"""

from concurrent.futures import ThreadPoolExecutor
from contextlib import closing
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from prbuild.cancellation import CancellationToken
from prbuild.exceptions import BuildNotFoundError, ResponseParseError, UnavailableError
from prbuild.logging import get_logger
from prbuild.types.builds import CandidateBuild

if TYPE_CHECKING:
    from collections.abc import Iterator

    from prbuild.clients.artifacts import ArtifactsClient
    from prbuild.clients.builds import BuildsClient
    from prbuild.clients.checks import ChecksClient
    from prbuild.clients.commits import CommitsClient
    from prbuild.matching import BuildUrlMatcher, CheckRunFilter
    from prbuild.types.checks import CheckRun

logger = get_logger("resolver")

STRATEGY_CHECKS = "checks"
STRATEGY_MERGE_REF = "merge-ref"


class ResolutionState(str, Enum):
    """States of the build search."""

    SEARCHING_COMMITS = "searching_commits"
    VERIFYING_COMMIT_CANDIDATE = "verifying_commit_candidate"
    SEARCHING_ORCHESTRATOR = "searching_orchestrator"
    VERIFYING_ORCHESTRATOR_CANDIDATE = "verifying_orchestrator_candidate"
    RESOLVED = "resolved"
    EXHAUSTED = "exhausted"


@dataclass
class Resolution:
    """Outcome of resolving a pull request to a verified build."""

    pr_number: int
    state: ResolutionState = ResolutionState.SEARCHING_COMMITS
    build: CandidateBuild | None = None
    strategy: str | None = None
    commits_scanned: int = 0
    verification_attempts: int = 0
    orchestrator_queried: bool = False
    pull_request_url: str | None = None
    trace: list[ResolutionState] = field(default_factory=list)
    diagnostics: list[str] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.state is ResolutionState.RESOLVED

    def unwrap(self) -> CandidateBuild:
        """
        Return the resolved build.

        Raises:
            BuildNotFoundError: If the search was exhausted
        """
        if self.build is not None and self.resolved:
            return self.build

        message = (
            f"No successful build found for PR #{self.pr_number}. "
            "The PR may not have triggered CI builds yet (draft PRs don't auto-trigger builds), "
            "or the build may still be in progress or failed."
        )
        if self.pull_request_url:
            message += f" Check the PR to see if builds have completed: {self.pull_request_url}"
        raise BuildNotFoundError(self.pr_number, message)

    def _enter(self, state: ResolutionState) -> None:
        logger.debug("PR #%d: %s -> %s", self.pr_number, self.state.value, state.value)
        self.state = state
        self.trace.append(state)

    def _note(self, message: str) -> None:
        self.diagnostics.append(message)


@dataclass
class _CommitScan:
    """Result of scanning one commit's check runs."""

    sha: str
    candidate: CandidateBuild | None = None
    error: Exception | None = None
    notes: list[str] = field(default_factory=list)


class BuildResolver:
    """
    Resolves pull requests to builds with a verified artifact.

    Example:
        ```python
        resolver = BuildResolver(commits, checks, builds, artifacts, check_filter, url_matcher)
        resolution = resolver.resolve(12345)
        if resolution.resolved:
            print(resolution.build.build_id)
        ```
    """

    def __init__(
        self,
        commits: "CommitsClient",
        checks: "ChecksClient",
        builds: "BuildsClient",
        artifacts: "ArtifactsClient",
        check_filter: "CheckRunFilter",
        url_matcher: "BuildUrlMatcher",
        max_workers: int = 1,
        pull_request_url: str | None = None,
    ) -> None:
        """
        Initialize the resolver.

        Args:
            commits: Lists a pull request's commits
            checks: Fetches a commit's check runs
            builds: Queries builds of the merge ref (fallback)
            artifacts: Verifies the required artifact
            check_filter: Relevance rule for check run names
            url_matcher: Extracts build coordinates from details URLs
            max_workers: Commits whose check runs are fetched concurrently.
                Candidates are still verified one at a time in commit order.
            pull_request_url: Format string with ``{pr_number}`` for messages
        """
        self.commits = commits
        self.checks = checks
        self.builds = builds
        self.artifacts = artifacts
        self.check_filter = check_filter
        self.url_matcher = url_matcher
        self.max_workers = max(1, max_workers)
        self.pull_request_url = pull_request_url

    def resolve(
        self,
        pr_number: int,
        cancel: CancellationToken | None = None,
    ) -> Resolution:
        """
        Resolve a pull request to a verified build.

        Args:
            pr_number: The pull request number
            cancel: Cancellation token honored at every network call

        Returns:
            Resolution in state RESOLVED (with build) or EXHAUSTED

        Raises:
            OperationCancelledError: If cancelled
        """
        cancel = cancel or CancellationToken()
        resolution = Resolution(pr_number=pr_number)
        if self.pull_request_url:
            resolution.pull_request_url = self.pull_request_url.format(pr_number=pr_number)

        resolution._enter(ResolutionState.SEARCHING_COMMITS)
        if self._search_commits(resolution, cancel):
            return resolution

        resolution._enter(ResolutionState.SEARCHING_ORCHESTRATOR)
        if self._search_orchestrator(resolution, cancel):
            return resolution

        resolution._enter(ResolutionState.EXHAUSTED)
        logger.warning(
            "No verified build found for PR #%d after scanning %d commits",
            pr_number,
            resolution.commits_scanned,
        )
        return resolution

    def candidate_from_checks(
        self,
        check_runs: "list[CheckRun]",
        sha: str,
        pr_number: int,
        notes: list[str] | None = None,
    ) -> CandidateBuild | None:
        """
        Pick the build candidate from a commit's check runs.

        Every relevant check is considered until one is completed and has a
        details URL that matches the build URL pattern; the first such check
        wins. Relevant checks that do not qualify are described in ``notes``.

        Args:
            check_runs: All check runs of the commit
            sha: The commit SHA
            pr_number: The pull request number
            notes: Optional list collecting diagnostic messages

        Returns:
            CandidateBuild, or None if no relevant check qualifies
        """
        if notes is None:
            notes = []

        logger.info(
            "Available check runs for %s: %s",
            sha[:8],
            ", ".join(run.name for run in check_runs),
        )

        relevant: list["CheckRun"] = []
        for run in check_runs:
            logger.debug(
                "Check run: name=%s, status=%s, conclusion=%s, detailsUrl=%s",
                run.name,
                run.status,
                run.conclusion,
                run.details_url,
            )
            if not self.check_filter.is_relevant(run.name):
                continue

            relevant.append(run)
            if not run.is_completed:
                continue

            match = self.url_matcher.match(run.details_url)
            if match is None:
                continue

            logger.info(
                "Found build check %s: org=%s, project=%s, buildId=%d",
                run.describe(),
                match.organization,
                match.project,
                match.build_id,
            )
            return CandidateBuild(
                build_id=match.build_id,
                build_number=f"PR-{pr_number}",
                status=run.status,
                result=run.conclusion,
                source_branch=f"refs/pull/{pr_number}/head",
                source_version=sha,
                organization=match.organization,
                project=match.project,
            )

        if relevant:
            note = (
                f"Commit {sha[:8]}: found {len(relevant)} relevant "
                f"{self.check_filter.build_check_name} checks, but none were completed "
                f"with a build link: {', '.join(run.describe() for run in relevant)}"
            )
        else:
            note = (
                f"Commit {sha[:8]}: no {self.check_filter.build_check_name} "
                f"checks among {len(check_runs)} check runs"
            )
        logger.warning(note)
        notes.append(note)
        return None

    def _search_commits(self, resolution: Resolution, cancel: CancellationToken) -> bool:
        """Strategy 1: commit check runs, newest commit first."""
        pr_number = resolution.pr_number
        try:
            shas = self.commits.list_for_pull_request(pr_number, cancel=cancel)
        except (UnavailableError, ResponseParseError) as e:
            logger.warning("Could not list commits for PR #%d: %s", pr_number, e)
            resolution._note(f"Commit listing unavailable: {e}")
            return False

        if not shas:
            resolution._note(f"PR #{pr_number} has no commits")
            return False

        logger.info("Scanning %d commits of PR #%d, newest first", len(shas), pr_number)

        with closing(self._scan_commits(shas, pr_number, cancel)) as scans:
            return self._verify_commit_scans(resolution, scans, cancel)

    def _verify_commit_scans(
        self,
        resolution: Resolution,
        scans: "Iterator[_CommitScan]",
        cancel: CancellationToken,
    ) -> bool:
        pr_number = resolution.pr_number
        for scan in scans:
            resolution.commits_scanned += 1
            resolution.diagnostics.extend(scan.notes)

            if scan.error is not None:
                continue
            if scan.candidate is None:
                continue

            resolution._enter(ResolutionState.VERIFYING_COMMIT_CANDIDATE)
            resolution.verification_attempts += 1
            if self.artifacts.verify(scan.candidate, cancel=cancel):
                resolution.build = scan.candidate
                resolution.strategy = STRATEGY_CHECKS
                resolution._enter(ResolutionState.RESOLVED)
                logger.info(
                    "Resolved PR #%d to build %d from commit %s",
                    pr_number,
                    scan.candidate.build_id,
                    scan.sha[:8],
                )
                return True

            resolution._note(
                f"Commit {scan.sha[:8]}: build {scan.candidate.build_id} has no "
                f"{self.artifacts.required_name} artifact"
            )
            resolution._enter(ResolutionState.SEARCHING_COMMITS)

        return False

    def _scan_commits(
        self,
        shas: list[str],
        pr_number: int,
        cancel: CancellationToken,
    ) -> "Iterator[_CommitScan]":
        """Yield commit scans in commit order, fetching ahead when parallel."""
        if self.max_workers == 1 or len(shas) == 1:
            for sha in shas:
                yield self._scan_commit(sha, pr_number, cancel)
            return

        executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="prbuild-scan"
        )
        try:
            # map() yields in submission order, not completion order
            yield from executor.map(
                lambda sha: self._scan_commit(sha, pr_number, cancel), shas
            )
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    def _scan_commit(
        self,
        sha: str,
        pr_number: int,
        cancel: CancellationToken,
    ) -> _CommitScan:
        scan = _CommitScan(sha=sha)
        try:
            check_runs = self.checks.list_for_commit(sha, cancel=cancel)
        except (UnavailableError, ResponseParseError) as e:
            logger.warning("Could not fetch check runs for commit %s: %s", sha[:8], e)
            scan.error = e
            scan.notes.append(f"Commit {sha[:8]}: check runs unavailable: {e}")
            return scan

        scan.candidate = self.candidate_from_checks(check_runs, sha, pr_number, scan.notes)
        return scan

    def _search_orchestrator(self, resolution: Resolution, cancel: CancellationToken) -> bool:
        """Strategy 2: builds of the pull request's merge ref."""
        pr_number = resolution.pr_number
        resolution.orchestrator_queried = True
        logger.info("Querying build system for merge ref builds of PR #%d", pr_number)

        try:
            candidate = self.builds.find_merge_ref_build(pr_number, cancel=cancel)
        except (UnavailableError, ResponseParseError) as e:
            logger.warning("Could not query merge ref builds for PR #%d: %s", pr_number, e)
            resolution._note(f"Merge ref build search unavailable: {e}")
            return False

        if candidate is None:
            resolution._note(
                f"No completed {self.builds.definition_name} build for the merge ref of PR #{pr_number}"
            )
            return False

        resolution._enter(ResolutionState.VERIFYING_ORCHESTRATOR_CANDIDATE)
        resolution.verification_attempts += 1
        if not self.artifacts.verify(candidate, cancel=cancel):
            resolution._note(
                f"Merge ref build {candidate.build_id} has no "
                f"{self.artifacts.required_name} artifact"
            )
            return False

        resolution.build = candidate
        resolution.strategy = STRATEGY_MERGE_REF
        resolution._enter(ResolutionState.RESOLVED)
        logger.info("Resolved PR #%d to merge ref build %d", pr_number, candidate.build_id)
        return True
