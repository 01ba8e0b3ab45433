"""Check run data models."""

from dataclasses import dataclass

# Check run statuses reported by the code host
STATUS_QUEUED = "queued"
STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"


@dataclass(frozen=True)
class CheckRun:
    """One CI job's status for a commit."""

    name: str
    status: str  # "queued", "in_progress", "completed"
    conclusion: str | None  # "success", "failure", "neutral", ... or None while running
    details_url: str | None

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED

    def describe(self) -> str:
        """Short form used in diagnostics, e.g. ``maui-pr (completed/failure)``."""
        return f"{self.name} ({self.status}/{self.conclusion or 'pending'})"


@dataclass(frozen=True)
class CheckRunPage:
    """A single page of check runs as returned by the code host."""

    total_count: int
    check_runs: list[CheckRun]
