"""prbuild type definitions.

This module exports all data model types used by the package.
"""

from prbuild.types.builds import Artifact, CandidateBuild, OrchestratorBuild
from prbuild.types.checks import (
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_QUEUED,
    CheckRun,
    CheckRunPage,
)

__all__ = [
    # Check run types
    "CheckRun",
    "CheckRunPage",
    "STATUS_QUEUED",
    "STATUS_IN_PROGRESS",
    "STATUS_COMPLETED",
    # Build types
    "CandidateBuild",
    "OrchestratorBuild",
    "Artifact",
]
