"""prbuild - resolve, verify and download pull request CI builds."""

from prbuild.cancellation import CancellationToken
from prbuild.client import PrBuildClient
from prbuild.config import ResolverConfig
from prbuild.exceptions import (
    BuildNotFoundError,
    ConfigurationError,
    DownloadError,
    OperationCancelledError,
    PackageNotFoundError,
    PrBuildError,
    RateLimitedError,
    ResponseParseError,
    UnavailableError,
)
from prbuild.fetcher import ArtifactFetcher
from prbuild.logging import configure_logging, get_logger
from prbuild.matching import BuildUrlMatch, BuildUrlMatcher, CheckRunFilter
from prbuild.pipeline import AppliedBuild, PrBuildApplier, ProjectInfo
from prbuild.resolver import BuildResolver, Resolution, ResolutionState
from prbuild.transport import HTTPTransport, RetryConfig
from prbuild.types import Artifact, CandidateBuild, CheckRun

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Main Client
    "PrBuildClient",
    "ResolverConfig",
    # Resolution
    "BuildResolver",
    "Resolution",
    "ResolutionState",
    "CheckRunFilter",
    "BuildUrlMatcher",
    "BuildUrlMatch",
    # Download and apply
    "ArtifactFetcher",
    "PrBuildApplier",
    "ProjectInfo",
    "AppliedBuild",
    # Types
    "CheckRun",
    "CandidateBuild",
    "Artifact",
    # Exceptions
    "PrBuildError",
    "ConfigurationError",
    "UnavailableError",
    "RateLimitedError",
    "ResponseParseError",
    "BuildNotFoundError",
    "DownloadError",
    "PackageNotFoundError",
    "OperationCancelledError",
    # Transport
    "CancellationToken",
    "HTTPTransport",
    "RetryConfig",
    # Logging
    "configure_logging",
    "get_logger",
]
