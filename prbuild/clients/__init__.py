"""prbuild resource clients."""

from prbuild.clients.artifacts import ArtifactsClient
from prbuild.clients.builds import BuildsClient
from prbuild.clients.checks import ChecksClient
from prbuild.clients.commits import CommitsClient

__all__ = [
    "CommitsClient",
    "ChecksClient",
    "BuildsClient",
    "ArtifactsClient",
]
