#!/usr/bin/env python3
"""
Resolve a pull request to its verified CI build.

Usage:
    python examples/resolve_pr.py 12345

Set GITHUB_TOKEN (or PRBUILD_GITHUB_TOKEN) to avoid anonymous rate limits.
"""

import logging
import sys

from prbuild import CancellationToken, PrBuildClient, PrBuildError, configure_logging


def main() -> int:
    """Resolve the pull request given on the command line."""
    if len(sys.argv) != 2 or not sys.argv[1].isdigit():
        print("usage: resolve_pr.py <pr-number>", file=sys.stderr)
        return 2

    pr_number = int(sys.argv[1])
    configure_logging(level=logging.WARNING, resolver_level=logging.INFO)

    try:
        with PrBuildClient.from_env() as client:
            resolution = client.resolve(pr_number, cancel=CancellationToken(timeout=120))
    except PrBuildError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"State:            {resolution.state.value}")
    print(f"Commits scanned:  {resolution.commits_scanned}")
    print(f"Verifications:    {resolution.verification_attempts}")
    print(f"Fallback queried: {resolution.orchestrator_queried}")

    if not resolution.resolved:
        for line in resolution.diagnostics:
            print(f"  - {line}")
        try:
            resolution.unwrap()
        except PrBuildError as e:
            print(f"\n{e.message}", file=sys.stderr)
        return 1

    build = resolution.unwrap()
    print(f"\nBuild {build.build_id} ({build.build_number}) via {resolution.strategy}")
    print(f"  {build.organization}/{build.project}, result={build.result}")
    print(f"  source {build.source_branch} @ {build.source_version[:12]}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
