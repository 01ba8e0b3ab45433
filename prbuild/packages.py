"""Helpers for locating NuGet packages inside extracted artifacts."""

import re
from pathlib import Path

from prbuild.exceptions import PackageNotFoundError

PRIMARY_PACKAGE = "Microsoft.Maui.Controls"

_NUMERIC = re.compile(r"^\d+$")


def find_packages(artifacts_path: Path) -> list[Path]:
    """Return every ``.nupkg`` file under ``artifacts_path``, sorted by path."""
    return sorted(artifacts_path.rglob("*.nupkg"))


def find_primary_package(artifacts_path: Path, package_name: str = PRIMARY_PACKAGE) -> Path:
    """
    Find the package whose file name starts with ``package_name``.

    An exact ``<package_name>.<version>.nupkg`` match is preferred over
    longer names sharing the prefix (e.g. ``Microsoft.Maui.Controls.Core``).

    Raises:
        PackageNotFoundError: If there are no packages or none match
    """
    packages = find_packages(artifacts_path)
    if not packages:
        raise PackageNotFoundError(f"No NuGet packages found in {artifacts_path}")

    prefix = package_name.lower()
    matches = [p for p in packages if p.name.lower().startswith(prefix)]
    if not matches:
        raise PackageNotFoundError(f"{package_name} package not found in artifacts")

    for path in matches:
        rest = path.name[len(package_name):]
        if rest.startswith(".") and rest[1:2].isdigit():
            return path
    return matches[0]


def version_from_package(path: Path) -> str:
    """
    Derive a package version from its file name.

    The version starts at the first dot-separated component that is a plain
    number: ``Microsoft.Maui.Controls.10.0.0-ci.123.nupkg`` → ``10.0.0-ci.123``.

    Raises:
        PackageNotFoundError: If the name contains no numeric component
    """
    stem = path.name[: -len(".nupkg")] if path.name.lower().endswith(".nupkg") else path.stem
    parts = stem.split(".")
    for index, part in enumerate(parts):
        if _NUMERIC.match(part):
            return ".".join(parts[index:])
    raise PackageNotFoundError(f"Could not extract version from {path}")


def dotnet_version_from_package_version(version: str | None) -> str | None:
    """Map a package version to its .NET version: ``"10.0.1"`` → ``"10.0"``."""
    if not version:
        return None
    major = version.split(".")[0]
    if not _NUMERIC.match(major):
        return None
    return f"{int(major)}.0"


def is_version_compatible(project_version: str | None, package_version: str | None) -> bool:
    """Unknown versions on either side are treated as compatible."""
    if not project_version or not package_version:
        return True
    return project_version == package_version
