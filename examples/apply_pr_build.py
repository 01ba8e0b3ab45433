#!/usr/bin/env python3
"""
Apply a pull request's CI packages to a project.

Resolves the build, downloads its PackageArtifacts, then updates the
project through small file-based collaborators defined below:

1. Resolve the pull request to a verified build
2. Download and extract the artifact
3. Point a NuGet.config at the extracted packages
4. Set the package version (and target framework if needed)
5. Run ``dotnet restore``

Usage:
    python examples/apply_pr_build.py 12345 path/to/MyApp.csproj
"""

import re
import subprocess
import sys
import xml.etree.ElementTree as ET
from pathlib import Path

from prbuild import PrBuildApplier, PrBuildClient, PrBuildError, ProjectInfo


class CsprojMutator:
    """Regex-based edits to an SDK-style project file."""

    def set_package_version(self, path: Path, package_name: str, version: str) -> None:
        text = path.read_text()
        pattern = re.compile(
            rf'(<PackageReference\s+Include="{re.escape(package_name)}"\s+Version=")[^"]*(")'
        )
        if pattern.search(text):
            text = pattern.sub(rf"\g<1>{version}\g<2>", text)
        else:
            reference = f'    <PackageReference Include="{package_name}" Version="{version}" />\n'
            text = text.replace("</Project>", f"  <ItemGroup>\n{reference}  </ItemGroup>\n</Project>")
        path.write_text(text)

    def set_target_framework(self, path: Path, new_version: str) -> None:
        text = re.sub(r"net\d+\.\d+(?=[-;<])", f"net{new_version}", path.read_text())
        path.write_text(text)


class NuGetConfigWriter:
    """Adds a local package source to NuGet.config beside the project."""

    def add_package_source(self, project_dir: Path, source_path: Path, name: str) -> None:
        config = project_dir / "NuGet.config"
        if config.exists():
            tree = ET.parse(config)
            root = tree.getroot()
        else:
            root = ET.Element("configuration")
            tree = ET.ElementTree(root)

        sources = root.find("packageSources")
        if sources is None:
            sources = ET.SubElement(root, "packageSources")
        for existing in sources.findall("add"):
            if existing.get("key") == name:
                sources.remove(existing)
        ET.SubElement(sources, "add", key=name, value=str(source_path))
        tree.write(config, encoding="utf-8", xml_declaration=True)


class DotnetRestore:
    def restore(self, project_path: Path) -> None:
        subprocess.run(["dotnet", "restore", str(project_path)], check=True)


def detect_dotnet_version(project_path: Path) -> str | None:
    match = re.search(r"<TargetFrameworks?>net(\d+\.\d+)", project_path.read_text())
    return match.group(1) if match else None


def confirm(current: str | None, wanted: str | None) -> bool:
    answer = input(f"Project targets .NET {current}, PR build needs .NET {wanted}. Update? [y/N] ")
    return answer.strip().lower() in ("y", "yes")


def main() -> int:
    """Run the apply workflow."""
    if len(sys.argv) != 3:
        print("usage: apply_pr_build.py <pr-number> <project.csproj>", file=sys.stderr)
        return 2

    pr_number = int(sys.argv[1])
    project_path = Path(sys.argv[2]).resolve()
    project = ProjectInfo(project_path, detect_dotnet_version(project_path))

    with PrBuildClient.from_env() as client:
        applier = PrBuildApplier(
            resolver=client.resolver,
            fetcher=client.fetcher,
            mutator=CsprojMutator(),
            sources=NuGetConfigWriter(),
            restore=DotnetRestore(),
            confirm_framework_update=confirm,
        )
        try:
            applied = applier.apply(pr_number, project)
        except PrBuildError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1

    print(f"Applied build {applied.build.build_id}: {applied.package_version}")
    if applied.target_framework_updated_to:
        print(f"Target framework updated to net{applied.target_framework_updated_to}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
