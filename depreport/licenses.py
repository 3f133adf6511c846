"""Group the projects of the dependency tree by declared license."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol

import structlog

from depreport.exceptions import MetadataUnavailableError
from depreport.models import SCOPE_SYSTEM, Artifact, ProjectMetadata
from depreport.tree import FilteredNode, iter_nodes

log = structlog.get_logger("depreport.licenses")

UNKNOWN_LICENSE = "Unknown"


class ProjectMetadataProvider(Protocol):
    """Loads the project an artifact was built from."""

    def project_for(self, artifact: Artifact) -> ProjectMetadata: ...


class LicenseMap:
    """Multimap of license name to the sorted, unique project names using it.

    Keys keep their first-insertion order. ``""`` stands for a license
    declared without a name.
    """

    def __init__(self) -> None:
        self._projects: dict[str, set[str]] = {}

    def add(self, license_name: str | None, project_name: str) -> None:
        self._projects.setdefault(license_name or "", set()).add(project_name)

    def projects(self, license_name: str) -> list[str]:
        return sorted(self._projects.get(license_name, ()))

    def licenses(self) -> list[str]:
        return list(self._projects)

    def items(self) -> Iterator[tuple[str, list[str]]]:
        for name in self._projects:
            yield name, self.projects(name)

    def __contains__(self, license_name: object) -> bool:
        return license_name in self._projects

    def __len__(self) -> int:
        return len(self._projects)


def record_project_licenses(license_map: LicenseMap, project: ProjectMetadata) -> None:
    """Insert every license of *project*, or the unknown bucket when it has none."""
    if not project.licenses:
        license_map.add(UNKNOWN_LICENSE, project.name)
        return
    for lic in project.licenses:
        license_map.add(lic.name, project.name)


def aggregate_licenses(tree: FilteredNode, provider: ProjectMetadataProvider) -> LicenseMap:
    """Collect licenses of every displayed node of *tree* (the root excluded)."""
    license_map = LicenseMap()
    for node in iter_nodes(tree):
        artifact = node.artifact
        if artifact.scope == SCOPE_SYSTEM:
            continue
        try:
            project = provider.project_for(artifact)
        except MetadataUnavailableError as e:
            log.error("licenses.project_unavailable", artifact=artifact.id, error=str(e))
            continue
        record_project_licenses(license_map, project)
    return license_map
