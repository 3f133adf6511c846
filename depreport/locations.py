"""Which repository hosts which artifact."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

import structlog

from depreport.exceptions import ArtifactResolutionError
from depreport.models import SCOPE_SYSTEM, Artifact, ArtifactRepository, Presence
from depreport.resolver import ArtifactResolver, policy_allows
from depreport.totals import ScopeAccumulator

log = structlog.get_logger("depreport.locations")


@dataclass(frozen=True)
class LocationCell:
    presence: Presence
    url: str = ""


@dataclass
class LocationRow:
    artifact: Artifact
    cells: list[LocationCell] = field(default_factory=list)

    @property
    def found_count(self) -> int:
        return sum(1 for c in self.cells if c.presence is Presence.FOUND)


@dataclass
class LocationMatrix:
    repositories: list[ArtifactRepository]
    rows: list[LocationRow]
    dependency_totals: ScopeAccumulator
    found_by_repository: dict[str, ScopeAccumulator]

    @property
    def repository_ids(self) -> list[str]:
        return [r.id for r in self.repositories]

    def repository_total(self, repository_id: str) -> int:
        return self.found_by_repository[repository_id].total()


def check_presence(
    resolver: ArtifactResolver, repository: ArtifactRepository, artifact: Artifact
) -> Presence:
    if artifact.scope == SCOPE_SYSTEM or not policy_allows(repository, artifact):
        return Presence.UNKNOWN
    try:
        found = resolver.exists_in(repository, artifact)
    except ArtifactResolutionError as e:
        log.warning(
            "locations.check_failed", artifact=artifact.id, repository=repository.id, error=str(e)
        )
        return Presence.NOT_FOUND
    return Presence.FOUND if found else Presence.NOT_FOUND


def build_location_matrix(
    artifacts: Iterable[Artifact],
    repositories: Iterable[ArtifactRepository],
    resolver: ArtifactResolver,
    number_format: Callable[[int], str] = str,
) -> LocationMatrix:
    """Check every artifact against every non-blacklisted repository.

    *artifacts* are expected in report order; repositories keep their
    collection order. Every artifact gets a row, even when found nowhere.
    """
    repos = [r for r in repositories if not r.blacklisted]
    matrix = LocationMatrix(
        repositories=repos,
        rows=[],
        dependency_totals=ScopeAccumulator(number_format),
        found_by_repository={r.id: ScopeAccumulator(number_format) for r in repos},
    )
    for artifact in artifacts:
        matrix.dependency_totals.increment(artifact.scope)
        row = LocationRow(artifact=artifact)
        for repo in repos:
            presence = check_presence(resolver, repo, artifact)
            url = resolver.url_for(repo, artifact) if presence is Presence.FOUND else ""
            if presence is Presence.FOUND:
                matrix.found_by_repository[repo.id].increment(artifact.scope)
            row.cells.append(LocationCell(presence=presence, url=url))
        matrix.rows.append(row)
    return matrix
