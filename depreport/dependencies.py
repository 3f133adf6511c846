"""The accepted dependency set of a module and its scope classification."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

import structlog

from depreport.exceptions import InspectionError
from depreport.models import Artifact, JarData

log = structlog.get_logger("depreport.dependencies")


class JarInspector(Protocol):
    """Reads binary metadata of a jar-like artifact with a local file."""

    def inspect(self, artifact: Artifact) -> JarData: ...


class Dependencies:
    """Conflict-resolved dependencies of one module.

    ``direct`` are the module's declared dependencies, ``accepted`` every
    artifact the build actually uses (direct and transitive), each once.
    """

    def __init__(
        self,
        project: Artifact,
        direct: Iterable[Artifact],
        accepted: Iterable[Artifact],
        inspector: JarInspector | None = None,
    ) -> None:
        self.project = project
        self._direct = list(dict.fromkeys(direct))
        self._accepted = list(dict.fromkeys(accepted))
        self._members = set(self._accepted)
        for artifact in self._direct:
            if artifact not in self._members:
                self._accepted.append(artifact)
                self._members.add(artifact)
        self._inspector = inspector
        self._jar_cache: dict[Artifact, JarData | InspectionError] = {}

    def has_dependencies(self) -> bool:
        return bool(self._direct)

    def all_dependencies(self) -> list[Artifact]:
        return list(self._accepted)

    def project_dependencies(self) -> list[Artifact]:
        return list(self._direct)

    def transitive_dependencies(self) -> list[Artifact]:
        direct = set(self._direct)
        return [a for a in self._accepted if a not in direct]

    def contains(self, artifact: Artifact) -> bool:
        return artifact in self._members

    def dependencies_by_scope(self, transitive: bool = False) -> dict[str, list[Artifact]]:
        artifacts = self.transitive_dependencies() if transitive else self.project_dependencies()
        return _bucket_by_scope(artifacts)

    def jar_details(self, artifact: Artifact) -> JarData:
        """Return the cached JarData of *artifact*, inspecting it on first use.

        A failed inspection is remembered and raised again on later calls.
        """
        cached = self._jar_cache.get(artifact)
        if cached is None:
            cached = self._inspect(artifact)
            self._jar_cache[artifact] = cached
        if isinstance(cached, InspectionError):
            raise cached
        return cached

    def _inspect(self, artifact: Artifact) -> JarData | InspectionError:
        if self._inspector is None:
            return InspectionError(f"no jar inspector configured for {artifact.id}")
        try:
            return self._inspector.inspect(artifact)
        except InspectionError as e:
            return e
        except OSError as e:
            return InspectionError(str(e))


def _bucket_by_scope(artifacts: Iterable[Artifact]) -> dict[str, list[Artifact]]:
    """Group artifacts by scope; scopes without artifacts are absent."""
    by_scope: dict[str, list[Artifact]] = {}
    for artifact in artifacts:
        by_scope.setdefault(artifact.scope or "", []).append(artifact)
    return by_scope


@dataclass(frozen=True)
class ScopeClassification:
    """Scope buckets computed once at the start of rendering."""

    direct: dict[str, list[Artifact]] = field(default_factory=dict)
    transitive: dict[str, list[Artifact]] = field(default_factory=dict)
    all: dict[str, list[Artifact]] = field(default_factory=dict)


def classify(dependencies: Dependencies) -> ScopeClassification:
    classification = ScopeClassification(
        direct=dependencies.dependencies_by_scope(transitive=False),
        transitive=dependencies.dependencies_by_scope(transitive=True),
        all=_bucket_by_scope(dependencies.all_dependencies()),
    )
    log.debug(
        "dependencies.classified",
        direct=sum(len(v) for v in classification.direct.values()),
        transitive=sum(len(v) for v in classification.transitive.values()),
    )
    return classification
