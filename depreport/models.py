"""Data models shared by the report engine."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from pathlib import Path

SCOPE_COMPILE = "compile"
SCOPE_TEST = "test"
SCOPE_RUNTIME = "runtime"
SCOPE_PROVIDED = "provided"
SCOPE_SYSTEM = "system"

# Render order of the per-scope dependency tables.
SCOPES = (SCOPE_COMPILE, SCOPE_RUNTIME, SCOPE_TEST, SCOPE_PROVIDED, SCOPE_SYSTEM)

JAR_LIKE_TYPES = frozenset({"jar", "war", "ear", "sar", "rar", "par", "ejb"})

_SNAPSHOT_VERSION = "SNAPSHOT"
_TIMESTAMP_VERSION_RE = re.compile(r"^(.*)-(\d{8}\.\d{6})-(\d+)$")


@dataclass(frozen=True)
class Artifact:
    """A resolved artifact.

    Identity is ``group:artifact:version:type:classifier``; scope, optional
    flag and local file are carried along but never compared.
    """

    group_id: str
    artifact_id: str
    version: str
    type: str = "jar"
    classifier: str | None = None
    scope: str | None = field(default=None, compare=False)
    optional: bool = field(default=False, compare=False)
    file: Path | None = field(default=None, compare=False)

    @property
    def id(self) -> str:
        parts = [self.group_id, self.artifact_id, self.type]
        if self.classifier:
            parts.append(self.classifier)
        parts.append(self.version)
        return ":".join(parts)

    @property
    def base_version(self) -> str:
        m = _TIMESTAMP_VERSION_RE.match(self.version)
        if m:
            return f"{m.group(1)}-{_SNAPSHOT_VERSION}"
        return self.version

    @property
    def is_snapshot(self) -> bool:
        return self.version.endswith(_SNAPSHOT_VERSION) or bool(
            _TIMESTAMP_VERSION_RE.match(self.version)
        )

    @property
    def is_jar_like(self) -> bool:
        return self.type.lower() in JAR_LIKE_TYPES

    def __str__(self) -> str:
        return self.id


@dataclass
class DependencyNode:
    """One node of the full resolved dependency graph."""

    artifact: Artifact
    children: list[DependencyNode] = field(default_factory=list)


@dataclass(frozen=True)
class JarData:
    """Binary summary of a jar-like archive."""

    num_entries: int
    num_classes: int
    num_packages: int
    jdk_revision: str | None = None
    debug_present: bool = False
    sealed: bool = False


@dataclass
class ArtifactRepository:
    """A remote (or file-based) repository the artifacts may live in."""

    id: str
    url: str
    releases_enabled: bool = True
    snapshots_enabled: bool = False
    blacklisted: bool = False


@dataclass(frozen=True)
class License:
    name: str | None
    url: str | None = None


@dataclass
class ProjectMetadata:
    """Descriptive metadata of the project an artifact was built from."""

    name: str
    description: str | None = None
    url: str | None = None
    licenses: list[License] = field(default_factory=list)
    repositories: list[ArtifactRepository] = field(default_factory=list)


class Presence(enum.Enum):
    """Outcome of checking one artifact against one repository."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"  # not checked: system scope or policy disabled
