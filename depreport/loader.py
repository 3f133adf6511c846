"""Load a resolved dependency graph from a JSON document.

Document shape::

    {
      "project": {"groupId": "...", "artifactId": "...", "version": "..."},
      "repositories": [{"id": "central", "url": "https://...", "releases": true,
                        "snapshots": false}],
      "dependencies": [{"groupId": "...", "artifactId": "...", "version": "...",
                        "scope": "compile", "direct": true, ...}],
      "tree": {"groupId": "...", ..., "children": [...]}
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from depreport.exceptions import InputError
from depreport.models import Artifact, ArtifactRepository, DependencyNode


class ArtifactSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    group_id: str = Field(alias="groupId")
    artifact_id: str = Field(alias="artifactId")
    version: str
    type: str = "jar"
    classifier: str | None = None
    scope: str | None = None
    optional: bool = False
    file: Path | None = None

    @field_validator("group_id", "artifact_id", "version", mode="before")
    @classmethod
    def _strip_whitespace(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v

    @field_validator("classifier", "scope", mode="before")
    @classmethod
    def _empty_to_none(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def to_artifact(self) -> Artifact:
        return Artifact(
            group_id=self.group_id,
            artifact_id=self.artifact_id,
            version=self.version,
            type=self.type,
            classifier=self.classifier,
            scope=self.scope,
            optional=self.optional,
            file=self.file,
        )


class DependencySchema(ArtifactSchema):
    direct: bool = False


class NodeSchema(ArtifactSchema):
    children: list[NodeSchema] = Field(default_factory=list)

    def to_node(self) -> DependencyNode:
        return DependencyNode(
            artifact=self.to_artifact(),
            children=[child.to_node() for child in self.children],
        )


class RepositorySchema(BaseModel):
    id: str
    url: str
    releases: bool = True
    snapshots: bool = False
    blacklisted: bool = False

    def to_repository(self) -> ArtifactRepository:
        return ArtifactRepository(
            id=self.id,
            url=self.url,
            releases_enabled=self.releases,
            snapshots_enabled=self.snapshots,
            blacklisted=self.blacklisted,
        )


class ReportInputSchema(BaseModel):
    project: ArtifactSchema
    dependencies: list[DependencySchema] = Field(default_factory=list)
    repositories: list[RepositorySchema] = Field(default_factory=list)
    tree: NodeSchema | None = None


@dataclass
class ReportInput:
    project: Artifact
    direct: list[Artifact]
    accepted: list[Artifact]
    tree: DependencyNode
    repositories: list[ArtifactRepository]


def parse_report_input(data: dict) -> ReportInput:
    """Validate *data* and convert it to domain objects.

    Without a ``tree`` the module's direct dependencies become the root's
    children.
    """
    try:
        doc = ReportInputSchema.model_validate(data)
    except ValidationError as e:
        raise InputError(f"invalid report input: {e}") from e

    project = doc.project.to_artifact()
    accepted = [d.to_artifact() for d in doc.dependencies]
    direct = [d.to_artifact() for d in doc.dependencies if d.direct]
    if doc.tree is not None:
        tree = doc.tree.to_node()
    else:
        tree = DependencyNode(project, [DependencyNode(a) for a in direct])

    return ReportInput(
        project=project,
        direct=direct,
        accepted=accepted,
        tree=tree,
        repositories=[r.to_repository() for r in doc.repositories],
    )


def load_report_input(path: Path) -> ReportInput:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InputError(f"invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise InputError(f"{path}: top-level JSON value must be an object")
    return parse_report_input(data)
