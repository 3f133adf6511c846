"""Project metadata read from Maven pom.xml files."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

import structlog

from depreport.exceptions import (
    ArtifactNotFoundError,
    ArtifactResolutionError,
    MetadataUnavailableError,
)
from depreport.models import Artifact, ArtifactRepository, License, ProjectMetadata
from depreport.resolver import ArtifactResolver

log = structlog.get_logger("depreport.pom")

_NS = "{http://maven.apache.org/POM/4.0.0}"

_PROP_RE = re.compile(r"\$\{([^}]+)\}")

# Parent chains deeper than this are treated as broken.
_MAX_PARENT_DEPTH = 16


def _resolve_props(value: str, props: dict[str, str]) -> str:
    """Replace ${property} placeholders with values from <properties>."""

    def _replace(m: re.Match) -> str:
        key = m.group(1)
        return props.get(key, m.group(0))  # keep original if not found

    return _PROP_RE.sub(_replace, value)


def _text(element: ET.Element | None) -> str | None:
    if element is None:
        return None
    return element.text.strip() if element.text else None


def _tag(element: ET.Element) -> str:
    return element.tag.split("}")[-1] if "}" in element.tag else element.tag


def _enabled(element: ET.Element | None, ns: str) -> bool:
    """Repository policy flag; Maven treats a missing <enabled> as true."""
    if element is None:
        return True
    value = _text(element.find(f"{ns}enabled"))
    return value is None or value.lower() == "true"


@dataclass
class PomModel:
    """The subset of a POM the report needs, before inheritance."""

    group_id: str | None = None
    artifact_id: str | None = None
    version: str | None = None
    name: str | None = None
    description: str | None = None
    url: str | None = None
    licenses: list[License] = field(default_factory=list)
    repositories: list[ArtifactRepository] = field(default_factory=list)
    parent: Artifact | None = None
    properties: dict[str, str] = field(default_factory=dict)


def parse_pom(content: str | bytes) -> PomModel:
    """Parse POM text. Raises ``ET.ParseError`` on malformed XML."""
    root = ET.fromstring(content)
    ns = _NS if root.tag.startswith(_NS) else ""

    model = PomModel(
        group_id=_text(root.find(f"{ns}groupId")),
        artifact_id=_text(root.find(f"{ns}artifactId")),
        version=_text(root.find(f"{ns}version")),
        name=_text(root.find(f"{ns}name")),
        description=_text(root.find(f"{ns}description")),
        url=_text(root.find(f"{ns}url")),
    )

    parent_el = root.find(f"{ns}parent")
    if parent_el is not None:
        p_group = _text(parent_el.find(f"{ns}groupId"))
        p_artifact = _text(parent_el.find(f"{ns}artifactId"))
        p_version = _text(parent_el.find(f"{ns}version"))
        if p_group and p_artifact and p_version:
            model.parent = Artifact(p_group, p_artifact, p_version, type="pom")
        model.group_id = model.group_id or p_group
        model.version = model.version or p_version

    props_el = root.find(f"{ns}properties")
    if props_el is not None:
        for child in props_el:
            if child.text:
                model.properties[_tag(child)] = child.text.strip()

    licenses_el = root.find(f"{ns}licenses")
    if licenses_el is not None:
        for lic in licenses_el.findall(f"{ns}license"):
            model.licenses.append(
                License(name=_text(lic.find(f"{ns}name")), url=_text(lic.find(f"{ns}url")))
            )

    repos_el = root.find(f"{ns}repositories")
    if repos_el is not None:
        for repo in repos_el.findall(f"{ns}repository"):
            repo_id = _text(repo.find(f"{ns}id"))
            repo_url = _text(repo.find(f"{ns}url"))
            if not repo_id or not repo_url:
                continue
            model.repositories.append(
                ArtifactRepository(
                    id=repo_id,
                    url=repo_url,
                    releases_enabled=_enabled(repo.find(f"{ns}releases"), ns),
                    snapshots_enabled=_enabled(repo.find(f"{ns}snapshots"), ns),
                )
            )

    return model


class PomMetadataProvider:
    """ProjectMetadataProvider backed by .pom files obtained through a resolver.

    Description, URL, licenses and repositories are inherited from parent
    POMs when the child does not declare them; the name never is.
    """

    def __init__(self, resolver: ArtifactResolver) -> None:
        self._resolver = resolver
        self._models: dict[tuple[str, str, str], PomModel | MetadataUnavailableError] = {}

    def project_for(self, artifact: Artifact) -> ProjectMetadata:
        model = self._load(Artifact(artifact.group_id, artifact.artifact_id, artifact.version, "pom"))
        chain = [model]
        seen = {(artifact.group_id, artifact.artifact_id, artifact.version)}
        parent = model.parent
        while parent is not None and len(chain) < _MAX_PARENT_DEPTH:
            key = (parent.group_id, parent.artifact_id, parent.version)
            if key in seen:
                break
            seen.add(key)
            try:
                parent_model = self._load(parent)
            except MetadataUnavailableError as e:
                log.debug("pom.parent_unavailable", parent=parent.id, error=str(e))
                break
            chain.append(parent_model)
            parent = parent_model.parent

        return self._merge(artifact, chain)

    def _load(self, pom: Artifact) -> PomModel:
        key = (pom.group_id, pom.artifact_id, pom.version)
        cached = self._models.get(key)
        if cached is None:
            cached = self._read(pom)
            self._models[key] = cached
        if isinstance(cached, MetadataUnavailableError):
            raise cached
        return cached

    def _read(self, pom: Artifact) -> PomModel | MetadataUnavailableError:
        try:
            path = self._resolver.resolve(pom)
            return parse_pom(path.read_bytes())
        except (ArtifactNotFoundError, ArtifactResolutionError) as e:
            return MetadataUnavailableError(f"cannot resolve {pom.id}: {e}")
        except ET.ParseError as e:
            return MetadataUnavailableError(f"malformed POM for {pom.id}: {e}")
        except OSError as e:
            return MetadataUnavailableError(f"cannot read POM for {pom.id}: {e}")

    @staticmethod
    def _merge(artifact: Artifact, chain: list[PomModel]) -> ProjectMetadata:
        props: dict[str, str] = {}
        for model in reversed(chain):
            props.update(model.properties)
        child = chain[0]
        props.update(
            {
                "project.groupId": child.group_id or artifact.group_id,
                "project.artifactId": child.artifact_id or artifact.artifact_id,
                "project.version": child.version or artifact.version,
            }
        )

        def first(attr: str) -> str | None:
            for model in chain:
                value = getattr(model, attr)
                if value:
                    return _resolve_props(value, props)
            return None

        licenses = next((m.licenses for m in chain if m.licenses), [])
        repositories: dict[str, ArtifactRepository] = {}
        for model in reversed(chain):
            for repo in model.repositories:
                repositories[repo.id] = repo

        name = child.name
        return ProjectMetadata(
            name=_resolve_props(name, props) if name else artifact.artifact_id,
            description=first("description"),
            url=first("url"),
            licenses=[
                License(
                    name=_resolve_props(lic.name, props) if lic.name else lic.name,
                    url=lic.url,
                )
                for lic in licenses
            ],
            repositories=list(repositories.values()),
        )
