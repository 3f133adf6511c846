"""Shared pytest fixtures for depreport tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from depreport.exceptions import ArtifactNotFoundError, MetadataUnavailableError
from depreport.models import Artifact, ArtifactRepository, JarData, ProjectMetadata
from depreport.sink.base import Bold, Image, Link


def plain(cell) -> str:
    """Text content of an inline sink value."""
    if isinstance(cell, Link):
        return plain(cell.content)
    if isinstance(cell, Bold):
        return cell.text
    if isinstance(cell, Image):
        return cell.alt
    return cell


class RecordingSink:
    """Sink that records every structural call for assertions."""

    def __init__(self) -> None:
        self.events: list[tuple] = []

    def start_section(self, level, title, anchor):
        self.events.append(("section", level, title, anchor))

    def end_section(self, level):
        self.events.append(("section_end", level))

    def paragraph(self, *parts):
        self.events.append(("paragraph", "".join(plain(p) for p in parts)))

    def start_table(self, justification):
        self.events.append(("table", list(justification)))

    def table_header(self, cells):
        self.events.append(("header", list(cells)))

    def table_row(self, cells):
        self.events.append(("row", list(cells)))

    def end_table(self):
        self.events.append(("table_end",))

    def start_list(self):
        self.events.append(("list",))

    def start_list_item(self, *parts):
        self.events.append(("item", "".join(plain(p) for p in parts)))

    def end_list_item(self):
        self.events.append(("item_end",))

    def end_list(self):
        self.events.append(("list_end",))

    def start_details(self, title):
        self.events.append(("details", title))

    def end_details(self):
        self.events.append(("details_end",))

    # ── helpers ──

    def section_titles(self) -> list[str]:
        return [e[2] for e in self.events if e[0] == "section"]

    def paragraphs(self) -> list[str]:
        return [e[1] for e in self.events if e[0] == "paragraph"]

    def items(self) -> list[str]:
        return [e[1] for e in self.events if e[0] == "item"]

    def tables(self) -> list[list[tuple[str, list[str]]]]:
        """Each table as a list of ("header" | "row", plain cells)."""
        tables: list[list[tuple[str, list[str]]]] = []
        current: list[tuple[str, list[str]]] | None = None
        for event in self.events:
            if event[0] == "table":
                current = []
            elif event[0] in ("header", "row") and current is not None:
                current.append((event[0], [plain(c) for c in event[1]]))
            elif event[0] == "table_end" and current is not None:
                tables.append(current)
                current = None
        return tables

    def table_under(self, title: str, index: int = 0) -> list[tuple[str, list[str]]]:
        """The *index*-th table emitted inside the section titled *title*."""
        depth = None
        found: list[list[tuple[str, list[str]]]] = []
        current: list[tuple[str, list[str]]] | None = None
        level = 0
        for event in self.events:
            if event[0] == "section":
                level = event[1]
                if event[2] == title and depth is None:
                    depth = level
            elif event[0] == "section_end":
                if depth is not None and event[1] == depth:
                    break
            elif depth is None:
                continue
            elif event[0] == "table":
                current = []
            elif event[0] in ("header", "row") and current is not None:
                current.append((event[0], [plain(c) for c in event[1]]))
            elif event[0] == "table_end" and current is not None:
                found.append(current)
                current = None
        return found[index]


class FakeResolver:
    """ArtifactResolver backed by dictionaries."""

    def __init__(self, files=None, hosted=None, failing=()):
        self.files: dict[Artifact, Path] = dict(files or {})
        # repository id -> set of artifacts present there
        self.hosted: dict[str, set[Artifact]] = {k: set(v) for k, v in (hosted or {}).items()}
        self.failing = set(failing)
        self.exists_calls: list[tuple[str, str]] = []

    def resolve(self, artifact):
        if artifact in self.files:
            return self.files[artifact]
        raise ArtifactNotFoundError(artifact.id)

    def exists_in(self, repository, artifact):
        self.exists_calls.append((repository.id, artifact.id))
        if repository.id in self.failing:
            return False
        return artifact in self.hosted.get(repository.id, set())

    def url_for(self, repository, artifact):
        return f"{repository.url.rstrip('/')}/{artifact.artifact_id}-{artifact.version}.jar"


class FakeMetadata:
    """ProjectMetadataProvider backed by a dictionary; missing entries fail."""

    def __init__(self, projects=None):
        self.projects: dict[Artifact, ProjectMetadata] = dict(projects or {})
        self.calls: list[str] = []

    def project_for(self, artifact):
        self.calls.append(artifact.id)
        if artifact not in self.projects:
            raise MetadataUnavailableError(f"no project for {artifact.id}")
        return self.projects[artifact]


class FakeInspector:
    def __init__(self, data=None, errors=None):
        self.data: dict[Artifact, JarData] = dict(data or {})
        self.errors: dict[Artifact, Exception] = dict(errors or {})
        self.calls: list[str] = []

    def inspect(self, artifact):
        self.calls.append(artifact.id)
        if artifact in self.errors:
            raise self.errors[artifact]
        return self.data[artifact]


def make_artifact(
    name: str,
    version: str = "1.0",
    *,
    group: str = "org.example",
    scope: str | None = "compile",
    type: str = "jar",
    classifier: str | None = None,
    optional: bool = False,
    file: Path | None = None,
) -> Artifact:
    return Artifact(
        group_id=group,
        artifact_id=name,
        version=version,
        type=type,
        classifier=classifier,
        scope=scope,
        optional=optional,
        file=file,
    )


@pytest.fixture
def artifact():
    return make_artifact


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def central():
    return ArtifactRepository(id="central", url="https://repo.example.org/maven2")
