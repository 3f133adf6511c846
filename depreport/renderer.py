"""Dependencies report: drives the engine and writes to a document sink."""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from urllib.parse import urlparse

import structlog

from depreport.config import ReportConfig
from depreport.dependencies import Dependencies, classify
from depreport.exceptions import (
    ArtifactNotFoundError,
    ArtifactResolutionError,
    InspectionError,
    MetadataUnavailableError,
    SectionNestingError,
)
from depreport.formatting import NumberFormatter, SizeFormatter
from depreport.licenses import LicenseMap, ProjectMetadataProvider, aggregate_licenses
from depreport.locations import LocationMatrix, build_location_matrix
from depreport.models import (
    SCOPE_SYSTEM,
    SCOPES,
    Artifact,
    ArtifactRepository,
    DependencyNode,
    Presence,
    ProjectMetadata,
)
from depreport.ordering import sort_artifacts
from depreport.repositories import (
    Probe,
    UrlProbe,
    blacklist_repositories,
    collect_repositories,
)
from depreport.resolver import ArtifactResolver
from depreport.sink.base import Bold, Image, Inline, Justify, Link, Sink
from depreport.totals import GRAND_TOTAL, SCOPES_COUNT, ScopeAccumulator
from depreport.tree import FilteredNode, filter_tree

log = structlog.get_logger("depreport.renderer")

IMG_SUCCESS = "images/icon_success_sml.gif"

TITLE = "Project Dependencies"
NO_DEPENDENCIES = "There are no dependencies for this project."
TRANSITIVE_TITLE = "Project Transitive Dependencies"
TRANSITIVE_INTRO = (
    "The following is a list of transitive dependencies for this project. "
    "Transitive dependencies are the dependencies of the project dependencies."
)
TRANSITIVE_NONE = "No transitive dependencies are required for this project."
GRAPH_TITLE = "Project Dependency Graph"
TREE_TITLE = "Dependency Tree"
LICENSES_TITLE = "Licenses"
FILE_DETAILS_TITLE = "Dependency File Details"
LOCATIONS_TITLE = "Dependency Repository Locations"
LOCATIONS_BREAKDOWN = "Repository locations for each of the Dependencies."
TOTAL = "Total"
NO_DESCRIPTION = "No description"
NO_LICENSE = "No license"
UNNAMED_LICENSE = "Unnamed"

SCOPE_INTROS = {
    "compile": (
        "The following is a list of compile dependencies for this project. "
        "These dependencies are required to compile and run the application:"
    ),
    "runtime": (
        "The following is a list of runtime dependencies for this project. "
        "These dependencies are required to run the application:"
    ),
    "test": (
        "The following is a list of test dependencies for this project. These "
        "dependencies are only required to compile and run unit tests for the application:"
    ),
    "provided": (
        "The following is a list of provided dependencies for this project. These "
        "dependencies are required to compile the application, but should be "
        "provided by default when using the library:"
    ),
    "system": (
        "The following is a list of system dependencies for this project. "
        "These dependencies are required to compile the application:"
    ),
}

_ANCHOR_INVALID_RE = re.compile(r"[^A-Za-z0-9_\-.:]")


def anchor_id(text: str) -> str:
    """A fragment identifier safe for XHTML and Markdown renderers."""
    anchor = _ANCHOR_INVALID_RE.sub("", text.strip().replace(" ", "_"))
    if not anchor or not anchor[0].isalpha():
        anchor = "a" + anchor
    return anchor


def is_url_valid(url: str | None) -> bool:
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https", "ftp") and bool(parsed.netloc)


class SectionCursor:
    """Nesting depth of open sections."""

    def __init__(self) -> None:
        self.depth = 0

    def open(self) -> int:
        self.depth += 1
        return self.depth

    def close(self) -> int:
        if self.depth <= 0:
            raise SectionNestingError("Too many closing sections")
        level = self.depth
        self.depth -= 1
        return level


class CachingMetadataProvider:
    """Look each project up once per report; failures are remembered too."""

    def __init__(self, provider: ProjectMetadataProvider) -> None:
        self._provider = provider
        self._cache: dict[Artifact, ProjectMetadata | MetadataUnavailableError] = {}

    def project_for(self, artifact: Artifact) -> ProjectMetadata:
        cached = self._cache.get(artifact)
        if cached is None:
            try:
                cached = self._provider.project_for(artifact)
            except MetadataUnavailableError as e:
                cached = e
            self._cache[artifact] = cached
        if isinstance(cached, MetadataUnavailableError):
            raise cached
        return cached


class DependenciesRenderer:
    """Render the dependencies report of one module into *sink*.

    Sections, in order: project dependencies, transitive dependencies,
    dependency tree, licenses, file details, repository locations. The last
    two can be switched off through :class:`ReportConfig`.
    """

    def __init__(
        self,
        sink: Sink,
        dependencies: Dependencies,
        tree: DependencyNode,
        resolver: ArtifactResolver,
        metadata: ProjectMetadataProvider,
        repositories: Sequence[ArtifactRepository] = (),
        probe: Probe | None = None,
        config: ReportConfig | None = None,
    ) -> None:
        self.sink = sink
        self.dependencies = dependencies
        self.tree = tree
        self.resolver = resolver
        self.metadata = CachingMetadataProvider(metadata)
        self.repositories = list(repositories)
        self.probe = probe
        self.config = config or ReportConfig()
        self.numbers = NumberFormatter(self.config.locale)
        self.sizes = SizeFormatter(self.numbers)
        self.cursor = SectionCursor()
        self.license_map = LicenseMap()

    # ── sections ───────────────────────────────────────────────────────────

    def start_section(self, title: str, anchor: str | None = None) -> None:
        level = self.cursor.open()
        self.sink.start_section(level, title, anchor or anchor_id(title))

    def end_section(self) -> None:
        level = self.cursor.close()
        self.sink.end_section(level)

    @contextmanager
    def section(self, title: str, anchor: str | None = None) -> Iterator[None]:
        self.start_section(title, anchor)
        yield
        self.end_section()

    # ── entry point ────────────────────────────────────────────────────────

    def render(self) -> None:
        if not self.dependencies.has_dependencies():
            with self.section(TITLE):
                self.sink.paragraph(NO_DEPENDENCIES)
            return

        classification = classify(self.dependencies)
        filtered = filter_tree(self.tree, self.dependencies)

        with self.section(TITLE):
            self._render_all_scopes(classification.direct, transitive=False)

        with self.section(TRANSITIVE_TITLE):
            if not classification.transitive:
                self.sink.paragraph(TRANSITIVE_NONE)
            else:
                self.sink.paragraph(TRANSITIVE_INTRO)
                self._render_all_scopes(classification.transitive, transitive=True)

        with self.section(GRAPH_TITLE):
            with self.section(TREE_TITLE):
                self._render_tree(filtered)

        self.license_map = aggregate_licenses(filtered, self.metadata)
        with self.section(LICENSES_TITLE):
            self._render_licenses(self.license_map)

        if self.config.details_enabled:
            with self.section(FILE_DETAILS_TITLE):
                self._render_file_details()

        if self.config.locations_enabled:
            with self.section(LOCATIONS_TITLE):
                self._render_repository_locations()

        if self.cursor.depth != 0:
            raise SectionNestingError(f"{self.cursor.depth} section(s) left open")

    # ── scope tables ───────────────────────────────────────────────────────

    def _render_all_scopes(self, by_scope: dict[str, list[Artifact]], transitive: bool) -> None:
        for scope in SCOPES:
            artifacts = by_scope.get(scope)
            if artifacts:
                self._render_scope(scope, artifacts, transitive)

    def _render_scope(self, scope: str, artifacts: list[Artifact], transitive: bool) -> None:
        with_classifier = any(a.classifier for a in artifacts)
        with_optional = any(a.optional for a in artifacts)
        prefix = TRANSITIVE_TITLE if transitive else TITLE

        with self.section(scope, anchor_id(f"{prefix}_{scope}")):
            self.sink.paragraph(SCOPE_INTROS[scope])
            header = ["GroupId", "ArtifactId", "Version"]
            if with_classifier:
                header.append("Classifier")
            header += ["Type", "Optional"]
            self.sink.start_table([Justify.LEFT] * len(header))
            self._table_header(with_optional, header)
            for artifact in sort_artifacts(artifacts):
                self._table_row(with_optional, self._artifact_row(artifact, with_classifier))
            self.sink.end_table()

    def _artifact_row(self, artifact: Artifact, with_classifier: bool) -> list[Inline]:
        url = self._artifact_url(artifact)
        id_cell: Inline = Link(url, artifact.artifact_id) if url else artifact.artifact_id
        row: list[Inline] = [artifact.group_id, id_cell, artifact.version]
        if with_classifier:
            row.append(artifact.classifier or "")
        row += [artifact.type, "Yes" if artifact.optional else "No"]
        return row

    def _artifact_url(self, artifact: Artifact) -> str | None:
        if artifact.scope == SCOPE_SYSTEM:
            return None
        try:
            url = self.metadata.project_for(artifact).url
        except MetadataUnavailableError:
            return None
        return url if is_url_valid(url) else None

    # ── dependency tree ────────────────────────────────────────────────────

    def _render_tree(self, tree: FilteredNode) -> None:
        self.sink.start_list()
        for child in tree.children:
            self._render_node(child)
        self.sink.end_list()

    def _render_node(self, node: FilteredNode) -> None:
        artifact = node.artifact
        label = artifact.id + (f" ({artifact.scope})" if artifact.scope else "")
        self.sink.start_list_item(label)
        self._render_node_details(artifact)
        if node.children:
            self.sink.start_list()
            for child in node.children:
                self._render_node(child)
            self.sink.end_list()
        self.sink.end_list_item()

    def _render_node_details(self, artifact: Artifact) -> None:
        if artifact.scope == SCOPE_SYSTEM:
            self.sink.start_details(artifact.id)
            self.sink.paragraph(Bold("Description: "), NO_DESCRIPTION)
            if artifact.file is not None:
                self.sink.paragraph(Bold("URL: "), str(artifact.file.resolve()))
            self.sink.end_details()
            return

        try:
            project = self.metadata.project_for(artifact)
        except MetadataUnavailableError as e:
            log.debug("renderer.project_unavailable", artifact=artifact.id, error=str(e))
            return

        self.sink.start_details(project.name)
        self.sink.paragraph(Bold("Description: "), project.description or NO_DESCRIPTION)
        if project.url:
            url_part: Inline = (
                Link(project.url, project.url) if is_url_valid(project.url) else project.url
            )
            self.sink.paragraph(Bold("URL: "), url_part)
        parts: list[Inline] = [Bold("License: ")]
        if project.licenses:
            for i, lic in enumerate(project.licenses):
                if i:
                    parts.append(", ")
                name = lic.name or UNNAMED_LICENSE
                parts.append(Link(lic.url, name) if lic.url else name)
        else:
            parts.append(NO_LICENSE)
        self.sink.paragraph(*parts)
        self.sink.end_details()

    # ── licenses ───────────────────────────────────────────────────────────

    def _render_licenses(self, license_map: LicenseMap) -> None:
        for license_name, projects in license_map.items():
            self.sink.paragraph(
                Bold(f"{license_name or UNNAMED_LICENSE}: "), ", ".join(projects)
            )

    # ── file details ───────────────────────────────────────────────────────

    def _resolve_files(self, artifacts: list[Artifact]) -> list[Artifact]:
        """Artifacts with a local file; unresolvable ones are logged and dropped."""
        resolved: list[Artifact] = []
        project = self.dependencies.project
        for artifact in artifacts:
            if artifact.file is not None:
                resolved.append(artifact)
                continue
            if artifact.scope == SCOPE_SYSTEM:
                log.error("renderer.artifact_no_file", artifact=artifact.id)
                continue
            try:
                path = self.resolver.resolve(artifact)
            except ArtifactNotFoundError as e:
                if (artifact.group_id, artifact.artifact_id, artifact.version) == (
                    project.group_id,
                    project.artifact_id,
                    project.version,
                ):
                    log.warning("renderer.project_never_deployed", artifact=artifact.id)
                else:
                    log.error("renderer.artifact_no_file", artifact=artifact.id, error=str(e))
                continue
            except ArtifactResolutionError as e:
                log.error("renderer.artifact_no_file", artifact=artifact.id, error=str(e))
                continue
            resolved.append(dataclasses.replace(artifact, file=path))
        return resolved

    def _has_sealed(self, artifacts: list[Artifact]) -> bool:
        for artifact in artifacts:
            if not artifact.is_jar_like:
                continue
            try:
                if self.dependencies.jar_details(artifact).sealed:
                    return True
            except InspectionError as e:
                log.error("renderer.inspection_failed", artifact=artifact.id, error=str(e))
        return False

    def _render_file_details(self) -> None:
        artifacts = self._resolve_files(sort_artifacts(self.dependencies.all_dependencies()))
        has_sealed = self._has_sealed(artifacts)

        header = ["Filename", "Size", "Entries", "Classes", "Packages", "JDK Rev", "Debug", "Sealed"]
        justification = [Justify.LEFT] + [Justify.RIGHT] * 4 + [Justify.CENTER] * 3
        self.sink.start_table(justification if has_sealed else justification[:-1])
        self._table_header(has_sealed, header)

        integer = self.numbers.integer
        total_deps = ScopeAccumulator(integer)
        total_size = ScopeAccumulator(self.sizes)
        total_entries = ScopeAccumulator(integer)
        total_classes = ScopeAccumulator(integer)
        total_packages = ScopeAccumulator(integer)
        total_debug = ScopeAccumulator(integer)
        total_sealed = ScopeAccumulator(integer)
        highest_jdk = 0.0

        for artifact in artifacts:
            if artifact.file is None:
                continue
            try:
                size = artifact.file.stat().st_size
            except OSError as e:
                log.error("renderer.artifact_no_file", artifact=artifact.id, error=str(e))
                continue
            scope = artifact.scope
            total_deps.increment(scope)
            total_size.add(size, scope)

            if not artifact.is_jar_like:
                self._table_row(has_sealed, [artifact.file.name, self.sizes(size), "", "", "", "", "", ""])
                continue

            try:
                jar = self.dependencies.jar_details(artifact)
            except InspectionError as e:
                self._table_row(
                    has_sealed,
                    [artifact.id, str(artifact.file.resolve()), str(e), "", "", "", "", ""],
                )
                continue

            debug = "release"
            if jar.debug_present:
                debug = "debug"
                total_debug.increment(scope)
            sealed = ""
            if jar.sealed:
                sealed = "sealed"
                total_sealed.increment(scope)
            total_entries.add(jar.num_entries, scope)
            total_classes.add(jar.num_classes, scope)
            total_packages.add(jar.num_packages, scope)
            if jar.jdk_revision:
                try:
                    highest_jdk = max(highest_jdk, float(jar.jdk_revision))
                except ValueError:
                    log.debug("renderer.jdk_revision_unparsable", value=jar.jdk_revision)

            self._table_row(
                has_sealed,
                [
                    artifact.file.name,
                    self.sizes(size),
                    integer(jar.num_entries),
                    integer(jar.num_classes),
                    integer(jar.num_packages),
                    jar.jdk_revision or "",
                    debug,
                    sealed,
                ],
            )

        header[0] = TOTAL
        self._table_header(has_sealed, header)
        for index in range(GRAND_TOTAL, SCOPES_COUNT):
            if total_deps.total(index) <= 0:
                continue
            self._table_row(
                has_sealed,
                [
                    total_deps.format(index),
                    total_size.format(index),
                    total_entries.format(index),
                    total_classes.format(index),
                    total_packages.format(index),
                    str(highest_jdk) if index == GRAND_TOTAL else "",
                    total_debug.format(index),
                    total_sealed.format(index),
                ],
            )
        self.sink.end_table()

    # ── repository locations ───────────────────────────────────────────────

    def _render_repository_locations(self) -> None:
        artifacts = sort_artifacts(self.dependencies.all_dependencies())
        repos = collect_repositories(self.repositories, artifacts, self.metadata)
        if self.probe is not None:
            blacklisted_urls = blacklist_repositories(repos, self.probe)
        else:
            with UrlProbe(timeout=self.config.probe_timeout) as probe:
                blacklisted_urls = blacklist_repositories(repos, probe)
        self._render_repositories(list(repos.values()), bool(blacklisted_urls))

        matrix = build_location_matrix(
            artifacts, repos.values(), self.resolver, self.numbers.integer
        )
        self._render_artifact_locations(matrix)

    def _render_repositories(
        self, repos: list[ArtifactRepository], any_blacklisted: bool
    ) -> None:
        header = ["Repo ID", "URL", "Release", "Snapshot"]
        justification = [Justify.LEFT, Justify.LEFT, Justify.CENTER, Justify.CENTER]
        if any_blacklisted:
            header.append("Blacklisted")
            justification.append(Justify.CENTER)

        self.sink.start_table(justification)
        self.sink.table_header(header)
        for repo in repos:
            row: list[Inline] = [
                repo.id,
                repo.url if repo.blacklisted else Link(repo.url, repo.url),
                "Yes" if repo.releases_enabled else "-",
                "Yes" if repo.snapshots_enabled else "-",
            ]
            if any_blacklisted:
                row.append("Yes" if repo.blacklisted else "-")
            self.sink.table_row(row)
        self.sink.end_table()

    def _render_artifact_locations(self, matrix: LocationMatrix) -> None:
        self.sink.paragraph(LOCATIONS_BREAKDOWN)

        header = ["Artifact", *matrix.repository_ids]
        self.sink.start_table([Justify.LEFT] + [Justify.CENTER] * len(matrix.repositories))
        self.sink.table_header(header)
        for row in matrix.rows:
            cells: list[Inline] = [row.artifact.id]
            for repo, cell in zip(matrix.repositories, row.cells):
                if cell.presence is Presence.FOUND:
                    cells.append(Link(cell.url, Image(IMG_SUCCESS, f"Found at {repo.url}")))
                else:
                    cells.append("-")
            self.sink.table_row(cells)

        header[0] = TOTAL
        self.sink.table_header(header)
        self.sink.table_row(
            [str(matrix.dependency_totals)]
            + [self.numbers.integer(matrix.repository_total(r)) for r in matrix.repository_ids]
        )
        self.sink.end_table()

    # ── table helpers ──────────────────────────────────────────────────────

    def _table_header(self, full: bool, cells: Sequence[Inline]) -> None:
        self.sink.table_header(list(cells) if full else list(cells)[:-1])

    def _table_row(self, full: bool, cells: Sequence[Inline]) -> None:
        """Emit *cells*, dropping the last column unless *full*."""
        self.sink.table_row(list(cells) if full else list(cells)[:-1])
