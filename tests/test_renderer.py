"""Tests for the dependencies report renderer."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from conftest import FakeInspector, FakeMetadata, FakeResolver, RecordingSink, make_artifact

from depreport.config import ReportConfig
from depreport.dependencies import Dependencies
from depreport.exceptions import (
    InspectionError,
    MetadataUnavailableError,
    RepositoryUnreachableError,
    SectionNestingError,
)
from depreport.models import ArtifactRepository, DependencyNode, JarData, License, ProjectMetadata
from depreport.renderer import (
    FILE_DETAILS_TITLE,
    GRAPH_TITLE,
    LICENSES_TITLE,
    LOCATIONS_TITLE,
    NO_DEPENDENCIES,
    TITLE,
    TRANSITIVE_NONE,
    TRANSITIVE_TITLE,
    TREE_TITLE,
    CachingMetadataProvider,
    DependenciesRenderer,
    SectionCursor,
    anchor_id,
    is_url_valid,
)

PROJECT = make_artifact("app", scope=None)
CENTRAL = ArtifactRepository(id="central", url="https://repo.example.org/maven2")


def write_file(path, size):
    path.write_bytes(b"\0" * size)
    return path


def make_renderer(
    direct,
    accepted=None,
    *,
    tree=None,
    metadata=None,
    inspector=None,
    resolver=None,
    repositories=(CENTRAL,),
    probe=None,
    **config,
):
    accepted = direct if accepted is None else accepted
    sink = RecordingSink()
    deps = Dependencies(PROJECT, direct, accepted, inspector=inspector or FakeInspector())
    tree = tree or DependencyNode(PROJECT, [DependencyNode(a) for a in direct])
    renderer = DependenciesRenderer(
        sink,
        deps,
        tree,
        resolver=resolver or FakeResolver(),
        metadata=metadata or FakeMetadata(),
        repositories=[ArtifactRepository(**vars(r)) for r in repositories],
        probe=probe or MagicMock(),
        config=ReportConfig(**config),
    )
    return renderer, sink


# ── helpers ────────────────────────────────────────────────────────────────


class TestHelpers:
    def test_anchor_id(self):
        assert anchor_id("Project Dependencies_compile") == "Project_Dependencies_compile"
        assert anchor_id("1st section") == "a1st_section"

    @pytest.mark.parametrize(
        "url, valid",
        [
            ("https://example.org", True),
            ("ftp://example.org/x", True),
            ("example.org", False),
            ("", False),
            (None, False),
        ],
    )
    def test_is_url_valid(self, url, valid):
        assert is_url_valid(url) is valid

    def test_section_cursor_rejects_extra_close(self):
        cursor = SectionCursor()
        assert cursor.open() == 1
        assert cursor.close() == 1
        with pytest.raises(SectionNestingError, match="Too many closing sections"):
            cursor.close()

    def test_caching_metadata_provider(self):
        a, b = make_artifact("a"), make_artifact("b")
        inner = FakeMetadata({a: ProjectMetadata(name="A")})
        cached = CachingMetadataProvider(inner)

        for _ in range(3):
            assert cached.project_for(a).name == "A"
            with pytest.raises(MetadataUnavailableError):
                cached.project_for(b)
        assert inner.calls == [a.id, b.id]


# ── structure ──────────────────────────────────────────────────────────────


class TestStructure:
    def test_no_dependencies(self):
        renderer, sink = make_renderer([], [make_artifact("only-transitive")])

        renderer.render()

        assert sink.section_titles() == [TITLE]
        assert sink.paragraphs() == [NO_DEPENDENCIES]

    def test_section_order_and_levels(self):
        renderer, sink = make_renderer([make_artifact("a")])

        renderer.render()

        top_level = [e[2] for e in sink.events if e[0] == "section" and e[1] == 1]
        assert top_level == [
            TITLE,
            TRANSITIVE_TITLE,
            GRAPH_TITLE,
            LICENSES_TITLE,
            FILE_DETAILS_TITLE,
            LOCATIONS_TITLE,
        ]
        assert ("section", 2, TREE_TITLE, "Dependency_Tree") in sink.events
        assert renderer.cursor.depth == 0

    def test_optional_sections_disabled(self):
        renderer, sink = make_renderer(
            [make_artifact("a")], details_enabled=False, locations_enabled=False
        )

        renderer.render()

        assert FILE_DETAILS_TITLE not in sink.section_titles()
        assert LOCATIONS_TITLE not in sink.section_titles()

    def test_extra_end_section_raises(self):
        renderer, _ = make_renderer([make_artifact("a")])

        renderer.start_section("x")
        renderer.end_section()
        with pytest.raises(SectionNestingError):
            renderer.end_section()


# ── dependency tables ──────────────────────────────────────────────────────


class TestScopeTables:
    def test_direct_tables_per_scope(self):
        a = make_artifact("a")
        b = make_artifact("b", scope="test", optional=True)
        metadata = FakeMetadata({a: ProjectMetadata(name="A", url="https://a.example")})
        renderer, sink = make_renderer([b, a], metadata=metadata)

        renderer.render()

        scope_sections = [e for e in sink.events if e[0] == "section" and e[1] == 2]
        assert scope_sections[:2] == [
            ("section", 2, "compile", "Project_Dependencies_compile"),
            ("section", 2, "test", "Project_Dependencies_test"),
        ]
        assert sink.table_under(TITLE, 0) == [
            ("header", ["GroupId", "ArtifactId", "Version", "Type"]),
            ("row", ["org.example", "a", "1.0", "jar"]),
        ]
        assert sink.table_under(TITLE, 1) == [
            ("header", ["GroupId", "ArtifactId", "Version", "Type", "Optional"]),
            ("row", ["org.example", "b", "1.0", "jar", "Yes"]),
        ]

    def test_artifact_id_links_to_project_url(self):
        a = make_artifact("a")
        metadata = FakeMetadata({a: ProjectMetadata(name="A", url="https://a.example")})
        renderer, sink = make_renderer([a], metadata=metadata)

        renderer.render()

        row = next(e for e in sink.events if e[0] == "row")
        assert row[1][1].href == "https://a.example"

    def test_classifier_column_only_when_present(self):
        a = make_artifact("a")
        a_src = make_artifact("a", classifier="sources")
        renderer, sink = make_renderer([a, a_src])

        renderer.render()

        table = sink.table_under(TITLE)
        assert table[0] == ("header", ["GroupId", "ArtifactId", "Version", "Classifier", "Type"])
        assert table[1] == ("row", ["org.example", "a", "1.0", "", "jar"])
        assert table[2] == ("row", ["org.example", "a", "1.0", "sources", "jar"])

    def test_transitive_section(self):
        a = make_artifact("a")
        c = make_artifact("c", scope="runtime")
        renderer, sink = make_renderer([a], [a, c])

        renderer.render()

        assert ("section", 2, "runtime", "Project_Transitive_Dependencies_runtime") in sink.events
        assert sink.table_under(TRANSITIVE_TITLE)[1] == ("row", ["org.example", "c", "1.0", "jar"])

    def test_no_transitive_dependencies(self):
        renderer, sink = make_renderer([make_artifact("a")])

        renderer.render()

        assert TRANSITIVE_NONE in sink.paragraphs()


# ── tree and licenses ──────────────────────────────────────────────────────


class TestTreeAndLicenses:
    def test_tree_items_and_details(self):
        a = make_artifact("a")
        c = make_artifact("c", scope="runtime")
        tree = DependencyNode(PROJECT, [DependencyNode(a, [DependencyNode(c)])])
        metadata = FakeMetadata(
            {
                a: ProjectMetadata(
                    name="Alpha",
                    description="The alpha lib",
                    url="https://a.example",
                    licenses=[License("MIT", "https://mit.example"), License(None)],
                )
            }
        )
        renderer, sink = make_renderer([a], [a, c], tree=tree, metadata=metadata)

        renderer.render()

        assert sink.items() == ["org.example:a:jar:1.0 (compile)", "org.example:c:jar:1.0 (runtime)"]
        assert ("details", "Alpha") in sink.events
        paragraphs = sink.paragraphs()
        assert "Description: The alpha lib" in paragraphs
        assert "License: MIT, Unnamed" in paragraphs

    def test_project_without_license(self):
        a = make_artifact("a")
        renderer, sink = make_renderer([a], metadata=FakeMetadata({a: ProjectMetadata(name="A")}))

        renderer.render()

        assert "License: No license" in sink.paragraphs()
        assert "Description: No description" in sink.paragraphs()

    def test_system_dependency_details(self, tmp_path):
        s = make_artifact("tools", scope="system", file=tmp_path / "tools.jar")
        renderer, sink = make_renderer([s], details_enabled=False, locations_enabled=False)

        renderer.render()

        assert ("details", s.id) in sink.events
        assert f"URL: {(tmp_path / 'tools.jar').resolve()}" in sink.paragraphs()

    def test_license_section(self):
        a, b = make_artifact("a"), make_artifact("b")
        metadata = FakeMetadata(
            {
                a: ProjectMetadata(name="Alpha", licenses=[License("Apache-2.0")]),
                b: ProjectMetadata(name="Beta"),
            }
        )
        renderer, sink = make_renderer([a, b], metadata=metadata)

        renderer.render()

        assert "Apache-2.0: Alpha" in sink.paragraphs()
        assert "Unknown: Beta" in sink.paragraphs()
        assert renderer.license_map.licenses() == ["Apache-2.0", "Unknown"]

    def test_metadata_looked_up_once_per_artifact(self):
        a = make_artifact("a")
        metadata = FakeMetadata({a: ProjectMetadata(name="A")})
        renderer, _ = make_renderer([a], metadata=metadata)

        renderer.render()

        assert metadata.calls == [a.id]


# ── file details ───────────────────────────────────────────────────────────


class TestFileDetails:
    def test_totals_with_sealed_and_debug(self, tmp_path):
        a = make_artifact("a", file=write_file(tmp_path / "a-1.0.jar", 2048))
        b = make_artifact(
            "b", scope="test", optional=True, file=write_file(tmp_path / "b-1.0.jar", 1024)
        )
        inspector = FakeInspector(
            {
                a: JarData(num_entries=10, num_classes=8, num_packages=2, jdk_revision="1.8"),
                b: JarData(
                    num_entries=5,
                    num_classes=4,
                    num_packages=1,
                    jdk_revision="1.7",
                    debug_present=True,
                    sealed=True,
                ),
            }
        )
        renderer, sink = make_renderer([a, b], inspector=inspector, locations_enabled=False)

        renderer.render()

        assert sink.table_under(FILE_DETAILS_TITLE) == [
            (
                "header",
                ["Filename", "Size", "Entries", "Classes", "Packages", "JDK Rev", "Debug", "Sealed"],
            ),
            ("row", ["a-1.0.jar", "2.00 KB", "10", "8", "2", "1.8", "release", ""]),
            ("row", ["b-1.0.jar", "1.00 KB", "5", "4", "1", "1.7", "debug", "sealed"]),
            (
                "header",
                ["Total", "Size", "Entries", "Classes", "Packages", "JDK Rev", "Debug", "Sealed"],
            ),
            ("row", ["2", "3.00 KB", "15", "12", "3", "1.8", "1", "1"]),
            ("row", ["compile: 1", "compile: 2.00 KB", "compile: 10", "compile: 8", "compile: 2", "", "", ""]),
            ("row", ["test: 1", "test: 1.00 KB", "test: 5", "test: 4", "test: 1", "", "test: 1", "test: 1"]),
        ]
        assert sorted(inspector.calls) == [a.id, b.id]

    def test_sealed_column_dropped_when_nothing_sealed(self, tmp_path):
        a = make_artifact("a", file=write_file(tmp_path / "a.jar", 100))
        inspector = FakeInspector({a: JarData(1, 1, 1, "11")})
        renderer, sink = make_renderer([a], inspector=inspector, locations_enabled=False)

        renderer.render()

        table = sink.table_under(FILE_DETAILS_TITLE)
        assert table[0][1][-1] == "Debug"
        assert all(len(cells) == 7 for _, cells in table)
        assert table[3][1][5] == "11.0"

    def test_non_jar_and_failed_inspection(self, tmp_path):
        pom = make_artifact("parent", type="pom", file=write_file(tmp_path / "parent.pom", 512))
        bad = make_artifact("bad", file=write_file(tmp_path / "bad.jar", 10))
        inspector = FakeInspector(errors={bad: InspectionError("zip END header not found")})
        renderer, sink = make_renderer([pom, bad], inspector=inspector, locations_enabled=False)

        renderer.render()

        rows = [cells for kind, cells in sink.table_under(FILE_DETAILS_TITLE) if kind == "row"]
        assert rows[0] == [bad.id, str((tmp_path / "bad.jar").resolve()), "zip END header not found", "", "", "", ""]
        assert rows[1] == ["parent.pom", "0.50 KB", "", "", "", "", ""]

    def test_unresolvable_artifact_is_skipped(self, tmp_path):
        a = make_artifact("a")
        b = make_artifact("b")
        resolver = FakeResolver(files={b: write_file(tmp_path / "b.jar", 10)})
        inspector = FakeInspector({b: JarData(1, 0, 0)})
        renderer, sink = make_renderer(
            [a, b], inspector=inspector, resolver=resolver, locations_enabled=False
        )

        renderer.render()

        rows = [cells for kind, cells in sink.table_under(FILE_DETAILS_TITLE) if kind == "row"]
        assert rows[0][0] == "b.jar"
        assert rows[1][0] == "1"


# ── repository locations ───────────────────────────────────────────────────


class TestRepositoryLocations:
    def test_all_absent_matrix(self):
        a = make_artifact("a")
        b = make_artifact("b", scope="test")
        renderer, sink = make_renderer([a, b], details_enabled=False)

        renderer.render()

        repos_table = sink.table_under(LOCATIONS_TITLE, 0)
        assert repos_table == [
            ("header", ["Repo ID", "URL", "Release", "Snapshot"]),
            ("row", ["central", "https://repo.example.org/maven2", "Yes", "-"]),
        ]
        matrix = sink.table_under(LOCATIONS_TITLE, 1)
        assert matrix == [
            ("header", ["Artifact", "central"]),
            ("row", [a.id, "-"]),
            ("row", [b.id, "-"]),
            ("header", ["Total", "central"]),
            ("row", ["2 (compile: 1, test: 1)", "0"]),
        ]

    def test_found_cells_link_to_artifact(self):
        a = make_artifact("a")
        resolver = FakeResolver(hosted={"central": {a}})
        renderer, sink = make_renderer([a], resolver=resolver, details_enabled=False)

        renderer.render()

        row = [e for e in sink.events if e[0] == "row"][-2]
        cell = row[1][1]
        assert cell.href == "https://repo.example.org/maven2/a-1.0.jar"
        assert cell.content.alt == "Found at https://repo.example.org/maven2"
        assert sink.table_under(LOCATIONS_TITLE, 1)[-1] == ("row", ["1 (compile: 1)", "1"])

    def test_unreachable_repository_blacklisted(self):
        down = ArtifactRepository(id="down", url="https://down.example")
        probe = MagicMock(side_effect=RepositoryUnreachableError("https://down.example", "timeout"))
        renderer, sink = make_renderer(
            [make_artifact("a")], repositories=(down,), probe=probe, details_enabled=False
        )

        renderer.render()

        assert sink.table_under(LOCATIONS_TITLE, 0) == [
            ("header", ["Repo ID", "URL", "Release", "Snapshot", "Blacklisted"]),
            ("row", ["down", "https://down.example", "Yes", "-", "Yes"]),
        ]
        assert sink.table_under(LOCATIONS_TITLE, 1)[0] == ("header", ["Artifact"])

    def test_dependency_repositories_collected(self):
        a = make_artifact("a")
        extra = ArtifactRepository(id="extra", url="https://extra.example", snapshots_enabled=True)
        metadata = FakeMetadata({a: ProjectMetadata(name="A", repositories=[extra])})
        renderer, sink = make_renderer([a], metadata=metadata, details_enabled=False)

        renderer.render()

        rows = [cells for kind, cells in sink.table_under(LOCATIONS_TITLE, 0) if kind == "row"]
        assert [r[0] for r in rows] == ["central", "extra"]
        assert rows[1][3] == "Yes"
