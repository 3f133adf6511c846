"""High-level entry point: input document in, Markdown report out."""

from __future__ import annotations

from depreport.config import ReportConfig
from depreport.dependencies import Dependencies, JarInspector
from depreport.jar import ZipJarInspector
from depreport.licenses import ProjectMetadataProvider
from depreport.loader import ReportInput
from depreport.pom import PomMetadataProvider
from depreport.renderer import DependenciesRenderer
from depreport.repositories import Probe
from depreport.resolver import ArtifactResolver, MavenLayoutResolver
from depreport.sink.markdown import MarkdownSink


def generate_report(
    report_input: ReportInput,
    config: ReportConfig | None = None,
    *,
    resolver: ArtifactResolver | None = None,
    metadata: ProjectMetadataProvider | None = None,
    inspector: JarInspector | None = None,
    probe: Probe | None = None,
) -> str:
    """Render the dependencies report of *report_input* as Markdown.

    Collaborators default to the local-repository resolver, POM metadata,
    zip inspection and HTTP probing; pass fakes to run offline.
    """
    config = config or ReportConfig()
    owned: MavenLayoutResolver | None = None
    if resolver is None:
        owned = MavenLayoutResolver(
            config.local_repository,
            report_input.repositories,
            timeout=config.probe_timeout,
        )
        resolver = owned

    try:
        dependencies = Dependencies(
            project=report_input.project,
            direct=report_input.direct,
            accepted=report_input.accepted,
            inspector=inspector or ZipJarInspector(),
        )
        sink = MarkdownSink()
        DependenciesRenderer(
            sink,
            dependencies,
            report_input.tree,
            resolver=resolver,
            metadata=metadata or PomMetadataProvider(resolver),
            repositories=report_input.repositories,
            probe=probe,
            config=config,
        ).render()
        return sink.getvalue()
    finally:
        if owned is not None:
            owned.close()
