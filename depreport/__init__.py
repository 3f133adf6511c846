"""depreport: dependency analysis report for a resolved module graph."""

__version__ = "0.1.0"

from depreport.api import generate_report
from depreport.dependencies import Dependencies, ScopeClassification, classify
from depreport.exceptions import ReportError, SectionNestingError
from depreport.licenses import LicenseMap, aggregate_licenses
from depreport.locations import LocationMatrix, build_location_matrix
from depreport.models import (
    Artifact,
    ArtifactRepository,
    DependencyNode,
    JarData,
    License,
    Presence,
    ProjectMetadata,
)
from depreport.ordering import sort_artifacts
from depreport.renderer import DependenciesRenderer
from depreport.repositories import blacklist_repositories, collect_repositories
from depreport.totals import ScopeAccumulator
from depreport.tree import filter_tree

__all__ = [
    "Artifact",
    "ArtifactRepository",
    "Dependencies",
    "DependenciesRenderer",
    "DependencyNode",
    "JarData",
    "License",
    "LicenseMap",
    "LocationMatrix",
    "Presence",
    "ProjectMetadata",
    "ReportError",
    "ScopeAccumulator",
    "ScopeClassification",
    "SectionNestingError",
    "aggregate_licenses",
    "blacklist_repositories",
    "build_location_matrix",
    "classify",
    "collect_repositories",
    "filter_tree",
    "generate_report",
    "sort_artifacts",
]
