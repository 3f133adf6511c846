"""Custom exceptions for the dependencies report."""


class ReportError(Exception):
    """Base exception for all report errors."""


class ArtifactNotFoundError(ReportError):
    """Raised when an artifact file cannot be found in any repository."""

    def __init__(self, artifact_id: str, detail: str = ""):
        self.artifact_id = artifact_id
        message = f"Artifact '{artifact_id}' not found"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ArtifactResolutionError(ReportError):
    """Raised when resolving an artifact fails for another reason (I/O, layout)."""


class InspectionError(ReportError):
    """Raised when jar metadata cannot be read (corrupt archive, I/O error)."""


class RepositoryUnreachableError(ReportError):
    """Raised by a repository probe when the URL cannot be opened."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Repository url '{url}' is unreachable: {reason}")


class MetadataUnavailableError(ReportError):
    """Raised when the project an artifact was built from cannot be loaded."""


class SectionNestingError(ReportError):
    """Raised when the renderer closes more sections than it opened."""


class InputError(ReportError):
    """Raised when the report input document is malformed."""
