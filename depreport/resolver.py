"""Artifact resolution against a local repository and Maven-layout remotes."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Protocol
from urllib.parse import unquote, urlparse

import httpx
import structlog

from depreport.exceptions import ArtifactNotFoundError, ArtifactResolutionError
from depreport.models import Artifact, ArtifactRepository

log = structlog.get_logger("depreport.resolver")

# Packaging types whose file extension differs from the type name.
_TYPE_EXTENSIONS: dict[str, str] = {
    "ejb": "jar",
    "ejb-client": "jar",
    "test-jar": "jar",
    "maven-plugin": "jar",
    "bundle": "jar",
    "java-source": "jar",
    "javadoc": "jar",
}

_TYPE_CLASSIFIERS: dict[str, str] = {
    "ejb-client": "client",
    "test-jar": "tests",
    "java-source": "sources",
    "javadoc": "javadoc",
}


class ArtifactResolver(Protocol):
    """Locates artifact files and checks repository contents."""

    def resolve(self, artifact: Artifact) -> Path: ...

    def exists_in(self, repository: ArtifactRepository, artifact: Artifact) -> bool: ...

    def url_for(self, repository: ArtifactRepository, artifact: Artifact) -> str: ...


def artifact_path(artifact: Artifact) -> str:
    """Relative path of *artifact* in the default repository layout."""
    extension = _TYPE_EXTENSIONS.get(artifact.type, artifact.type)
    classifier = artifact.classifier or _TYPE_CLASSIFIERS.get(artifact.type)
    filename = f"{artifact.artifact_id}-{artifact.version}"
    if classifier:
        filename += f"-{classifier}"
    filename += f".{extension}"
    return "/".join(
        [*artifact.group_id.split("."), artifact.artifact_id, artifact.base_version, filename]
    )


def _local_path(url: str) -> Path | None:
    parsed = urlparse(url)
    if parsed.scheme != "file":
        return None
    return Path(unquote(parsed.path))


class MavenLayoutResolver:
    """Resolve artifacts from a local repository, downloading from remotes on a miss."""

    def __init__(
        self,
        local_repository: Path,
        remote_repositories: Iterable[ArtifactRepository] = (),
        client: httpx.Client | None = None,
        timeout: float | None = None,
    ) -> None:
        self.local_repository = Path(local_repository).expanduser()
        self.remote_repositories = list(remote_repositories)
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)
        self._owns_client = client is None

    # ── lifecycle ──────────────────────────────────────────────────────────

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> MavenLayoutResolver:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ── ArtifactResolver ───────────────────────────────────────────────────

    def url_for(self, repository: ArtifactRepository, artifact: Artifact) -> str:
        return f"{repository.url.rstrip('/')}/{artifact_path(artifact)}"

    def exists_in(self, repository: ArtifactRepository, artifact: Artifact) -> bool:
        url = self.url_for(repository, artifact)
        local = _local_path(url)
        if local is not None:
            return local.is_file()
        try:
            response = self._client.head(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            log.debug("resolver.head_failed", url=url, error=str(e))
            return False
        return response.status_code == 200

    def resolve(self, artifact: Artifact) -> Path:
        """Return the local file of *artifact*, downloading it when missing.

        Remotes are tried in order; a failing one is logged and skipped. Raises
        ArtifactNotFoundError when no repository has it, and the last
        ArtifactResolutionError when every attempt that found it failed.
        """
        if artifact.file is not None and artifact.file.is_file():
            return artifact.file

        target = self.local_repository / artifact_path(artifact)
        if target.is_file():
            return target

        failure: ArtifactResolutionError | None = None
        for repo in self.remote_repositories:
            if repo.blacklisted or not policy_allows(repo, artifact):
                continue
            try:
                downloaded = self._download(self.url_for(repo, artifact), target)
            except ArtifactResolutionError as e:
                log.warning(
                    "resolver.download_failed",
                    artifact=artifact.id,
                    repository=repo.id,
                    error=str(e),
                )
                failure = e
                continue
            if downloaded:
                log.info("resolver.downloaded", artifact=artifact.id, repository=repo.id)
                return target

        if failure is not None:
            raise failure
        raise ArtifactNotFoundError(
            artifact.id, f"not in {self.local_repository} or any remote repository"
        )

    def _download(self, url: str, target: Path) -> bool:
        local = _local_path(url)
        try:
            if local is not None:
                if not local.is_file():
                    return False
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(local.read_bytes())
                return True
            with self._client.stream("GET", url) as response:
                if response.status_code == 404:
                    return False
                response.raise_for_status()
                target.parent.mkdir(parents=True, exist_ok=True)
                partial = target.with_name(target.name + ".part")
                try:
                    with open(partial, "wb") as fh:
                        for chunk in response.iter_bytes():
                            fh.write(chunk)
                    partial.replace(target)
                finally:
                    partial.unlink(missing_ok=True)
                return True
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
            raise ArtifactResolutionError(f"failed to download {url}: {e}") from e


def policy_allows(repository: ArtifactRepository, artifact: Artifact) -> bool:
    """Snapshots only from snapshot-enabled repositories, releases from release-enabled."""
    if artifact.is_snapshot:
        return repository.snapshots_enabled
    return repository.releases_enabled
