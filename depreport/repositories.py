"""Repository collection and one-shot reachability probing."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx
import structlog

from depreport.exceptions import MetadataUnavailableError, RepositoryUnreachableError
from depreport.licenses import ProjectMetadataProvider
from depreport.models import Artifact, ArtifactRepository

log = structlog.get_logger("depreport.repositories")

# A probe returns normally when the URL can be opened, raises otherwise.
Probe = Callable[[str], None]


class UrlProbe:
    """Open a stream to a repository URL and discard it immediately."""

    def __init__(self, client: httpx.Client | None = None, timeout: float | None = None) -> None:
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)
        self._owns_client = client is None

    def __call__(self, url: str) -> None:
        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise RepositoryUnreachableError(url, "malformed url") from e
        if parsed.scheme == "file":
            self._probe_path(url, Path(unquote(parsed.path)))
            return
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise RepositoryUnreachableError(url, "malformed url")
        try:
            with self._client.stream("GET", url) as response:
                if response.is_error:
                    raise RepositoryUnreachableError(url, f"HTTP {response.status_code}")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise RepositoryUnreachableError(url, str(e) or type(e).__name__) from e
        except ValueError as e:
            raise RepositoryUnreachableError(url, "malformed url") from e

    @staticmethod
    def _probe_path(url: str, path: Path) -> None:
        if not path.exists():
            raise RepositoryUnreachableError(url, "no such directory")

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> UrlProbe:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def populate_repository_map(
    repos: dict[str, ArtifactRepository], declared: Iterable[ArtifactRepository]
) -> None:
    """Register *declared* repositories by id; a later id replaces an earlier one."""
    for repo in declared:
        repos[repo.id] = repo


def collect_repositories(
    module_repositories: Iterable[ArtifactRepository],
    artifacts: Iterable[Artifact],
    provider: ProjectMetadataProvider,
) -> dict[str, ArtifactRepository]:
    """Module repositories first, then each dependency's declared ones in order."""
    repos: dict[str, ArtifactRepository] = {}
    populate_repository_map(repos, module_repositories)
    for artifact in artifacts:
        try:
            project = provider.project_for(artifact)
        except MetadataUnavailableError as e:
            log.warning(
                "repositories.project_unavailable", artifact=artifact.id, error=str(e)
            )
            continue
        populate_repository_map(repos, project.repositories)
    return repos


def blacklist_repositories(repos: dict[str, ArtifactRepository], probe: Probe) -> set[str]:
    """Probe every repository once and return the set of blacklisted URLs.

    Repositories sharing a URL that already failed are blacklisted without
    another probe; a URL that answered once is not probed again either.
    """
    blacklisted_urls: set[str] = set()
    reachable_urls: set[str] = set()
    for repo in repos.values():
        if repo.blacklisted:
            blacklisted_urls.add(repo.url)
            continue
        if repo.url in blacklisted_urls:
            repo.blacklisted = True
            continue
        if repo.url in reachable_urls:
            continue
        try:
            probe(repo.url)
        except RepositoryUnreachableError as e:
            log.warning(
                "repositories.blacklisted", repository=repo.id, url=repo.url, reason=e.reason
            )
            repo.blacklisted = True
            blacklisted_urls.add(repo.url)
        else:
            reachable_urls.add(repo.url)
    return blacklisted_urls
