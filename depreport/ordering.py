"""Canonical artifact ordering for report tables."""

from __future__ import annotations

import re
from collections.abc import Iterable

from depreport.models import Artifact

_VERSION_TOKEN_RE = re.compile(r"\d+|[A-Za-z]+")


def version_key(version: str) -> tuple[tuple[int, int, str], ...]:
    """Split a version into comparable tokens.

    Numeric tokens compare numerically and sort before qualifiers, so
    ``1.10`` > ``1.9`` and ``1.0`` < ``1.0-beta`` stays lexical on the tail.
    """
    key: list[tuple[int, int, str]] = []
    for token in _VERSION_TOKEN_RE.findall(version):
        if token.isdigit():
            key.append((0, int(token), ""))
        else:
            key.append((1, 0, token.lower()))
    return tuple(key)


def identity_key(artifact: Artifact) -> tuple:
    return (
        artifact.group_id,
        artifact.artifact_id,
        version_key(artifact.version),
        artifact.version,
        artifact.type,
        artifact.classifier or "",
    )


def artifact_sort_key(artifact: Artifact) -> tuple:
    """Non-optional artifacts first, then natural identity order."""
    return (artifact.optional, identity_key(artifact))


def sort_artifacts(artifacts: Iterable[Artifact]) -> list[Artifact]:
    return sorted(artifacts, key=artifact_sort_key)
