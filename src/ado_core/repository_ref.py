"""Repository identifier resolution.

Callers may name a repository three ways: a bare name ("MyRepo"), a scoped
path ("Project/MyRepo") or a canonical GUID. The backend needs either a GUID
or a scoped path, so bare names are qualified with the configured project.
"""
import enum
import re
from typing import Optional

REPOSITORY_SEPARATOR = "/"

GUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


class RepositoryRefKind(str, enum.Enum):
    SCOPED = "scoped"
    GUID = "guid"
    BARE = "bare"


def classify_repository_id(repository_id: str) -> RepositoryRefKind:
    """Classify a repository reference; the checks run in this order."""
    if REPOSITORY_SEPARATOR in repository_id:
        return RepositoryRefKind.SCOPED
    if GUID_PATTERN.match(repository_id):
        return RepositoryRefKind.GUID
    return RepositoryRefKind.BARE


def resolve_repository_id(repository_id: str, current_scope: str) -> str:
    """
    Resolve a repository reference to the form the backend expects.

    No network call is made; a repository that does not exist surfaces later
    as a NotFoundError from the backend.

    Args:
        repository_id: Bare name, scoped path or GUID
        current_scope: Project used to qualify bare names

    Returns:
        The GUID or scoped path unchanged, or `current_scope/repository_id`
    """
    kind = classify_repository_id(repository_id)
    if kind is RepositoryRefKind.BARE:
        return f"{current_scope}{REPOSITORY_SEPARATOR}{repository_id}"
    return repository_id


def split_repository_ref(resolved: str) -> tuple[Optional[str], str]:
    """Split a resolved reference into (scope, name); GUIDs have no scope."""
    if REPOSITORY_SEPARATOR not in resolved:
        return None, resolved
    scope, _, name = resolved.rpartition(REPOSITORY_SEPARATOR)
    return scope or None, name
