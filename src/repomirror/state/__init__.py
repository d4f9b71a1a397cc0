"""Owned in-memory mirror state and its cache serialization."""

from repomirror.state.models import (
    CacheKey,
    Comments,
    Issue,
    Issues,
    MirrorState,
    RepoRecord,
    issues_from_cache,
    issues_to_cache,
)

__all__ = [
    "CacheKey",
    "Comments",
    "Issue",
    "Issues",
    "MirrorState",
    "RepoRecord",
    "issues_from_cache",
    "issues_to_cache",
]
