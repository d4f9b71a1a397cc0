"""Mirror state models.

This module defines the data held by a running mirror:
- CacheKey: Enum of the keys used in the cache store
- MirrorState: The live repository record and Issues mapping
- issues_to_cache / issues_from_cache: JSON-safe (de)serialization

Issues are plain JSON-like dicts exactly as GitHub returns them (minus
``*_url`` fields). The Issues mapping is keyed by issue number; each issue
carries a ``comments`` mapping keyed by comment id.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

RepoRecord = Dict[str, Any]
Issue = Dict[str, Any]
Comments = Dict[int, Dict[str, Any]]
Issues = Dict[int, Issue]


class CacheKey(str, Enum):
    """Keys under which the mirror persists its state.

    Attributes:
        REPO: The repository record (RepoRecord).
        ISSUES: The full Issues mapping, including nested comments.
        HOOK: The id of the webhook registered on the remote repository.
    """

    REPO = "repo"
    ISSUES = "issues"
    HOOK = "hook"


@dataclass
class MirrorState:
    """Live state of the mirror.

    Owned by a single RepositoryMirror and written by exactly one party at
    a time: the ReconciliationEngine during startup, then the EventRouter
    for each webhook event.

    Attributes:
        repo: The adopted repository record, or None before reconciliation.
        issues: Issues mapping keyed by issue number.
        ready: True once reconciliation has populated the state.
    """

    repo: Optional[RepoRecord] = None
    issues: Issues = field(default_factory=dict)
    ready: bool = False

    def get_issue(self, number: int) -> Optional[Issue]:
        return self.issues.get(number)


def _int_key(key: Any) -> Any:
    try:
        return int(key)
    except (TypeError, ValueError):
        return key


def issues_to_cache(issues: Issues) -> Dict[str, Any]:
    """Serialize an Issues mapping into a JSON-safe structure.

    JSON object keys are strings, so issue numbers and comment ids are
    written as strings.

    Args:
        issues: The Issues mapping to serialize.

    Returns:
        A dict suitable for json.dumps.
    """
    serialized: Dict[str, Any] = {}
    for number, issue in issues.items():
        entry = dict(issue)
        comments = entry.get("comments")
        if isinstance(comments, dict):
            entry["comments"] = {str(cid): comment for cid, comment in comments.items()}
        serialized[str(number)] = entry
    return serialized


def issues_from_cache(raw: Optional[Dict[Any, Any]]) -> Issues:
    """Rebuild an Issues mapping from its cached form.

    Restores integer issue numbers and comment ids. A missing or non-dict
    ``comments`` value becomes an empty mapping.

    Args:
        raw: The cached value, or None if nothing was cached.

    Returns:
        The Issues mapping keyed by int.
    """
    if not raw:
        return {}

    issues: Issues = {}
    for number, issue in raw.items():
        entry = dict(issue)
        comments = entry.get("comments")
        if isinstance(comments, dict):
            entry["comments"] = {_int_key(cid): comment for cid, comment in comments.items()}
        else:
            entry["comments"] = {}
        issues[_int_key(number)] = entry
    return issues
