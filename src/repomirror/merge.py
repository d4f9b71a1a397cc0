"""Field-wise merge handlers for webhook events.

Each handler is a pure function ``(issues, payload) -> issues``: it returns
a new Issues mapping with the event applied and never mutates its input.
Fields present in the incoming record overwrite the cached ones, nested
objects merge recursively, and fields the event does not mention are kept.

Issues and comments that are not cached yet are created on first
reference, so events that race the startup scrape are not lost.
"""

from typing import Any, Dict

from repomirror.state.models import Issue, Issues


def merge_fields(existing: Dict[str, Any], incoming: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``incoming`` over ``existing`` and return a new dict.

    Nested dicts are merged key by key; any other value (lists, scalars,
    None) from ``incoming`` replaces the existing value.

    Example:
        >>> merge_fields({"id": 5, "body": "a", "user": {"login": "x", "id": 1}},
        ...              {"id": 5, "body": "b", "user": {"login": "y"}})
        {'id': 5, 'body': 'b', 'user': {'login': 'y', 'id': 1}}
    """
    merged = dict(existing)
    for key, value in incoming.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_fields(current, value)
        else:
            merged[key] = value
    return merged


def _new_issue(number: int) -> Issue:
    return {"number": number, "comments": {}}


def merge_comment(issues: Issues, parent: Dict[str, Any], comment: Dict[str, Any]) -> Issues:
    """Merge a comment into the comments of issue ``parent["number"]``.

    Issue and pull request comments are treated identically.

    Raises:
        KeyError: If the parent has no ``number`` or the comment no ``id``.
    """
    number = parent["number"]
    comment_id = comment["id"]

    issue = dict(issues.get(number) or _new_issue(number))
    comments = dict(issue.get("comments") or {})
    comments[comment_id] = merge_fields(comments.get(comment_id) or {}, comment)
    issue["comments"] = comments

    updated = dict(issues)
    updated[number] = issue
    return updated


def merge_issue_comment(issues: Issues, payload: Dict[str, Any]) -> Issues:
    """Apply an ``issue_comment`` event."""
    return merge_comment(issues, payload["issue"], payload["comment"])


def merge_pull_request_comment(issues: Issues, payload: Dict[str, Any]) -> Issues:
    """Apply a ``pull_request_review_comment`` event."""
    return merge_comment(issues, payload["pull_request"], payload["comment"])


def merge_issue(issues: Issues, payload: Dict[str, Any]) -> Issues:
    """Apply an ``issues`` opened/closed/reopened event.

    The issue's own fields are merged; its comments mapping is carried over
    untouched. GitHub's integer ``comments`` count in the payload is not
    applied.
    """
    incoming = {key: value for key, value in payload["issue"].items() if key != "comments"}
    number = incoming["number"]

    existing = issues.get(number) or _new_issue(number)
    issue = merge_fields({k: v for k, v in existing.items() if k != "comments"}, incoming)
    issue["comments"] = existing.get("comments") or {}

    updated = dict(issues)
    updated[number] = issue
    return updated
