"""Normalization of GitHub API and webhook payloads.

GitHub decorates nearly every object with hypermedia links (``html_url``,
``comments_url``, ``events_url``, ...). The mirror never follows them, so
they are stripped from every payload before it reaches the cache.
"""

from typing import Any

URL_SUFFIX = "_url"


def is_url_field(name: Any) -> bool:
    """Return True if a mapping key names a hypermedia ``*_url`` field."""
    return isinstance(name, str) and name.endswith(URL_SUFFIX)


def strip_urls(value: Any) -> Any:
    """Recursively remove ``*_url`` fields from a JSON-like structure.

    Dicts lose every key ending in ``_url``; lists are walked element by
    element. The input is not modified.

    Args:
        value: Any JSON-like value (dict, list, scalar).

    Returns:
        A new structure of the same shape without URL fields.

    Example:
        >>> strip_urls({"id": 1, "html_url": "x", "user": {"avatar_url": "y", "login": "a"}})
        {'id': 1, 'user': {'login': 'a'}}
    """
    if isinstance(value, dict):
        return {
            key: strip_urls(item)
            for key, item in value.items()
            if not is_url_field(key)
        }
    if isinstance(value, list):
        return [strip_urls(item) for item in value]
    return value
