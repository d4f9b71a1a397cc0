"""Outbound event models.

Every webhook payload the router processes is republished as a MirrorEvent
named by its handler key (e.g. ``issueCommentCreated``), whether or not a
merge handler exists for it.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field


class EntityKind(str, Enum):
    """What a webhook payload refers to.

    Attributes:
        ISSUE_COMMENT: A comment on an issue (payload has comment and issue).
        PULL_REQUEST_COMMENT: A review comment on a pull request (comment only).
        PULL_REQUEST: A pull request event.
        ISSUE: An issue event.
        NONE: Anything else (push, ping, release, ...).
    """

    ISSUE_COMMENT = "issueComment"
    PULL_REQUEST_COMMENT = "pullRequestComment"
    PULL_REQUEST = "pullRequest"
    ISSUE = "issue"
    NONE = ""


class MirrorEvent(BaseModel):
    """A processed webhook event as published to subscribers.

    Attributes:
        handler_key: Entity kind followed by the capitalized action.
        entity: The classified entity kind.
        action: The payload's action string ("" if absent).
        repository: Full repository path in format "{owner}/{repo}".
        merged: True if a merge handler updated the mirror for this event.
        payload: The URL-stripped webhook payload.
        timestamp: When the event was processed (UTC timezone).
    """

    handler_key: str = Field(
        ...,
        description="Entity kind + capitalized action, e.g. issueCommentCreated",
    )

    entity: EntityKind = Field(
        ...,
        description="Classified entity kind of the payload",
    )

    action: str = Field(
        default="",
        description="The payload's action string",
    )

    repository: str = Field(
        default="",
        description='Full repository path in format "{owner}/{repo}"',
    )

    merged: bool = Field(
        default=False,
        description="Whether the event was merged into the mirror state",
    )

    payload: Dict[str, Any] = Field(
        default_factory=dict,
        description="The normalized webhook payload",
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event was processed (UTC timezone)",
    )

    def to_log_dict(self) -> Dict[str, Any]:
        """Flat dictionary for structured logging (payload omitted)."""
        return {
            "handler_key": self.handler_key,
            "entity": self.entity.value,
            "action": self.action,
            "repository": self.repository,
            "merged": self.merged,
            "timestamp": self.timestamp.isoformat(),
        }
