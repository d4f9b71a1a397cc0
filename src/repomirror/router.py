"""Webhook event router.

Classifies a webhook payload into an entity kind and action, applies the
matching merge handler to the live Issues mapping, persists the whole
mapping, and republishes the event.

Classification precedence (first match wins):

    comment + issue   -> issueComment
    comment           -> pullRequestComment
    pull_request      -> pullRequest
    issue             -> issue
    otherwise         -> "" (no entity)

Unknown (entity, action) pairs are not errors: they leave the mirror
untouched and are still republished, so subscribers can react to events
the mirror itself does not merge.
"""

import logging
from typing import Any, Callable, Dict, Optional, Tuple

from repomirror.cache.base import CacheStore
from repomirror.events.emitter import EventEmitter
from repomirror.events.metrics import MirrorMetrics
from repomirror.events.models import EntityKind, MirrorEvent
from repomirror.merge import merge_issue, merge_issue_comment, merge_pull_request_comment
from repomirror.normalize import strip_urls
from repomirror.state.models import CacheKey, Issues, MirrorState, issues_to_cache


logger = logging.getLogger(__name__)

MergeHandler = Callable[[Issues, Dict[str, Any]], Issues]


DISPATCH_TABLE: Dict[Tuple[EntityKind, str], MergeHandler] = {
    (EntityKind.ISSUE_COMMENT, "created"): merge_issue_comment,
    (EntityKind.PULL_REQUEST_COMMENT, "created"): merge_pull_request_comment,
    (EntityKind.ISSUE, "opened"): merge_issue,
    (EntityKind.ISSUE, "closed"): merge_issue,
    (EntityKind.ISSUE, "reopened"): merge_issue,
}


def _has(payload: Dict[str, Any], field: str) -> bool:
    return payload.get(field) is not None


def classify_entity(payload: Dict[str, Any]) -> EntityKind:
    """Classify a webhook payload by the fields it carries."""
    if _has(payload, "comment"):
        return EntityKind.ISSUE_COMMENT if _has(payload, "issue") else EntityKind.PULL_REQUEST_COMMENT
    if _has(payload, "pull_request"):
        return EntityKind.PULL_REQUEST
    if _has(payload, "issue"):
        return EntityKind.ISSUE
    return EntityKind.NONE


def read_action(payload: Dict[str, Any]) -> str:
    action = payload.get("action")
    return action if isinstance(action, str) else ""


def handler_key(entity: EntityKind, action: str) -> str:
    """Build the event name, e.g. ``issueComment`` + ``created``.

    Only the first letter of the action is upper-cased.

    Example:
        >>> handler_key(EntityKind.ISSUE_COMMENT, "created")
        'issueCommentCreated'
    """
    return entity.value + action[:1].upper() + action[1:]


def lookup_handler(entity: EntityKind, action: str) -> Optional[MergeHandler]:
    return DISPATCH_TABLE.get((entity, action))


class EventRouter:
    """Applies webhook events to the mirror state.

    Events must be handed over one at a time: each call completes its merge,
    its persist and its republish before the next one starts (see
    WebhookReceiver).

    Attributes:
        state: The live mirror state; ``state.issues`` is replaced per merge.
        cache: Store the Issues mapping is written to after every merge.
        emitter: Where every processed event is republished.
        repository: "{owner}/{repo}" stamped on published events.
    """

    def __init__(
        self,
        state: MirrorState,
        cache: CacheStore,
        emitter: EventEmitter,
        repository: str = "",
        metrics: Optional[MirrorMetrics] = None,
    ):
        self.state = state
        self.cache = cache
        self.emitter = emitter
        self.repository = repository
        self.metrics = metrics

    async def handle_event(self, raw_payload: Dict[str, Any]) -> MirrorEvent:
        """Merge one webhook payload into the mirror and republish it.

        A handler that raises (malformed payload) or a failing cache write
        is logged and counted, and the live state is left untouched. The
        event is still republished with ``merged=False`` and the caller can
        carry on with the next event.

        Args:
            raw_payload: The webhook payload as received.

        Returns:
            The MirrorEvent that was published.
        """
        payload = strip_urls(raw_payload)
        entity = classify_entity(payload)
        action = read_action(payload)
        key = handler_key(entity, action)

        merged = False
        handler = lookup_handler(entity, action)
        if handler is None:
            logger.debug("No merge handler for event", extra={"handler_key": key})
        else:
            merged = await self._apply(key, handler, payload)

        event = MirrorEvent(
            handler_key=key,
            entity=entity,
            action=action,
            repository=self.repository,
            merged=merged,
            payload=payload,
        )
        await self.emitter.emit(event)
        return event

    async def _apply(
        self,
        key: str,
        handler: MergeHandler,
        payload: Dict[str, Any],
    ) -> bool:
        try:
            updated = handler(self.state.issues, payload)
            await self.persist(updated)
            self.state.issues = updated
        except Exception as e:
            logger.exception(
                "Failed to merge webhook event",
                extra={"handler_key": key, "error": str(e)},
            )
            if self.metrics is not None:
                self.metrics.record_merge_failure(key)
            return False

        if self.metrics is not None:
            self.metrics.set_issue_count(len(self.state.issues))
        return True

    async def persist(self, issues: Optional[Issues] = None) -> None:
        """Write the full Issues mapping (default: the live one) to the cache."""
        if issues is None:
            issues = self.state.issues
        await self.cache.set(CacheKey.ISSUES, issues_to_cache(issues))
