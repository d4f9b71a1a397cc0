"""Property-based tests for webhook event routing.

Testing Configuration:
- Library: Hypothesis (Python)
"""

import asyncio
import copy
from typing import Any, List

from hypothesis import given, settings, strategies as st

from repomirror.cache.base import InMemoryCacheStore
from repomirror.events.emitter import SubscriberEventEmitter
from repomirror.events.models import EntityKind
from repomirror.router import DISPATCH_TABLE, EventRouter, classify_entity, read_action
from repomirror.state.models import CacheKey, MirrorState


def run_async(coro):
    return asyncio.run(coro)


class CountingCache(InMemoryCacheStore):
    def __init__(self) -> None:
        super().__init__()
        self.issue_writes = 0

    async def set(self, key, value) -> None:
        if CacheKey(key) == CacheKey.ISSUES:
            self.issue_writes += 1
        await super().set(key, value)


actions = st.sampled_from(
    ["created", "edited", "deleted", "opened", "closed", "reopened", "labeled", "synchronize", ""]
)
numbers = st.integers(min_value=1, max_value=30)


@st.composite
def webhook_payloads(draw: st.DrawFn) -> dict:
    """Payloads carrying any combination of comment/issue/pull_request."""
    payload: dict = {}
    action = draw(actions)
    if action:
        payload["action"] = action
    number = draw(numbers)
    if draw(st.booleans()):
        payload["comment"] = {"id": draw(st.integers(min_value=1, max_value=100)), "body": draw(st.text(max_size=8))}
    if draw(st.booleans()):
        payload["issue"] = {"number": number, "state": draw(st.sampled_from(["open", "closed"]))}
    if draw(st.booleans()):
        payload["pull_request"] = {"number": number}
    return payload


def _make_router():
    state = MirrorState(issues={1: {"number": 1, "comments": {}}}, ready=True)
    hub = SubscriberEventEmitter()
    received: List[Any] = []
    hub.on("*", received.append)
    return EventRouter(state, CountingCache(), hub), state, received


@settings(max_examples=200, deadline=None)
@given(st.lists(webhook_payloads(), min_size=1, max_size=10))
def test_every_event_is_published_and_only_handled_ones_merge(payloads):
    router, state, received = _make_router()

    for payload in payloads:
        before = copy.deepcopy(state.issues)
        entity = classify_entity(payload)
        known = (entity, read_action(payload)) in DISPATCH_TABLE
        # a review comment without its pull request cannot be placed
        mergeable = known and not (
            entity == EntityKind.PULL_REQUEST_COMMENT and "pull_request" not in payload
        )
        writes = router.cache.issue_writes

        event = run_async(router.handle_event(payload))

        assert received[-1] is event
        assert event.merged is mergeable
        if mergeable:
            assert router.cache.issue_writes == writes + 1
        else:
            assert state.issues == before
            assert router.cache.issue_writes == writes

    assert len(received) == len(payloads)
