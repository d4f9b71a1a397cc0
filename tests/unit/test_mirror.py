"""Unit tests for the RepositoryMirror facade."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

from repomirror.cache.base import InMemoryCacheStore
from repomirror.cache.postgres import PostgresCacheStore
from repomirror.config import MirrorSettings
from repomirror.events.emitter import CompositeEventEmitter, SubscriberEventEmitter
from repomirror.github.client import GitHubClient
from repomirror.mirror import RepositoryMirror
from repomirror.reconcile import ReconciliationOutcome
from repomirror.state.models import CacheKey


def run_async(coro):
    return asyncio.run(coro)


def _make_gateway() -> MagicMock:
    gateway = MagicMock()
    gateway.full_repository = "acme/widgets"
    gateway.client.close = AsyncMock()
    gateway.get_repo = AsyncMock(return_value={"updated_at": "2024-01-01T00:00:00Z"})
    gateway.scrape_issues = AsyncMock(
        return_value={
            3: {"number": 3, "state": "closed", "comments": {}},
            1: {"number": 1, "state": "open", "comments": {}},
        }
    )
    gateway.get_commits = AsyncMock(return_value=[{"sha": "abc"}])
    gateway.create_comment = AsyncMock(return_value={"id": 5, "body": "hi"})
    return gateway


def test_from_settings_builds_memory_mirror():
    settings = MirrorSettings(github_token="ghp_test", owner="acme", repo="widgets", event_sinks=["logging"])

    mirror = RepositoryMirror.from_settings(settings)

    assert isinstance(mirror.cache, InMemoryCacheStore)
    assert isinstance(mirror.gateway.client, GitHubClient)
    assert mirror.gateway.full_repository == "acme/widgets"
    assert isinstance(mirror.emitter, CompositeEventEmitter)
    assert mirror.emitter.emitters[0] is mirror.subscribers
    assert mirror.metrics is None


def test_from_settings_builds_postgres_cache():
    settings = MirrorSettings(
        github_token="ghp_test",
        owner="acme",
        repo="widgets",
        cache_backend="postgres",
        database_url="postgresql://mirror@db/mirror",
        event_sinks=[],
    )

    mirror = RepositoryMirror.from_settings(settings)

    assert isinstance(mirror.cache, PostgresCacheStore)
    assert isinstance(mirror.emitter, SubscriberEventEmitter)


def test_start_reconciles_and_lists_issues():
    mirror = RepositoryMirror(_make_gateway(), InMemoryCacheStore())

    result = run_async(mirror.start())

    assert result.outcome == ReconciliationOutcome.COLD_START
    assert mirror.ready is True
    assert [issue["number"] for issue in mirror.list_issues()] == [1, 3]
    assert [issue["number"] for issue in mirror.list_issues(state="open")] == [1]


def test_handle_event_notifies_subscribers():
    mirror = RepositoryMirror(_make_gateway(), InMemoryCacheStore())
    seen = []
    mirror.on("issueReopened", seen.append)

    async def scenario():
        await mirror.start()
        await mirror.handle_event({"action": "reopened", "issue": {"number": 3, "state": "open"}})

    run_async(scenario())

    assert len(seen) == 1
    assert mirror.get_issue(3)["state"] == "open"
    assert mirror.off("issueReopened", seen.append) is True


def test_clear_cache_forces_next_start_to_scrape():
    gateway = _make_gateway()
    cache = InMemoryCacheStore()
    mirror = RepositoryMirror(gateway, cache)

    async def scenario():
        await mirror.start()
        await mirror.clear_cache()
        assert not await cache.exists(CacheKey.REPO)
        restarted = RepositoryMirror(gateway, cache)
        return await restarted.start()

    result = run_async(scenario())

    assert result.outcome == ReconciliationOutcome.COLD_START
    assert gateway.scrape_issues.await_count == 2


def test_clear_cache_without_repo_is_noop():
    mirror = RepositoryMirror(_make_gateway(), InMemoryCacheStore())

    run_async(mirror.clear_cache())


def test_remote_passthroughs():
    gateway = _make_gateway()
    mirror = RepositoryMirror(gateway, InMemoryCacheStore())

    assert run_async(mirror.get_commits(3)) == [{"sha": "abc"}]
    assert run_async(mirror.create_comment(3, "hi")) == {"id": 5, "body": "hi"}
    gateway.create_comment.assert_awaited_once_with(3, "hi")


def test_close_releases_client():
    gateway = _make_gateway()
    mirror = RepositoryMirror(gateway, InMemoryCacheStore())

    run_async(mirror.close())

    gateway.client.close.assert_awaited_once()
