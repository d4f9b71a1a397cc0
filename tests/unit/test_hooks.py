"""Unit tests for webhook registration management."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from repomirror.hooks import HOOK_EVENTS, HookConfigError, HookManager, MissingHookIdError
from repomirror.state.models import CacheKey


def run_async(coro):
    return asyncio.run(coro)


HOOK_URL = "https://mirror.example.com/webhooks/github"


def _make_gateway() -> MagicMock:
    gateway = MagicMock()
    gateway.full_repository = "acme/widgets"
    gateway.get_hooks = AsyncMock(return_value=[{"id": 1, "active": True}])
    gateway.create_hook = AsyncMock(return_value={"id": 77, "active": True})
    gateway.update_hook = AsyncMock(side_effect=lambda hook_id, body: {"id": hook_id, **body})
    gateway.delete_hook = AsyncMock(return_value=None)
    return gateway


def test_create_hook_registers_mirror_events_and_caches_id(cache):
    gateway = _make_gateway()
    manager = HookManager(gateway, cache, hook_url=HOOK_URL, secret="s3cret")

    hook = run_async(manager.create_hook())

    assert hook["id"] == 77
    config, events = gateway.create_hook.await_args.args
    assert config == {"url": HOOK_URL, "content_type": "json", "secret": "s3cret"}
    assert events == HOOK_EVENTS
    assert run_async(cache.get(CacheKey.HOOK)) == 77


def test_create_hook_without_url_fails(cache):
    manager = HookManager(_make_gateway(), cache)

    with pytest.raises(HookConfigError):
        run_async(manager.create_hook())


def test_update_without_id_uses_cached_hook(cache):
    gateway = _make_gateway()
    run_async(cache.set(CacheKey.HOOK, 77))
    manager = HookManager(gateway, cache, hook_url=HOOK_URL)

    hook = run_async(manager.update_hook(changes={"events": ["issues"]}))

    assert hook["id"] == 77
    assert hook["events"] == ["issues"]
    assert hook["config"]["url"] == HOOK_URL


def test_update_without_id_or_cache_raises(cache):
    manager = HookManager(_make_gateway(), cache, hook_url=HOOK_URL)

    with pytest.raises(MissingHookIdError) as exc_info:
        run_async(manager.update_hook())

    assert exc_info.value.operation == "update_hook"


def test_enable_and_disable_toggle_active(cache):
    gateway = _make_gateway()
    manager = HookManager(gateway, cache)

    assert run_async(manager.disable_hook(5))["active"] is False
    assert run_async(manager.enable_hook(5))["active"] is True
    assert "config" not in gateway.update_hook.await_args.args[1]


def test_delete_clears_cached_id(cache):
    gateway = _make_gateway()
    run_async(cache.set(CacheKey.HOOK, 77))
    manager = HookManager(gateway, cache)

    run_async(manager.delete_hook())

    gateway.delete_hook.assert_awaited_once_with(77)
    assert run_async(cache.exists(CacheKey.HOOK)) is False


def test_delete_other_hook_keeps_cached_id(cache):
    gateway = _make_gateway()
    run_async(cache.set(CacheKey.HOOK, 77))
    manager = HookManager(gateway, cache)

    run_async(manager.delete_hook(3))

    assert run_async(cache.get(CacheKey.HOOK)) == 77


def test_list_hooks_delegates(cache):
    manager = HookManager(_make_gateway(), cache)

    assert run_async(manager.list_hooks()) == [{"id": 1, "active": True}]
