"""Repository mirror facade.

RepositoryMirror wires the pieces of a mirror for one repository:
GitHub gateway, cache store, owned state, reconciliation engine, event
router, subscriber hub and hook manager. It is what the service entry
point builds at startup and what library users interact with.
"""

import logging
from typing import Any, Dict, List, Optional

from repomirror.cache.base import CacheStore, InMemoryCacheStore
from repomirror.cache.postgres import PostgresCacheStore
from repomirror.config import MirrorSettings
from repomirror.events.emitter import (
    EventEmitter,
    EventSinkType,
    Subscriber,
    SubscriberEventEmitter,
    create_event_emitter,
)
from repomirror.events.metrics import MirrorMetrics, get_metrics
from repomirror.events.models import MirrorEvent
from repomirror.github.client import GitHubClient
from repomirror.github.gateway import RepositoryGateway
from repomirror.hooks import HookManager
from repomirror.reconcile import ReconciliationEngine, ReconciliationResult
from repomirror.router import EventRouter
from repomirror.state.models import CacheKey, Issue, MirrorState, RepoRecord


logger = logging.getLogger(__name__)


class RepositoryMirror:
    """A live mirror of one GitHub repository.

    Call ``start()`` (reconciliation) before handing events to
    ``handle_event()``.

    Attributes:
        gateway: Normalized remote access.
        cache: The cache store.
        state: The owned mirror state.
        subscribers: Hub for ``on()``/``off()`` subscriptions.
        reconciler: The startup reconciliation engine.
        router: The webhook event router.
        hooks: Webhook registration management.
    """

    def __init__(
        self,
        gateway: RepositoryGateway,
        cache: CacheStore,
        emitter: Optional[EventEmitter] = None,
        subscribers: Optional[SubscriberEventEmitter] = None,
        metrics: Optional[MirrorMetrics] = None,
        hook_url: Optional[str] = None,
        webhook_secret: Optional[str] = None,
    ):
        """Wire a mirror from its collaborators.

        Args:
            gateway: Remote access bound to the mirrored repository.
            cache: Where repo/issues/hook entries are persisted.
            emitter: Where processed events are published. Defaults to the
                     subscriber hub alone.
            subscribers: Hub that ``on()`` registers with. Must be part of
                         ``emitter`` when both are given.
            metrics: Optional Prometheus metrics.
            hook_url: Public URL of the webhook endpoint, for create_hook.
            webhook_secret: Secret GitHub signs deliveries with.
        """
        self.gateway = gateway
        self.cache = cache
        self.state = MirrorState()
        self.subscribers = subscribers or SubscriberEventEmitter()
        self.metrics = metrics
        self.emitter = emitter or self.subscribers
        self.reconciler = ReconciliationEngine(gateway, cache, self.state, metrics=metrics)
        self.router = EventRouter(
            self.state,
            cache,
            self.emitter,
            repository=gateway.full_repository,
            metrics=metrics,
        )
        self.hooks = HookManager(gateway, cache, hook_url=hook_url, secret=webhook_secret)

    @classmethod
    def from_settings(
        cls,
        settings: MirrorSettings,
        client: Optional[GitHubClient] = None,
        cache: Optional[CacheStore] = None,
    ) -> "RepositoryMirror":
        """Build a mirror from configuration.

        Args:
            settings: Validated mirror settings.
            client: Optional pre-built GitHub client.
            cache: Optional pre-built cache store; otherwise chosen by
                   ``settings.cache_backend``.
        """
        client = client or GitHubClient(
            token=settings.github_token,
            base_url=settings.github_base_url,
            max_retries=settings.github_max_retries,
            timeout=settings.github_timeout_seconds,
        )
        gateway = RepositoryGateway(client, settings.owner, settings.repo)

        if cache is None:
            if settings.cache_backend == "postgres":
                cache = PostgresCacheStore(settings.database_url)
            else:
                cache = InMemoryCacheStore()

        sinks = [EventSinkType(sink) for sink in settings.event_sinks]
        metrics = get_metrics() if EventSinkType.METRICS in sinks else None
        subscribers = SubscriberEventEmitter()
        emitter = create_event_emitter(sinks, subscribers=subscribers)

        return cls(
            gateway,
            cache,
            emitter=emitter,
            subscribers=subscribers,
            metrics=metrics,
            hook_url=settings.hook_url,
            webhook_secret=settings.webhook_secret,
        )

    @property
    def ready(self) -> bool:
        return self.state.ready

    @property
    def repo(self) -> Optional[RepoRecord]:
        return self.state.repo

    def get_issue(self, number: int) -> Optional[Issue]:
        return self.state.get_issue(number)

    def list_issues(self, state: Optional[str] = None) -> List[Issue]:
        """Mirrored issues ordered by number, optionally filtered by state."""
        issues = [self.state.issues[number] for number in sorted(self.state.issues)]
        if state is not None:
            issues = [issue for issue in issues if issue.get("state") == state]
        return issues

    async def start(self) -> ReconciliationResult:
        """Connect the cache and reconcile with GitHub.

        Failures propagate to the caller; the mirror stays not ready.
        """
        if isinstance(self.cache, PostgresCacheStore) and not self.cache.connected:
            await self.cache.connect()
        return await self.reconciler.reconcile()

    async def handle_event(self, payload: Dict[str, Any]) -> MirrorEvent:
        """Apply one webhook payload (see EventRouter.handle_event)."""
        return await self.router.handle_event(payload)

    def on(self, handler_key: str, callback: Subscriber) -> None:
        """Subscribe to processed events, e.g. ``on("issueClosed", cb)``."""
        self.subscribers.on(handler_key, callback)

    def off(self, handler_key: str, callback: Subscriber) -> bool:
        return self.subscribers.off(handler_key, callback)

    async def clear_cache(self) -> None:
        """Forget the cached repository record so the next start rescrapes."""
        if await self.cache.exists(CacheKey.REPO):
            await self.cache.clear(CacheKey.REPO)
            logger.info("Cleared repository cache")

    async def get_hooks(self) -> List[Dict[str, Any]]:
        return await self.hooks.list_hooks()

    async def get_commits(self, number: int) -> List[Dict[str, Any]]:
        return await self.gateway.get_commits(number)

    async def create_comment(self, number: int, body: str) -> Dict[str, Any]:
        return await self.gateway.create_comment(number, body)

    async def close(self) -> None:
        """Release the HTTP client, emitter and cache connections."""
        await self.gateway.client.close()
        await self.emitter.close()
        if isinstance(self.cache, PostgresCacheStore):
            await self.cache.disconnect()
