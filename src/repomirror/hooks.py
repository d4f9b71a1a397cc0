"""Management of the webhook that feeds the mirror.

The mirror needs GitHub to deliver ``issues``, ``issue_comment``,
``pull_request`` and ``pull_request_review_comment`` events to its
receiver. HookManager registers that hook and remembers its id under
CacheKey.HOOK so later update/enable/disable/delete calls can omit it.
"""

import logging
from typing import Any, Dict, List, Optional

from repomirror.cache.base import CacheStore
from repomirror.github.gateway import RepositoryGateway
from repomirror.state.models import CacheKey


logger = logging.getLogger(__name__)

HOOK_EVENTS = [
    "pull_request",
    "issues",
    "issue_comment",
    "pull_request_review_comment",
]


class MissingHookIdError(Exception):
    """Raised when a hook operation has no id and none is cached."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"No hook id given for {operation} and none is cached")


class HookConfigError(Exception):
    """Raised when the hook cannot be created from the current settings."""


class HookManager:
    """Creates and maintains the repository webhook.

    Attributes:
        gateway: Remote access to the mirrored repository.
        cache: Store holding the registered hook id.
        hook_url: URL GitHub delivers events to.
        secret: Shared secret GitHub signs deliveries with.
    """

    def __init__(
        self,
        gateway: RepositoryGateway,
        cache: CacheStore,
        hook_url: Optional[str] = None,
        secret: Optional[str] = None,
    ):
        self.gateway = gateway
        self.cache = cache
        self.hook_url = hook_url
        self.secret = secret

    def _config(self) -> Dict[str, Any]:
        if not self.hook_url:
            raise HookConfigError("hook_url is not configured (set MIRROR_HOOK_URL)")
        config: Dict[str, Any] = {"url": self.hook_url, "content_type": "json"}
        if self.secret:
            config["secret"] = self.secret
        return config

    async def _resolve_id(self, hook_id: Optional[int], operation: str) -> int:
        if hook_id:
            return hook_id
        if not await self.cache.exists(CacheKey.HOOK):
            raise MissingHookIdError(operation)
        return await self.cache.get(CacheKey.HOOK)

    async def list_hooks(self) -> List[Dict[str, Any]]:
        return await self.gateway.get_hooks()

    async def create_hook(self) -> Dict[str, Any]:
        """Register the mirror's webhook and cache its id.

        Raises:
            HookConfigError: If no hook URL is configured.
            GitHubAPIError: If GitHub rejects the hook.
        """
        hook = await self.gateway.create_hook(self._config(), HOOK_EVENTS, active=True)
        await self.cache.set(CacheKey.HOOK, hook["id"])
        logger.info(
            "Registered repository webhook",
            extra={"hook_id": hook["id"], "repository": self.gateway.full_repository},
        )
        return hook

    async def update_hook(
        self,
        hook_id: Optional[int] = None,
        changes: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Update the hook, re-asserting the mirror's events and config.

        ``changes`` override the defaults field by field.

        Args:
            hook_id: Hook to update. Defaults to the cached hook id.
            changes: Fields to send in addition to events/config.

        Raises:
            MissingHookIdError: If no id is given and none is cached.
        """
        resolved = await self._resolve_id(hook_id, "update_hook")
        body: Dict[str, Any] = {"events": HOOK_EVENTS}
        if self.hook_url:
            body["config"] = self._config()
        body.update(changes or {})
        return await self.gateway.update_hook(resolved, body)

    async def enable_hook(self, hook_id: Optional[int] = None) -> Dict[str, Any]:
        return await self.update_hook(hook_id, {"active": True})

    async def disable_hook(self, hook_id: Optional[int] = None) -> Dict[str, Any]:
        return await self.update_hook(hook_id, {"active": False})

    async def delete_hook(self, hook_id: Optional[int] = None) -> None:
        """Delete the hook; forget the cached id if it was the one deleted.

        Raises:
            MissingHookIdError: If no id is given and none is cached.
        """
        resolved = await self._resolve_id(hook_id, "delete_hook")
        await self.gateway.delete_hook(resolved)

        if await self.cache.exists(CacheKey.HOOK) and await self.cache.get(CacheKey.HOOK) == resolved:
            await self.cache.clear(CacheKey.HOOK)
        logger.info("Deleted repository webhook", extra={"hook_id": resolved})
