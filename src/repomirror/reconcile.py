"""Startup reconciliation of the mirror against GitHub.

Decides whether the cached repository and issue state can be trusted or
must be rebuilt from the API:

- cold start: nothing cached -> cache the repository, full issue scrape
- stale: remote ``updated_at`` strictly newer -> replace, full issue scrape
- fresh: remote equal or older -> load issues from the cache, no scrape

A full rescrape is the only recovery after drift because webhook
deliveries missed while the mirror was down cannot be replayed.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Protocol

from repomirror.cache.base import CacheStore
from repomirror.events.metrics import MirrorMetrics
from repomirror.state.models import (
    CacheKey,
    Issues,
    MirrorState,
    RepoRecord,
    issues_from_cache,
    issues_to_cache,
)


logger = logging.getLogger(__name__)


class RemoteRepository(Protocol):
    """Remote operations reconciliation depends on (see RepositoryGateway)."""

    async def get_repo(self) -> RepoRecord:
        ...

    async def scrape_issues(self) -> Issues:
        ...


class ReconciliationOutcome(str, Enum):
    COLD_START = "cold_start"
    STALE = "stale"
    FRESH = "fresh"


@dataclass(frozen=True)
class ReconciliationResult:
    """What a reconciliation did.

    Attributes:
        outcome: Which branch was taken.
        scraped: True if issues were scraped from the API.
        issue_count: Number of issues in the mirror afterwards.
    """

    outcome: ReconciliationOutcome
    scraped: bool
    issue_count: int


def parse_timestamp(value: Any) -> datetime:
    """Parse a GitHub ISO-8601 timestamp into an aware datetime.

    Naive values are taken as UTC.

    Raises:
        ValueError: If the value is missing or not ISO-8601.
    """
    if not isinstance(value, str) or not value:
        raise ValueError(f"Invalid timestamp: {value!r}")
    # fromisoformat before 3.11 rejects a trailing Z
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_stale(cached: RepoRecord, remote: RepoRecord) -> bool:
    """Return True if ``remote`` was updated strictly after ``cached``.

    Equal timestamps are not stale.
    """
    return parse_timestamp(remote.get("updated_at")) > parse_timestamp(cached.get("updated_at"))


class ReconciliationEngine:
    """Establishes a valid mirror state before events are served.

    Attributes:
        remote: Normalized remote access for the mirrored repository.
        cache: The cache store.
        state: The mirror state to populate.
        metrics: Optional metrics to record the outcome in.
    """

    def __init__(
        self,
        remote: RemoteRepository,
        cache: CacheStore,
        state: MirrorState,
        metrics: Optional[MirrorMetrics] = None,
    ):
        self.remote = remote
        self.cache = cache
        self.state = state
        self.metrics = metrics

    async def reconcile(self) -> ReconciliationResult:
        """Populate the mirror state from the cache or the API.

        Returns:
            A ReconciliationResult describing the branch taken.

        Raises:
            GitHubAPIError: If fetching the repository or scraping fails.
            CacheError: If the cache cannot be read or written.
        """
        logger.info("Populating mirror")
        remote_repo = await self.remote.get_repo()

        if not await self.cache.exists(CacheKey.REPO):
            logger.info("No repository cache, performing cold start")
            await self._rebuild(remote_repo)
            return self._finish(ReconciliationOutcome.COLD_START, scraped=True)

        cached_repo = await self.cache.get(CacheKey.REPO)
        if is_stale(cached_repo, remote_repo):
            logger.info(
                "Cache is stale",
                extra={
                    "cached_updated_at": cached_repo.get("updated_at"),
                    "remote_updated_at": remote_repo.get("updated_at"),
                },
            )
            await self._rebuild(remote_repo)
            return self._finish(ReconciliationOutcome.STALE, scraped=True)

        self.state.repo = cached_repo
        if not await self.cache.exists(CacheKey.ISSUES):
            logger.warning("Repository cache is fresh but issues are missing, scraping")
            await self._scrape_and_cache_issues()
            return self._finish(ReconciliationOutcome.FRESH, scraped=True)

        self.state.issues = issues_from_cache(await self.cache.get(CacheKey.ISSUES))
        return self._finish(ReconciliationOutcome.FRESH, scraped=False)

    async def _rebuild(self, repo: RepoRecord) -> None:
        # Repo record last: after a failed scrape the old updated_at stays cached
        await self._scrape_and_cache_issues()
        await self.cache.set(CacheKey.REPO, repo)
        self.state.repo = repo

    async def _scrape_and_cache_issues(self) -> None:
        logger.info("Scraping issue data from GitHub API")
        self.state.issues = await self.remote.scrape_issues()
        await self.cache.set(CacheKey.ISSUES, issues_to_cache(self.state.issues))
        logger.info(
            "Done caching repository issues",
            extra={"issue_count": len(self.state.issues)},
        )

    def _finish(self, outcome: ReconciliationOutcome, scraped: bool) -> ReconciliationResult:
        self.state.ready = True
        result = ReconciliationResult(
            outcome=outcome,
            scraped=scraped,
            issue_count=len(self.state.issues),
        )
        logger.info(
            "Reconciliation complete",
            extra={
                "outcome": outcome.value,
                "scraped": scraped,
                "issue_count": result.issue_count,
            },
        )
        if self.metrics is not None:
            self.metrics.record_reconciliation(outcome.value)
            self.metrics.set_issue_count(result.issue_count)
        return result
