"""Repository-bound access to the GitHub API.

RepositoryGateway binds a GitHubClient to the one repository the mirror
tracks and passes every response through strip_urls, so nothing the core
receives from the remote carries hypermedia link fields.
"""

import logging
from typing import Any, Dict, List

from repomirror.github.client import GitHubClient
from repomirror.github.scraper import DEFAULT_CONCURRENCY, scrape_issues
from repomirror.normalize import strip_urls
from repomirror.state.models import Issues, RepoRecord


logger = logging.getLogger(__name__)


class RepositoryGateway:
    """Normalized remote operations for a single repository.

    Attributes:
        client: The underlying GitHub API client.
        owner: Repository owner.
        repo: Repository name.
        scrape_concurrency: Parallel comment fetches during a scrape.
    """

    def __init__(
        self,
        client: GitHubClient,
        owner: str,
        repo: str,
        scrape_concurrency: int = DEFAULT_CONCURRENCY,
    ):
        self.client = client
        self.owner = owner
        self.repo = repo
        self.scrape_concurrency = scrape_concurrency

    @property
    def full_repository(self) -> str:
        return f"{self.owner}/{self.repo}"

    async def get_repo(self) -> RepoRecord:
        """Fetch the repository record."""
        return strip_urls(await self.client.get_repo(self.owner, self.repo))

    async def scrape_issues(self) -> Issues:
        """Fetch all issues and pull requests with their comments."""
        issues = await scrape_issues(
            self.client,
            self.owner,
            self.repo,
            concurrency=self.scrape_concurrency,
        )
        return strip_urls(issues)

    async def get_hooks(self) -> List[Dict[str, Any]]:
        return strip_urls(await self.client.list_hooks(self.owner, self.repo))

    async def get_commits(self, number: int) -> List[Dict[str, Any]]:
        """Fetch the commits of pull request ``number``."""
        return strip_urls(
            await self.client.list_pull_request_commits(self.owner, self.repo, number)
        )

    async def create_comment(self, number: int, body: str) -> Dict[str, Any]:
        return strip_urls(
            await self.client.create_comment(self.owner, self.repo, number, body)
        )

    async def create_hook(
        self,
        config: Dict[str, Any],
        events: List[str],
        active: bool = True,
    ) -> Dict[str, Any]:
        return strip_urls(
            await self.client.create_hook(self.owner, self.repo, config, events, active)
        )

    async def update_hook(self, hook_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        return strip_urls(
            await self.client.update_hook(self.owner, self.repo, hook_id, changes)
        )

    async def delete_hook(self, hook_id: int) -> None:
        await self.client.delete_hook(self.owner, self.repo, hook_id)
