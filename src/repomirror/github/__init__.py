"""GitHub API access for the mirror.

- GitHubClient: async REST client with retry, rate limiting and pagination
- scrape_issues: bulk scrape of issues/pull requests with their comments
- RepositoryGateway: repository-bound, URL-stripped view of the client
"""

from repomirror.github.client import GitHubAPIError, GitHubClient, RateLimitError
from repomirror.github.gateway import RepositoryGateway
from repomirror.github.scraper import scrape_issues

__all__ = [
    "GitHubAPIError",
    "GitHubClient",
    "RateLimitError",
    "RepositoryGateway",
    "scrape_issues",
]
