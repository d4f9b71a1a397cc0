"""Bulk issue scraper.

Turns the paginated issues, issue-comment and review-comment endpoints into
a single Issues mapping: ``{number: {...issue, "comments": {id: comment}}}``.
Pull requests come back from the issues endpoint too and get their review
comments merged into the same comments mapping.
"""

import asyncio
import logging
from typing import Any, Dict, List

from repomirror.github.client import GitHubClient
from repomirror.state.models import Comments, Issue, Issues


logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 4


def is_pull_request(issue: Dict[str, Any]) -> bool:
    """Return True if an issues-endpoint item is a pull request."""
    return issue.get("pull_request") is not None


def index_comments(*comment_lists: List[Dict[str, Any]]) -> Comments:
    """Key comments by id; later lists win on duplicate ids."""
    comments: Comments = {}
    for comment_list in comment_lists:
        for comment in comment_list:
            comments[comment["id"]] = comment
    return comments


async def scrape_issue(
    client: GitHubClient,
    owner: str,
    repo: str,
    issue: Dict[str, Any],
) -> Issue:
    """Fetch the comments of one issue and attach them.

    The integer ``comments`` count GitHub puts on every issue is replaced
    by the comments mapping.
    """
    number = issue["number"]
    issue_comments = await client.list_issue_comments(owner, repo, number)
    review_comments: List[Dict[str, Any]] = []
    if is_pull_request(issue):
        review_comments = await client.list_review_comments(owner, repo, number)

    scraped = dict(issue)
    scraped["comments"] = index_comments(issue_comments, review_comments)
    return scraped


async def scrape_issues(
    client: GitHubClient,
    owner: str,
    repo: str,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> Issues:
    """Scrape every issue and pull request of a repository with comments.

    Args:
        client: Authenticated GitHub client.
        owner: Repository owner.
        repo: Repository name.
        concurrency: Maximum number of issues whose comments are fetched
                     at the same time.

    Returns:
        The Issues mapping keyed by issue number.

    Raises:
        GitHubAPIError: If any request fails. A partial scrape is never
                        returned.
    """
    issues = await client.list_issues(owner, repo, state="all")
    logger.info(
        "Scraping issue comments",
        extra={"repository": f"{owner}/{repo}", "issue_count": len(issues)},
    )

    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def bounded(issue: Dict[str, Any]) -> Issue:
        async with semaphore:
            return await scrape_issue(client, owner, repo, issue)

    scraped = await asyncio.gather(*(bounded(issue) for issue in issues))
    return {issue["number"]: issue for issue in scraped}
