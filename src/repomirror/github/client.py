"""GitHub API client for repository mirroring.

This module provides an async wrapper around the GitHub REST API for:
- Reading repository metadata
- Listing issues, pull requests and their comments (paginated)
- Listing pull request commits
- Creating issue comments
- Managing repository webhooks (list/create/update/delete)

Includes rate limiting and retry logic for API resilience. Responses are
returned exactly as GitHub sends them; normalization happens in
RepositoryGateway.
"""

import asyncio
import logging
import random
import time
from typing import Any, Dict, List, Optional

import httpx


logger = logging.getLogger(__name__)


class GitHubAPIError(Exception):
    """Raised when a GitHub API request fails.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code from the response.
        response_body: Response body from GitHub API.
        request_url: The URL that was requested.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url
        super().__init__(message)


class RateLimitError(GitHubAPIError):
    """Raised when GitHub API rate limit is exceeded.

    Attributes:
        reset_at: Unix timestamp when the rate limit resets.
        retry_after: Seconds to wait before retrying.
    """

    def __init__(
        self,
        message: str,
        reset_at: Optional[int] = None,
        retry_after: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.reset_at = reset_at
        self.retry_after = retry_after


class GitHubClient:
    """Async GitHub API client with rate limiting and retry logic.

    - Automatic retry with exponential backoff for transient failures
    - Rate limit handling by respecting X-RateLimit-* headers
    - Link-header pagination for list endpoints
    - Support for both github.com and GitHub Enterprise Server

    Attributes:
        token: GitHub API token (PAT or GitHub App token).
        base_url: Base URL for GitHub API (default: https://api.github.com).
        max_retries: Maximum number of retry attempts for transient failures.
        base_delay: Base delay in seconds for exponential backoff.
        max_delay: Maximum delay in seconds between retries.
        timeout: Request timeout in seconds.
        per_page: Page size requested from list endpoints.

    Example:
        >>> async with GitHubClient(token="ghp_xxx") as client:
        ...     repo = await client.get_repo("octocat", "Hello-World")
    """

    # HTTP status codes that should trigger a retry
    RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        timeout: float = 30.0,
        per_page: int = 100,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the GitHub client.

        Args:
            token: GitHub API token for authentication.
            base_url: Base URL for GitHub API. Use this to support
                      GitHub Enterprise Server endpoints.
            max_retries: Maximum number of retry attempts.
            base_delay: Base delay in seconds for exponential backoff.
            max_delay: Maximum delay in seconds between retries.
            timeout: Request timeout in seconds.
            per_page: Items per page for paginated list endpoints (max 100).
            transport: Optional httpx transport (used by tests).
        """
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.timeout = timeout
        self.per_page = per_page
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it if necessary."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._default_headers(),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "repomirror/1.0",
        }

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _calculate_backoff(self, attempt: int) -> float:
        """Calculate backoff delay with full jitter.

        Args:
            attempt: The current retry attempt (0-indexed).

        Returns:
            Delay in seconds before the next retry.
        """
        exponential_delay = self.base_delay * (2 ** attempt)
        capped_delay = min(exponential_delay, self.max_delay)
        return random.uniform(0, capped_delay)

    def _parse_int_header(
        self,
        headers: httpx.Headers,
        name: str,
    ) -> Optional[int]:
        value = headers.get(name)
        if value is not None:
            try:
                return int(value)
            except ValueError:
                pass
        return None

    def _rate_limit_error(self, response: httpx.Response) -> RateLimitError:
        """Build a RateLimitError carrying when GitHub accepts requests again.

        ``Retry-After`` wins over the reset timestamp when both are sent.
        """
        reset_at = self._parse_int_header(response.headers, "x-ratelimit-reset")

        retry_after = None
        if reset_at is not None:
            retry_after = max(0, reset_at - int(time.time()))

        retry_after_header = self._parse_int_header(response.headers, "retry-after")
        if retry_after_header is not None:
            retry_after = retry_after_header

        logger.warning(
            "GitHub API rate limit exceeded",
            extra={
                "reset_at": reset_at,
                "retry_after": retry_after,
                "limit": self._parse_int_header(response.headers, "x-ratelimit-limit"),
                "used": self._parse_int_header(response.headers, "x-ratelimit-used"),
            },
        )

        return RateLimitError(
            message="GitHub API rate limit exceeded",
            status_code=response.status_code,
            reset_at=reset_at,
            retry_after=retry_after,
        )

    def _is_rate_limited(self, response: httpx.Response) -> bool:
        if response.status_code == 429:
            return True
        if response.status_code != 403:
            return False
        return self._parse_int_header(response.headers, "x-ratelimit-remaining") == 0

    async def _wait_before_retry(self, attempt: int, path: str, **context: Any) -> None:
        delay = self._calculate_backoff(attempt)
        logger.warning(
            "Retrying GitHub request",
            extra={
                "path": path,
                "attempt": attempt + 1,
                "max_retries": self.max_retries,
                "delay": delay,
                **context,
            },
        )
        await asyncio.sleep(delay)

    def _raise_for_status(self, method: str, path: str, response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        body = response.text
        logger.error(
            "GitHub request rejected",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "response_body": body[:500],
            },
        )
        raise GitHubAPIError(
            message=f"GitHub API error: {response.status_code}",
            status_code=response.status_code,
            response_body=body,
            request_url=str(response.url),
        )

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send one API request, retrying transient failures.

        Server errors in RETRYABLE_STATUS_CODES and transport errors are
        retried up to ``max_retries`` times with backoff. Rate limiting is
        never retried here: the caller decides whether to wait.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE).
            path: API path (e.g., /repos/owner/repo/issues) or an absolute
                  URL taken from a pagination Link header.
            json_data: Optional JSON body for the request.
            params: Optional query parameters.

        Raises:
            RateLimitError: If the rate limit is exhausted.
            GitHubAPIError: On any other error response, or once retries
                            are used up.
        """
        transport_error: Optional[httpx.RequestError] = None

        for attempt in range(self.max_retries + 1):
            can_retry = attempt < self.max_retries
            try:
                response = await self.client.request(
                    method=method,
                    url=path,
                    json=json_data,
                    params=params,
                )
            except httpx.RequestError as e:
                transport_error = e
                if can_retry:
                    await self._wait_before_retry(attempt, path, error=str(e))
                continue

            if self._is_rate_limited(response):
                raise self._rate_limit_error(response)

            if response.status_code in self.RETRYABLE_STATUS_CODES and can_retry:
                await self._wait_before_retry(attempt, path, status_code=response.status_code)
                continue

            self._raise_for_status(method, path, response)
            return response

        logger.error(
            "GitHub request failed, retries exhausted",
            extra={
                "method": method,
                "path": path,
                "max_retries": self.max_retries,
                "error": str(transport_error),
            },
        )
        raise GitHubAPIError(
            message=f"Request failed after {self.max_retries} retries: {transport_error}",
            request_url=path if path.startswith("http") else f"{self.base_url}{path}",
        )

    async def _get_paginated(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch every page of a list endpoint.

        Follows the ``next`` relation of the Link header until GitHub stops
        sending one.

        Args:
            path: API path of the list endpoint.
            params: Query parameters for the first page.

        Returns:
            All items across all pages, in the order GitHub returned them.
        """
        query = {"per_page": self.per_page}
        query.update(params or {})

        items: List[Dict[str, Any]] = []
        url: Optional[str] = path
        page_params: Optional[Dict[str, Any]] = query
        pages = 0

        while url is not None:
            response = await self._request(method="GET", path=url, params=page_params)
            items.extend(response.json())
            pages += 1

            next_link = response.links.get("next")
            url = next_link.get("url") if next_link else None
            # The next link already carries the query string
            page_params = None

        logger.debug(
            "Fetched paginated collection",
            extra={"path": path, "pages": pages, "items": len(items)},
        )
        return items

    async def get_repo(self, owner: str, repo: str) -> Dict[str, Any]:
        """Get repository metadata.

        Raises:
            GitHubAPIError: If the request fails.
        """
        response = await self._request(method="GET", path=f"/repos/{owner}/{repo}")
        return response.json()

    async def list_issues(
        self,
        owner: str,
        repo: str,
        state: str = "all",
    ) -> List[Dict[str, Any]]:
        """List issues and pull requests of a repository.

        GitHub's issues endpoint includes pull requests; those carry a
        ``pull_request`` field.

        Args:
            owner: Repository owner (user or organization).
            repo: Repository name.
            state: ``open``, ``closed`` or ``all``.

        Returns:
            Issue data from GitHub API.
        """
        return await self._get_paginated(
            f"/repos/{owner}/{repo}/issues",
            params={"state": state},
        )

    async def list_issue_comments(
        self,
        owner: str,
        repo: str,
        issue_number: int,
    ) -> List[Dict[str, Any]]:
        """List conversation comments on an issue or pull request."""
        return await self._get_paginated(
            f"/repos/{owner}/{repo}/issues/{issue_number}/comments",
        )

    async def list_review_comments(
        self,
        owner: str,
        repo: str,
        pr_number: int,
    ) -> List[Dict[str, Any]]:
        """List review (diff) comments on a pull request."""
        return await self._get_paginated(
            f"/repos/{owner}/{repo}/pulls/{pr_number}/comments",
        )

    async def list_pull_request_commits(
        self,
        owner: str,
        repo: str,
        pr_number: int,
    ) -> List[Dict[str, Any]]:
        """List commits on a pull request."""
        return await self._get_paginated(
            f"/repos/{owner}/{repo}/pulls/{pr_number}/commits",
        )

    async def create_comment(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        body: str,
    ) -> Dict[str, Any]:
        """Create a comment on an issue or pull request.

        Args:
            owner: Repository owner (user or organization).
            repo: Repository name.
            issue_number: Issue number to comment on.
            body: Comment body in markdown format.

        Returns:
            The created comment data from GitHub API.

        Raises:
            GitHubAPIError: If the request fails.
        """
        logger.info(
            "Creating comment on issue",
            extra={
                "owner": owner,
                "repo": repo,
                "issue_number": issue_number,
                "body_length": len(body),
            },
        )

        response = await self._request(
            method="POST",
            path=f"/repos/{owner}/{repo}/issues/{issue_number}/comments",
            json_data={"body": body},
        )
        return response.json()

    async def list_hooks(self, owner: str, repo: str) -> List[Dict[str, Any]]:
        """List webhooks registered on a repository."""
        return await self._get_paginated(f"/repos/{owner}/{repo}/hooks")

    async def create_hook(
        self,
        owner: str,
        repo: str,
        config: Dict[str, Any],
        events: List[str],
        active: bool = True,
    ) -> Dict[str, Any]:
        """Register a ``web`` webhook on a repository.

        Args:
            owner: Repository owner.
            repo: Repository name.
            config: Hook config (``url``, ``content_type``, ``secret``).
            events: Event names GitHub should deliver.
            active: Whether the hook delivers immediately.

        Returns:
            The created hook data from GitHub API.
        """
        logger.info(
            "Creating repository webhook",
            extra={"owner": owner, "repo": repo, "events": events},
        )
        response = await self._request(
            method="POST",
            path=f"/repos/{owner}/{repo}/hooks",
            json_data={
                "name": "web",
                "active": active,
                "events": events,
                "config": config,
            },
        )
        return response.json()

    async def update_hook(
        self,
        owner: str,
        repo: str,
        hook_id: int,
        changes: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Update a repository webhook."""
        logger.info(
            "Updating repository webhook",
            extra={"owner": owner, "repo": repo, "hook_id": hook_id},
        )
        response = await self._request(
            method="PATCH",
            path=f"/repos/{owner}/{repo}/hooks/{hook_id}",
            json_data=changes,
        )
        return response.json()

    async def delete_hook(self, owner: str, repo: str, hook_id: int) -> None:
        """Delete a repository webhook."""
        logger.info(
            "Deleting repository webhook",
            extra={"owner": owner, "repo": repo, "hook_id": hook_id},
        )
        await self._request(
            method="DELETE",
            path=f"/repos/{owner}/{repo}/hooks/{hook_id}",
        )

    async def health_check(self) -> bool:
        """Check if the GitHub API is accessible.

        Returns:
            True if healthy, False otherwise.
        """
        try:
            response = await self.client.get("/rate_limit")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(
                "GitHub API health check failed",
                extra={"error": str(e)},
            )
            return False
