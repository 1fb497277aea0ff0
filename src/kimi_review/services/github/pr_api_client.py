"""
GitHub API Client for Pull Request Operations

Fetches pull request diffs and creates issue comments on behalf of the
review bot, converting HTTP failures into typed exceptions.
"""

from typing import Any, Dict, Optional

import httpx

from kimi_review.core.review_config import GitHubAPIConfig
from kimi_review.exceptions.review_exceptions import (
    CommentPublishException,
    DiffFetchException,
    GitHubAPIException,
)
from kimi_review.utils.logging import get_logger

logger = get_logger(__name__)


class PRApiClient:
    """
    GitHub API client specialized for the review bot.

    Features:
    - Bearer token authentication (the workflow's GITHUB_TOKEN)
    - Diff download from the REST API, or from the PR's diff URL when anonymous
    - Issue comment creation for the review
    - One short-lived HTTP client per request
    """

    def __init__(
        self,
        token: str = "",
        config: Optional[GitHubAPIConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Args:
            token: GitHub token; optional for diff downloads of public repositories
            config: API endpoint configuration
            transport: Custom transport, used by tests to stub GitHub
        """
        self.token = token
        self.config = config or GitHubAPIConfig()
        self.base_url = self.config.api_base_url.rstrip("/")
        self._transport = transport

    def get_pr_diff(
        self,
        repo_name: str,
        pr_number: Optional[int],
        diff_url: Optional[str] = None,
    ) -> bytes:
        """
        Get the unified diff for an entire pull request.

        Args:
            repo_name: Repository name in format "owner/repo"
            pr_number: Pull request number
            diff_url: The event's ``pull_request.diff_url``; used only when no token is set

        Returns:
            Raw unified diff bytes

        Raises:
            DiffFetchException: On transport errors or any non-2xx response
        """
        if pr_number and (self.token or not diff_url):
            url = f"{self.base_url}/repos/{repo_name}/pulls/{pr_number}"
            headers = {"Accept": "application/vnd.github.diff"}
        elif diff_url:
            url = diff_url
            headers = {}
        else:
            raise DiffFetchException(repo_name, "no pull request number or diff URL available")

        logger.info(f"Fetching PR diff for {repo_name}#{pr_number} from {url}")

        try:
            response = self._request("GET", url, additional_headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DiffFetchException(url, f"HTTP {e.response.status_code}")
        except httpx.RequestError as e:
            raise DiffFetchException(url, str(e))

        logger.info(f"Fetched PR diff for {repo_name}#{pr_number} ({len(response.content)} bytes)")
        return response.content

    def create_issue_comment(
        self,
        repo_name: str,
        pr_number: int,
        body: str,
    ) -> Dict[str, Any]:
        """
        Create a comment on the pull request's conversation tab.

        Args:
            repo_name: Repository name in format "owner/repo"
            pr_number: Pull request number
            body: Markdown comment body

        Returns:
            Created comment object

        Raises:
            CommentPublishException: On transport errors or any non-2xx response
        """
        url = f"{self.base_url}/repos/{repo_name}/issues/{pr_number}/comments"

        logger.info(f"Posting review comment to PR #{pr_number}...")

        try:
            response = self._request("POST", url, json_data={"body": body})
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._handle_http_error(e, repo_name, pr_number)
        except httpx.RequestError as e:
            raise CommentPublishException(repo_name, pr_number, str(e))

        data = response.json()
        logger.info(f"Review comment {data.get('id')} posted to {repo_name}#{pr_number}")
        return data

    def _request(
        self,
        method: str,
        url: str,
        json_data: Optional[Dict[str, Any]] = None,
        additional_headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.config.api_version,
            "User-Agent": self.config.user_agent,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if additional_headers:
            headers.update(additional_headers)

        timeout = httpx.Timeout(self.config.request_timeout)

        with httpx.Client(timeout=timeout, transport=self._transport, follow_redirects=True) as client:
            return client.request(method=method, url=url, headers=headers, json=json_data)

    def _handle_http_error(
        self,
        error: httpx.HTTPStatusError,
        repo_name: str,
        pr_number: int,
    ) -> GitHubAPIException:
        """
        Convert HTTP status error to the comment publishing exception.

        Args:
            error: HTTP status error from httpx
            repo_name: Repository the comment was meant for
            pr_number: Pull request number

        Returns:
            CommentPublishException carrying the status and response body
        """
        status_code = error.response.status_code
        detail = f"HTTP {status_code}"
        if status_code in (401, 403):
            detail += " (token lacks pull-requests: write permission?)"
        if error.response.text:
            detail += f" - {error.response.text}"
        exception = CommentPublishException(repo_name, pr_number, detail)
        exception.status_code = status_code
        return exception
