"""
Comment Publisher for Review Bot

Formats the model's review (or a fixed notice) and posts it as a pull
request comment. In dry-run mode the comment is logged instead.
"""

from dataclasses import dataclass
from typing import Optional

from kimi_review.services.github.pr_api_client import PRApiClient
from kimi_review.utils.logging import get_logger

logger = get_logger(__name__)


COMMENT_HEADER = "🤖 **Kimi-Dev Review**"

EMPTY_REVIEW_NOTICE = (
    "Kimi-Dev review ran, but no content was returned by the AI. This could be a temporary "
    "Moonshot AI issue or the input was too small/large."
)

NOTHING_TO_REVIEW_NOTICE = (
    "No significant code changes found or all changes were in excluded paths. "
    "Skipping Kimi-Dev review."
)


@dataclass
class PublishResult:
    """Result of a comment publishing operation."""

    published: bool
    """Whether a comment was created on GitHub."""

    body: str
    """The rendered comment body."""

    comment_id: Optional[int] = None
    """GitHub's comment ID if published."""

    html_url: Optional[str] = None


def format_review_comment(review_text: Optional[str], model: str) -> str:
    if not review_text or not review_text.strip():
        logger.warning(EMPTY_REVIEW_NOTICE)
        review_text = EMPTY_REVIEW_NOTICE
    return f"{COMMENT_HEADER}\n_Model:_ `{model}`\n\n{review_text}"


def format_notice_comment(notice: str) -> str:
    return f"{COMMENT_HEADER}\n\n{notice}"


class CommentPublisher:
    """
    Publishes review comments to a pull request.

    Usage:
        publisher = CommentPublisher(PRApiClient(token=settings.github_token))
        result = publisher.publish(review_text, model="kimidev-72b-32k",
                                   repo_name="owner/repo", pr_number=12)
    """

    def __init__(self, pr_api_client: PRApiClient, dry_run: bool = False):
        self.pr_api_client = pr_api_client
        self.dry_run = dry_run

    def publish(
        self,
        review_text: Optional[str],
        model: str,
        repo_name: str,
        pr_number: int,
    ) -> PublishResult:
        """
        Post the review as a new comment.

        Args:
            review_text: Model output; empty or None is replaced by a fallback notice
            model: Model identifier shown in the comment
            repo_name: Repository name in "owner/repo" format
            pr_number: Pull request number

        Returns:
            PublishResult with the created comment

        Raises:
            CommentPublishException: If GitHub rejects the comment
        """
        body = format_review_comment(review_text, model)
        return self._post(body, repo_name, pr_number)

    def publish_notice(self, notice: str, repo_name: str, pr_number: int) -> PublishResult:
        """Post a fixed notice (no model involved)."""
        return self._post(format_notice_comment(notice), repo_name, pr_number)

    def _post(self, body: str, repo_name: str, pr_number: int) -> PublishResult:
        if self.dry_run:
            logger.info(f"Dry run: not posting comment to {repo_name}#{pr_number}:\n{body}")
            return PublishResult(published=False, body=body)

        response = self.pr_api_client.create_issue_comment(repo_name, pr_number, body)
        logger.info("Review comment posted.")
        return PublishResult(
            published=True,
            body=body,
            comment_id=response.get("id"),
            html_url=response.get("html_url"),
        )
