"""
Review Pipeline

Linear orchestration of one review run:

1. Scope selection (repo or diff)
2. Content collection with exclusion and byte budget
3. Model resolution against the provider's live list
4. Review completion with bounded retries
5. Comment publishing

An empty collection short-circuits steps 3 and 4. Every fatal condition
surfaces as a ReviewBotException and no comment is posted after it.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import httpx

from kimi_review.core.review_config import ReviewBotSettings
from kimi_review.exceptions.review_exceptions import MissingCredentialException, ReviewBotException
from kimi_review.models.schemas import ContentBlob, ReviewResult, ReviewScope, RunContext
from kimi_review.services.collector.content_collector import ContentCollector
from kimi_review.services.diagnostics.artifact_writer import ArtifactWriter
from kimi_review.services.github.comment_publisher import (
    NOTHING_TO_REVIEW_NOTICE,
    CommentPublisher,
    PublishResult,
)
from kimi_review.services.github.pr_api_client import PRApiClient
from kimi_review.services.llm.model_resolver import ModelResolver
from kimi_review.services.llm.moonshot_client import MoonshotClient
from kimi_review.services.llm.review_client import ReviewClient, raise_for_result
from kimi_review.services.scope.scope_selector import select_scope
from kimi_review.utils.logging import get_logger

logger = get_logger(__name__)


class PipelineStatus(str, Enum):
    """Successful end states of a run."""
    REVIEWED = "reviewed"
    NOTHING_TO_REVIEW = "nothing_to_review"


@dataclass
class PipelineOutcome:
    """What a successful run produced."""

    status: PipelineStatus
    scope: ReviewScope
    blob: ContentBlob
    model: Optional[str] = None
    review: Optional[ReviewResult] = None
    comment: Optional[PublishResult] = None


class ReviewPipeline:
    """
    Runs the review for a single CI event.

    Usage:
        settings = get_review_bot_settings()
        context = RunContext.from_github_event(event_name, payload, repository)
        outcome = ReviewPipeline(settings, context).run()
    """

    def __init__(
        self,
        settings: ReviewBotSettings,
        run_context: RunContext,
        root: str = ".",
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            settings: Immutable run configuration
            run_context: Trigger, repository and PR of this run
            root: Working tree to collect in repo scope
            transport: HTTP transport shared by the provider and GitHub clients (tests)
            sleep: Blocking wait used by the completion backoff (tests)
        """
        self.settings = settings
        self.run_context = run_context
        self.root = root
        self.transport = transport
        self.sleep = sleep
        self.artifacts = ArtifactWriter(settings.artifacts_dir)

    @property
    def posts_comments(self) -> bool:
        return self.run_context.has_pull_request

    def run(self) -> PipelineOutcome:
        """
        Execute the pipeline.

        Returns:
            PipelineOutcome for a review or a "nothing to review" short-circuit

        Raises:
            MissingCredentialException: Before any network call
            DiffFetchException: If the PR diff cannot be downloaded
            ProviderUnreachableException, NoModelAvailableException: Model resolution failed
            CompletionException: The completion call failed for good
            CommentPublishException: GitHub rejected the comment
        """
        self._check_credentials()

        logger.info(
            f"Starting review for {self.run_context.repository}"
            + (f"#{self.run_context.pr_number}" if self.run_context.pr_number else "")
            + f" (trigger: {self.run_context.trigger.value})"
        )

        pr_client = PRApiClient(
            token=self.settings.github_token,
            config=self.settings.github_api,
            transport=self.transport,
        )
        publisher = CommentPublisher(pr_client, dry_run=self.settings.enable_dry_run_mode)

        # 1. Scope
        scope = select_scope(self.run_context.trigger)

        # 2. Content
        collector = ContentCollector(
            exclude_patterns=self.settings.exclude_patterns,
            max_file_bytes=self.settings.max_single_file_bytes,
            max_total_bytes=self.settings.max_code_blob_bytes,
            pr_client=pr_client,
            root=self.root,
        )
        try:
            blob = collector.collect(scope, self.run_context)
        except ReviewBotException:
            # Keep code_blob.txt present for the diagnostics upload
            self.artifacts.write_code_blob(b"")
            raise
        self.artifacts.write_code_blob(blob.data)

        if blob.is_empty:
            return self._nothing_to_review(scope, blob, publisher)

        # 3. Model
        moonshot = MoonshotClient(
            self.settings.moonshot_key,
            config=self.settings.llm,
            transport=self.transport,
        )
        model = ModelResolver(moonshot).resolve(self.settings.fallback_models)

        # 4. Review
        review_client = ReviewClient(
            moonshot,
            max_attempts=self.settings.llm.retry_attempts,
            base_delay=self.settings.llm.retry_base_delay,
            sleep=self.sleep,
        )
        result = review_client.review(
            model=model,
            persona=self.settings.llm.system_persona,
            content=blob.as_text(),
            max_tokens=self.settings.llm.max_tokens,
            temperature=self.settings.llm.temperature,
        )
        self.artifacts.write_response(result.raw_response)
        raise_for_result(result)

        # 5. Comment
        comment = None
        if self.posts_comments:
            comment = publisher.publish(
                result.review_text,
                model=model,
                repo_name=self.run_context.repository,
                pr_number=self.run_context.pr_number,
            )
        else:
            logger.info(f"Manual run, no pull request to comment on; review by {model} returned to caller.")

        return PipelineOutcome(
            status=PipelineStatus.REVIEWED,
            scope=scope,
            blob=blob,
            model=model,
            review=result,
            comment=comment,
        )

    def _check_credentials(self) -> None:
        logger.info("Checking if the 'MOONSHOT_KEY' secret is available...")
        if not self.settings.moonshot_key:
            raise MissingCredentialException(
                "MOONSHOT_KEY",
                hint="Add it under Settings > Secrets and variables > Actions",
            )
        if self.posts_comments and not self.settings.enable_dry_run_mode and not self.settings.github_token:
            raise MissingCredentialException(
                "GITHUB_TOKEN",
                hint="Pass the workflow token so the review can be posted",
            )
        logger.info("'MOONSHOT_KEY' secret found. Proceeding.")

    def _nothing_to_review(
        self,
        scope: ReviewScope,
        blob: ContentBlob,
        publisher: CommentPublisher,
    ) -> PipelineOutcome:
        logger.info(
            "Moonshot AI review generation will be skipped as there's no code to analyze.",
            extra={"annotation": "notice"},
        )
        comment = None
        if self.posts_comments and self.settings.comment_on_empty:
            comment = publisher.publish_notice(
                NOTHING_TO_REVIEW_NOTICE,
                repo_name=self.run_context.repository,
                pr_number=self.run_context.pr_number,
            )
        return PipelineOutcome(
            status=PipelineStatus.NOTHING_TO_REVIEW,
            scope=scope,
            blob=blob,
            comment=comment,
        )
