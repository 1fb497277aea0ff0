"""
Review Client

Builds the chat-completion request for a review and sends it with the
bounded retry policy:

- 200 succeeds
- 400 stops at once (input too large or otherwise invalid)
- 429 / 5xx retry after 5, 10, 20... seconds, up to the attempt cap
- anything else stops at once
"""

import json
import time
from typing import Callable, Optional

from kimi_review.exceptions.review_exceptions import (
    CompletionBadRequestException,
    CompletionRetriesExhaustedException,
    CompletionUnexpectedStatusException,
    is_retryable_status,
)
from kimi_review.models.schemas import ReviewRequest, ReviewResult
from kimi_review.services.llm.moonshot_client import MoonshotClient
from kimi_review.utils.logging import get_logger
from kimi_review.utils.retry import RetryDecision, StatusRetryState, call_with_status_retry

logger = get_logger(__name__)

UNKNOWN_400_MESSAGE = "Unknown 400 error"


def extract_review_text(raw_response: str) -> Optional[str]:
    """``choices[0].message.content`` of a completion response, or None."""
    try:
        return json.loads(raw_response)["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError):
        return None


def extract_error_message(raw_response: str) -> str:
    """``error.message`` of a provider error body."""
    try:
        message = json.loads(raw_response)["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return UNKNOWN_400_MESSAGE
    return message if message else UNKNOWN_400_MESSAGE


class ReviewClient:
    """Sends one review request to the model provider."""

    def __init__(
        self,
        client: MoonshotClient,
        max_attempts: int = 3,
        base_delay: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            client: Provider client
            max_attempts: Total attempts, first call included
            base_delay: Backoff base; the wait after attempt ``n`` is ``base_delay * 2**n``
            sleep: Blocking wait between attempts (replaced in tests)
        """
        self.client = client
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.sleep = sleep

    def review(
        self,
        model: str,
        persona: str,
        content: str,
        max_tokens: int,
        temperature: float,
    ) -> ReviewResult:
        """
        Request a review of ``content`` from ``model``.

        Returns:
            ReviewResult with the review text on success, or the failing status,
            provider message and raw body otherwise. Never raises for HTTP errors.
        """
        request = ReviewRequest.build(
            model=model,
            persona=persona,
            content=content,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return self.send(request)

    def send(self, request: ReviewRequest) -> ReviewResult:
        payload = request.to_payload()
        state = StatusRetryState(max_attempts=self.max_attempts, base_delay=self.base_delay)

        logger.info(f"Sending request to Moonshot AI model: {request.model}")
        decision, raw_response = call_with_status_retry(
            lambda: self.client.post_chat_completion(payload),
            state,
            sleep=self.sleep,
            description="Moonshot AI call",
        )
        status = state.last_status
        logger.info(f"Final Moonshot AI HTTP Status: {status}")

        if decision == RetryDecision.SUCCEEDED:
            review_text = extract_review_text(raw_response)
            if review_text is None:
                logger.warning("Moonshot AI answered HTTP 200 without choices[0].message.content")
            else:
                logger.info("Review content successfully generated from Moonshot AI.")
            return ReviewResult(
                status_code=status,
                attempts=state.attempts_made,
                review_text=review_text,
                raw_response=raw_response,
                delays=tuple(state.delays),
            )

        error_message = None
        if decision == RetryDecision.BAD_REQUEST:
            error_message = extract_error_message(raw_response)
            logger.error(
                f"Moonshot AI call failed with HTTP 400 (Bad Request). This often means: '{error_message}'. "
                f"This could be due to exceeding the model's token limit, an invalid payload, "
                f"or other input issues."
            )
        elif decision == RetryDecision.UNEXPECTED:
            logger.error(
                f"Moonshot AI call failed with unexpected HTTP {status}. No more retries for this type of error. "
                f"Raw API response for debugging: {raw_response}"
            )

        return ReviewResult(
            status_code=status,
            attempts=state.attempts_made,
            error_message=error_message,
            raw_response=raw_response,
            delays=tuple(state.delays),
        )


def raise_for_result(result: ReviewResult) -> ReviewResult:
    """
    Turn a failed ReviewResult into the matching fatal exception.

    Raises:
        CompletionBadRequestException: HTTP 400
        CompletionRetriesExhaustedException: 429/5xx on every attempt
        CompletionUnexpectedStatusException: Any other non-200 status
    """
    if result.succeeded:
        return result
    if result.status_code == 400:
        raise CompletionBadRequestException(
            result.error_message or UNKNOWN_400_MESSAGE,
            attempts=result.attempts,
            raw_response=result.raw_response,
        )
    if is_retryable_status(result.status_code):
        raise CompletionRetriesExhaustedException(
            result.status_code,
            attempts=result.attempts,
            raw_response=result.raw_response,
        )
    raise CompletionUnexpectedStatusException(
        result.status_code,
        attempts=result.attempts,
        raw_response=result.raw_response,
    )
