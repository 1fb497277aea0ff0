"""
Review Pipeline Specific Exceptions

Custom exceptions for the review bot pipeline components.
"""

from typing import Optional

import httpx

from kimi_review.utils.exception import AppException


# ============================================================================
# BASE REVIEW BOT EXCEPTIONS
# ============================================================================

class ReviewBotException(AppException):
    """Base exception for review pipeline errors. Always fatal to the run."""
    def __init__(self, message: str, status_code: int = httpx.codes.INTERNAL_SERVER_ERROR):
        super().__init__(status_code=status_code, message=message)


class MissingCredentialException(ReviewBotException):
    """Raised when a required API credential is not configured."""
    def __init__(self, credential_name: str, hint: Optional[str] = None):
        message = f"The '{credential_name}' credential is not set or is empty"
        if hint:
            message += f". {hint}"
        super().__init__(message=message, status_code=httpx.codes.UNAUTHORIZED)
        self.credential_name = credential_name


class InvalidRunContextException(ReviewBotException):
    """Raised when the triggering event cannot be turned into a run context."""
    def __init__(self, message: str):
        super().__init__(message=message, status_code=httpx.codes.UNPROCESSABLE_ENTITY)


# ============================================================================
# MODEL PROVIDER EXCEPTIONS
# ============================================================================

class ProviderUnreachableException(ReviewBotException):
    """Raised when the model listing cannot be fetched or comes back empty."""
    def __init__(self, detail: str = "empty model list"):
        message = f"Model provider returned no usable model list: {detail}"
        super().__init__(message=message, status_code=httpx.codes.BAD_GATEWAY)


class NoModelAvailableException(ReviewBotException):
    """Raised when none of the preferred models is offered by the provider."""
    def __init__(self, preferences: list, available: list):
        message = (
            f"None of the preferred models ({' '.join(preferences)}) is available; "
            f"provider offers: {', '.join(sorted(available)) or 'nothing'}"
        )
        super().__init__(message=message, status_code=httpx.codes.NOT_FOUND)
        self.preferences = preferences
        self.available = available


# ============================================================================
# COMPLETION EXCEPTIONS
# ============================================================================

class CompletionException(ReviewBotException):
    """Base exception for a failed chat completion call."""
    def __init__(
        self,
        message: str,
        http_status: int,
        attempts: int,
        provider_message: Optional[str] = None,
        raw_response: Optional[str] = None,
    ):
        super().__init__(message=message, status_code=httpx.codes.BAD_GATEWAY)
        self.http_status = http_status
        self.attempts = attempts
        self.provider_message = provider_message
        self.raw_response = raw_response


class CompletionBadRequestException(CompletionException):
    """Raised on HTTP 400. Never retried: the input itself is rejected."""
    def __init__(self, provider_message: str, attempts: int, raw_response: Optional[str] = None):
        super().__init__(
            message=f"Completion call failed with HTTP 400 (Bad Request): '{provider_message}'",
            http_status=400,
            attempts=attempts,
            provider_message=provider_message,
            raw_response=raw_response,
        )


class CompletionRetriesExhaustedException(CompletionException):
    """Raised when every attempt ended in 429 or 5xx."""
    def __init__(self, http_status: int, attempts: int, raw_response: Optional[str] = None):
        super().__init__(
            message=f"Completion call still failing with HTTP {http_status} after {attempts} attempts",
            http_status=http_status,
            attempts=attempts,
            raw_response=raw_response,
        )


class CompletionUnexpectedStatusException(CompletionException):
    """Raised on any status that is neither success nor retryable."""
    def __init__(self, http_status: int, attempts: int, raw_response: Optional[str] = None):
        super().__init__(
            message=f"Completion call failed with unexpected HTTP {http_status}",
            http_status=http_status,
            attempts=attempts,
            raw_response=raw_response,
        )


# ============================================================================
# GITHUB API EXCEPTIONS
# ============================================================================

class GitHubAPIException(ReviewBotException):
    """Base exception for GitHub API related errors."""
    def __init__(self, message: str, status_code: int = httpx.codes.BAD_GATEWAY):
        super().__init__(message=message, status_code=status_code)


class DiffFetchException(GitHubAPIException):
    """Raised when the pull request diff cannot be downloaded."""
    def __init__(self, source: str, detail: str):
        super().__init__(message=f"Failed to fetch diff from {source}: {detail}")


class CommentPublishException(GitHubAPIException):
    """Raised when the review comment cannot be created."""
    def __init__(self, repo_name: str, pr_number: int, detail: str):
        super().__init__(message=f"Failed to post comment on {repo_name}#{pr_number}: {detail}")


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def is_retryable_status(status_code: int) -> bool:
    """
    Determine if a completion response status should be retried.

    Returns True for rate limiting (429) and server errors (5xx).
    """
    return status_code == 429 or 500 <= status_code <= 599


def get_retry_delay_seconds(attempt: int, base_delay: float = 5.0) -> float:
    """
    Backoff delay before the attempt following ``attempt`` (zero-based).

    5, 10, 20 seconds for attempts 0, 1, 2 with the default base.
    """
    return base_delay * (2 ** attempt)
