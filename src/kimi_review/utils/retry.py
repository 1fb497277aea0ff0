"""
Retry utilities with exponential backoff for status-code driven calls.

The model provider answers every request with an HTTP status; whether to try
again is decided from that status alone. ``StatusRetryState`` tracks attempt
count, last status and the delay to wait before the next attempt.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple, TypeVar

from kimi_review.exceptions.review_exceptions import get_retry_delay_seconds, is_retryable_status
from kimi_review.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RetryDecision(str, Enum):
    """What to do after an attempt."""
    SUCCEEDED = "succeeded"
    RETRY = "retry"
    BAD_REQUEST = "bad_request"
    EXHAUSTED = "exhausted"
    UNEXPECTED = "unexpected"


@dataclass
class StatusRetryState:
    """
    Attempt bookkeeping for a call retried on 429/5xx.

    200 succeeds, 400 stops at once, 429/5xx retries with ``base_delay * 2^attempt``
    until ``max_attempts`` is reached, anything else stops at once.
    """

    max_attempts: int = 3
    base_delay: float = 5.0
    attempt: int = 0
    last_status: Optional[int] = None
    delays: List[float] = field(default_factory=list)

    def record(self, status_code: int) -> RetryDecision:
        """Record the outcome of attempt ``self.attempt`` and decide the next step."""
        self.last_status = status_code

        if status_code == 200:
            decision = RetryDecision.SUCCEEDED
        elif status_code == 400:
            decision = RetryDecision.BAD_REQUEST
        elif is_retryable_status(status_code):
            if self.attempt + 1 >= self.max_attempts:
                decision = RetryDecision.EXHAUSTED
            else:
                decision = RetryDecision.RETRY
        else:
            decision = RetryDecision.UNEXPECTED

        self.attempt += 1
        return decision

    @property
    def attempts_made(self) -> int:
        return self.attempt

    def next_delay(self) -> float:
        """Delay before the next attempt; uses the index of the attempt that just failed."""
        return get_retry_delay_seconds(self.attempt - 1, self.base_delay)


def call_with_status_retry(
    send: Callable[[], Tuple[int, T]],
    state: StatusRetryState,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "request",
) -> Tuple[RetryDecision, T]:
    """
    Execute ``send`` until it succeeds or the retry policy gives up.

    Args:
        send: Performs one attempt and returns ``(status_code, payload)``
        state: Retry bookkeeping, updated in place
        sleep: Blocking wait used between attempts
        description: Name used in log lines

    Returns:
        The final decision and the payload of the last attempt
    """
    while True:
        status_code, payload = send()
        decision = state.record(status_code)

        if decision != RetryDecision.RETRY:
            return decision, payload

        delay = state.next_delay()
        state.delays.append(delay)
        logger.warning(
            f"Attempt {state.attempts_made}/{state.max_attempts} of {description} failed "
            f"with HTTP {status_code}. Retrying in {delay:g} seconds..."
        )
        sleep(delay)
