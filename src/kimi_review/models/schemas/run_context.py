"""Run context built from the triggering CI event."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from kimi_review.exceptions.review_exceptions import InvalidRunContextException


class TriggerKind(str, Enum):
    """What started the run."""
    MANUAL = "manual"
    PR_OPENED = "pr-opened"
    PR_SYNCHRONIZED = "pr-synchronized"


PULL_REQUEST_EVENTS = ("pull_request", "pull_request_target")
MANUAL_EVENTS = ("workflow_dispatch",)


class RunContext(BaseModel):
    """Immutable description of a single run."""

    model_config = ConfigDict(frozen=True)

    trigger: TriggerKind
    repository: str = Field(description="Repository in owner/name form")
    pr_number: Optional[int] = Field(default=None, ge=1)
    diff_url: Optional[str] = None

    @property
    def has_pull_request(self) -> bool:
        return self.trigger != TriggerKind.MANUAL and self.pr_number is not None

    @classmethod
    def from_github_event(
        cls,
        event_name: str,
        payload: Dict[str, Any],
        repository: str,
    ) -> "RunContext":
        """
        Build a run context from a GitHub Actions event.

        Args:
            event_name: Value of GITHUB_EVENT_NAME
            payload: Parsed JSON of the file at GITHUB_EVENT_PATH
            repository: Value of GITHUB_REPOSITORY ("owner/repo")

        Returns:
            RunContext for the event

        Raises:
            InvalidRunContextException: For unsupported events or a PR event without a PR
        """
        if not repository or "/" not in repository:
            raise InvalidRunContextException(f"Repository must be 'owner/name', got '{repository}'")

        if event_name in MANUAL_EVENTS:
            return cls(trigger=TriggerKind.MANUAL, repository=repository)

        if event_name not in PULL_REQUEST_EVENTS:
            raise InvalidRunContextException(f"Unsupported trigger event '{event_name}'")

        pull_request = payload.get("pull_request") or {}
        pr_number = pull_request.get("number") or payload.get("number")
        if not pr_number:
            raise InvalidRunContextException(
                f"Event '{event_name}' carries no pull request number"
            )

        # Every PR action other than "opened" is an update to review incrementally
        trigger = (
            TriggerKind.PR_OPENED
            if payload.get("action") == "opened"
            else TriggerKind.PR_SYNCHRONIZED
        )
        return cls(
            trigger=trigger,
            repository=repository,
            pr_number=int(pr_number),
            diff_url=pull_request.get("diff_url"),
        )
