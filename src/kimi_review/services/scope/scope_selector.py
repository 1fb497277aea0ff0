"""Decide whether a run reviews the whole repository or only the PR diff."""

from kimi_review.models.schemas import ReviewScope, TriggerKind
from kimi_review.utils.logging import get_logger

logger = get_logger(__name__)


def select_scope(trigger: TriggerKind) -> ReviewScope:
    """Full repository on manual runs and freshly opened PRs, diff on later pushes."""
    if trigger in (TriggerKind.MANUAL, TriggerKind.PR_OPENED):
        logger.info("Review scope: Full Repository (initial PR review or manual run).")
        return ReviewScope.REPO

    logger.info("Review scope: Diff Changes Only (subsequent push to a PR).")
    return ReviewScope.DIFF
