"""Command-line entry point: turn a CI event into a review run."""

import json
import sys
from typing import Optional

import click

from kimi_review import __version__
from kimi_review.core.review_config import get_review_bot_settings
from kimi_review.exceptions.review_exceptions import InvalidRunContextException, ReviewBotException
from kimi_review.models.schemas import RunContext, TriggerKind
from kimi_review.utils.logging import get_logger, set_log_level
from kimi_review.workflows.review_pipeline import ReviewPipeline

logger = get_logger(__name__)


def load_event_payload(event_path: Optional[str]) -> dict:
    if not event_path:
        return {}
    try:
        with open(event_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise InvalidRunContextException(f"Cannot read event payload {event_path}: {e}")


def build_run_context(
    event_name: str,
    event_path: Optional[str],
    repository: str,
    pr_number: Optional[int],
) -> RunContext:
    payload = load_event_payload(event_path)
    if pr_number is not None and event_name != "workflow_dispatch":
        pull_request = payload.get("pull_request") or {}
        pull_request.setdefault("number", pr_number)
        payload["pull_request"] = pull_request
    return RunContext.from_github_event(event_name, payload, repository)


@click.command()
@click.version_option(version=__version__)
@click.option('--event-name', envvar='GITHUB_EVENT_NAME', default='workflow_dispatch',
              show_default=True, help='Triggering event (pull_request or workflow_dispatch)')
@click.option('--event-path', envvar='GITHUB_EVENT_PATH', type=click.Path(dir_okay=False),
              help='Path to the event payload JSON')
@click.option('--repository', envvar='GITHUB_REPOSITORY', required=True,
              help='Repository in owner/name form')
@click.option('--pr-number', type=int, default=None,
              help='Pull request number when no event payload is available')
@click.option('--workdir', type=click.Path(exists=True, file_okay=False), default='.',
              show_default=True, help='Working tree collected for full-repository reviews')
@click.option('--dry-run', is_flag=True, default=False,
              help='Run everything but print the comment instead of posting it')
def cli(event_name, event_path, repository, pr_number, workdir, dry_run):
    """Kimi-Dev Review Bot - LLM code review for pull requests.

    \b
    Full-repository review on a newly opened PR or a manual run,
    diff-only review on later pushes. Requires MOONSHOT_KEY and,
    to post comments, GITHUB_TOKEN.
    """
    try:
        overrides = {"enable_dry_run_mode": True} if dry_run else {}
        settings = get_review_bot_settings(**overrides)
        set_log_level(settings.log_level.value)

        run_context = build_run_context(event_name, event_path, repository, pr_number)
        outcome = ReviewPipeline(settings, run_context, root=workdir).run()
    except ReviewBotException as e:
        logger.error(e.message)
        sys.exit(1)

    logger.info(f"Review run finished: {outcome.status.value}")
    if run_context.trigger == TriggerKind.MANUAL and outcome.review is not None:
        click.echo(outcome.review.review_text or "")


def main():
    cli()


if __name__ == '__main__':
    main()
