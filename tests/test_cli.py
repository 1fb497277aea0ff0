"""
Tests for the kimi-review command line entry point.
"""

import json

import pytest
from click.testing import CliRunner
from unittest.mock import patch

from kimi_review.exceptions.review_exceptions import CompletionBadRequestException
from kimi_review.main import build_run_context, cli
from kimi_review.models.schemas import ReviewResult, ReviewScope, TriggerKind
from kimi_review.workflows.review_pipeline import PipelineOutcome, PipelineStatus


@pytest.fixture
def runner(monkeypatch):
    for name in ("GITHUB_EVENT_NAME", "GITHUB_EVENT_PATH", "GITHUB_REPOSITORY"):
        monkeypatch.delenv(name, raising=False)
    return CliRunner()


@pytest.fixture
def event_file(tmp_path):
    path = tmp_path / "event.json"
    path.write_text(json.dumps({
        "action": "synchronize",
        "pull_request": {"number": 12, "diff_url": "https://github.com/octo/widgets/pull/12.diff"},
    }))
    return path


@pytest.fixture
def patched_settings(make_settings):
    with patch("kimi_review.main.get_review_bot_settings", side_effect=lambda **kw: make_settings(**kw)):
        yield


def reviewed_outcome(text):
    return PipelineOutcome(
        status=PipelineStatus.REVIEWED,
        scope=ReviewScope.REPO,
        blob=None,
        model="moonshot-v1-32k",
        review=ReviewResult(status_code=200, attempts=1, review_text=text),
    )


@pytest.mark.unit
def test_build_run_context_from_event_file(event_file):
    context = build_run_context("pull_request", str(event_file), "octo/widgets", None)

    assert context.trigger == TriggerKind.PR_SYNCHRONIZED
    assert context.pr_number == 12


@pytest.mark.unit
def test_pr_number_option_fills_missing_payload():
    context = build_run_context("pull_request", None, "octo/widgets", 3)

    assert context.pr_number == 3


@pytest.mark.unit
def test_pr_number_option_replaces_null_pull_request(tmp_path):
    event_path = tmp_path / "null_pr.json"
    event_path.write_text(json.dumps({"action": "synchronize", "pull_request": None}))

    context = build_run_context("pull_request", str(event_path), "octo/widgets", 5)

    assert context.pr_number == 5
    assert context.trigger == TriggerKind.PR_SYNCHRONIZED


@pytest.mark.unit
def test_manual_run_prints_review(runner, patched_settings, tmp_path):
    with patch("kimi_review.main.ReviewPipeline") as pipeline:
        pipeline.return_value.run.return_value = reviewed_outcome("Looks tidy.")

        result = runner.invoke(cli, [
            "--event-name", "workflow_dispatch",
            "--repository", "octo/widgets",
            "--workdir", str(tmp_path),
        ])

    assert result.exit_code == 0
    assert "Looks tidy." in result.output
    run_context = pipeline.call_args.args[1]
    assert run_context.trigger == TriggerKind.MANUAL
    assert pipeline.call_args.kwargs["root"] == str(tmp_path)


@pytest.mark.unit
def test_dry_run_flag_reaches_settings(runner, patched_settings, event_file):
    with patch("kimi_review.main.ReviewPipeline") as pipeline:
        pipeline.return_value.run.return_value = reviewed_outcome("x")

        result = runner.invoke(cli, [
            "--event-name", "pull_request",
            "--event-path", str(event_file),
            "--repository", "octo/widgets",
            "--dry-run",
        ])

    assert result.exit_code == 0
    settings = pipeline.call_args.args[0]
    assert settings.enable_dry_run_mode


@pytest.mark.unit
def test_pipeline_failure_exits_non_zero(runner, patched_settings, event_file):
    with patch("kimi_review.main.ReviewPipeline") as pipeline:
        pipeline.return_value.run.side_effect = CompletionBadRequestException(
            "context length exceeded", attempts=1
        )

        result = runner.invoke(cli, [
            "--event-name", "pull_request",
            "--event-path", str(event_file),
            "--repository", "octo/widgets",
        ])

    assert result.exit_code == 1


@pytest.mark.unit
def test_unsupported_event_exits_non_zero(runner, patched_settings):
    with patch("kimi_review.main.ReviewPipeline") as pipeline:
        result = runner.invoke(cli, ["--event-name", "push", "--repository", "octo/widgets"])

    assert result.exit_code == 1
    pipeline.assert_not_called()


@pytest.mark.unit
def test_unreadable_event_file_exits_non_zero(runner, patched_settings, tmp_path):
    result = runner.invoke(cli, [
        "--event-name", "pull_request",
        "--event-path", str(tmp_path / "missing.json"),
        "--repository", "octo/widgets",
    ])

    assert result.exit_code == 1
