"""
Tests for the GitHub Actions log formatter.
"""

import logging

import pytest

from kimi_review.utils.logging.actions_formatter import GitHubActionsFormatter


def make_record(level, message, **extra):
    record = logging.LogRecord("kimi_review.test", level, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def formatter():
    return GitHubActionsFormatter("%(message)s")


@pytest.mark.unit
def test_errors_and_warnings_become_annotations(formatter):
    assert formatter.format(make_record(logging.ERROR, "boom")) == "::error ::boom"
    assert formatter.format(make_record(logging.WARNING, "careful")) == "::warning ::careful"


@pytest.mark.unit
def test_info_is_plain_unless_marked_as_notice(formatter):
    assert formatter.format(make_record(logging.INFO, "hello")) == "hello"
    assert formatter.format(make_record(logging.INFO, "capped", annotation="notice")) == "::notice ::capped"


@pytest.mark.unit
def test_multiline_annotations_are_escaped(formatter):
    formatted = formatter.format(make_record(logging.ERROR, "50% done\nthen failed"))

    assert formatted == "::error ::50%25 done%0Athen failed"
