"""
Tests for the Review Client retry policy and result classification.
"""

import json

import pytest
from unittest.mock import MagicMock

from kimi_review.exceptions.review_exceptions import (
    CompletionBadRequestException,
    CompletionRetriesExhaustedException,
    CompletionUnexpectedStatusException,
)
from kimi_review.models.schemas import ReviewResult
from kimi_review.services.llm.moonshot_client import MoonshotClient, TRANSPORT_FAILURE_STATUS
from kimi_review.services.llm.review_client import (
    UNKNOWN_400_MESSAGE,
    ReviewClient,
    extract_error_message,
    extract_review_text,
    raise_for_result,
)

MOONSHOT_COMPLETIONS_URL = "https://api.moonshot.ai/v1/chat/completions"
ERROR_BODY = json.dumps({"error": {"message": "context length exceeded", "type": "invalid_request_error"}})


@pytest.fixture
def provider():
    return MagicMock()


def make_review_client(provider, fake_sleep):
    return ReviewClient(provider, max_attempts=3, base_delay=5.0, sleep=fake_sleep)


def request_review(client):
    return client.review(
        model="kimidev-72b-32k",
        persona="You are a reviewer.",
        content="--- FILE_START: ./app.py ---",
        max_tokens=1024,
        temperature=0.2,
    )


@pytest.mark.unit
def test_success_after_two_server_errors(provider, fake_sleep, recorded_sleeps, completion_response):
    provider.post_chat_completion.side_effect = [
        (503, "Service Unavailable"),
        (503, "Service Unavailable"),
        (200, json.dumps(completion_response("Looks good."))),
    ]

    result = request_review(make_review_client(provider, fake_sleep))

    assert result.succeeded
    assert result.review_text == "Looks good."
    assert result.attempts == 3
    assert result.delays == (5.0, 10.0)
    assert recorded_sleeps == [5.0, 10.0]


@pytest.mark.unit
def test_bad_request_is_not_retried(provider, fake_sleep, recorded_sleeps):
    provider.post_chat_completion.return_value = (400, ERROR_BODY)

    result = request_review(make_review_client(provider, fake_sleep))

    assert not result.succeeded
    assert result.status_code == 400
    assert result.attempts == 1
    assert result.error_message == "context length exceeded"
    assert recorded_sleeps == []
    assert provider.post_chat_completion.call_count == 1


@pytest.mark.unit
def test_retries_are_exhausted_without_trailing_sleep(provider, fake_sleep, recorded_sleeps):
    provider.post_chat_completion.return_value = (500, "boom")

    result = request_review(make_review_client(provider, fake_sleep))

    assert result.status_code == 500
    assert result.attempts == 3
    assert recorded_sleeps == [5.0, 10.0]
    with pytest.raises(CompletionRetriesExhaustedException) as exc_info:
        raise_for_result(result)
    assert exc_info.value.attempts == 3
    assert exc_info.value.raw_response == "boom"


@pytest.mark.unit
def test_rate_limit_is_retried(provider, fake_sleep, recorded_sleeps, completion_response):
    provider.post_chat_completion.side_effect = [
        (429, "slow down"),
        (200, json.dumps(completion_response("ok"))),
    ]

    result = request_review(make_review_client(provider, fake_sleep))

    assert result.succeeded
    assert recorded_sleeps == [5.0]


@pytest.mark.unit
@pytest.mark.parametrize("status", [401, 404, TRANSPORT_FAILURE_STATUS])
def test_unexpected_status_stops_immediately(provider, fake_sleep, recorded_sleeps, status):
    provider.post_chat_completion.return_value = (status, "nope")

    result = request_review(make_review_client(provider, fake_sleep))

    assert result.attempts == 1
    assert recorded_sleeps == []
    with pytest.raises(CompletionUnexpectedStatusException) as exc_info:
        raise_for_result(result)
    assert exc_info.value.http_status == status


@pytest.mark.unit
def test_request_payload_carries_persona_and_content(provider, fake_sleep, completion_response):
    provider.post_chat_completion.return_value = (200, json.dumps(completion_response("ok")))

    request_review(make_review_client(provider, fake_sleep))

    payload = provider.post_chat_completion.call_args.args[0]
    assert payload == {
        "model": "kimidev-72b-32k",
        "messages": [
            {"role": "system", "content": "You are a reviewer."},
            {"role": "user", "content": "--- FILE_START: ./app.py ---"},
        ],
        "max_tokens": 1024,
        "temperature": 0.2,
    }


@pytest.mark.unit
def test_success_without_content_yields_no_text(provider, fake_sleep):
    provider.post_chat_completion.return_value = (200, json.dumps({"choices": []}))

    result = request_review(make_review_client(provider, fake_sleep))

    assert result.succeeded
    assert result.review_text is None


@pytest.mark.unit
def test_raise_for_bad_request_keeps_provider_message():
    result = ReviewResult(status_code=400, attempts=1, error_message="too long", raw_response=ERROR_BODY)

    with pytest.raises(CompletionBadRequestException) as exc_info:
        raise_for_result(result)

    assert exc_info.value.provider_message == "too long"
    assert "too long" in exc_info.value.message


@pytest.mark.unit
def test_raise_for_result_passes_success_through():
    result = ReviewResult(status_code=200, attempts=1, review_text="fine")

    assert raise_for_result(result) is result


@pytest.mark.unit
def test_extract_helpers_tolerate_bad_bodies():
    assert extract_review_text("not json") is None
    assert extract_error_message("not json") == UNKNOWN_400_MESSAGE
    assert extract_error_message(json.dumps({"error": {"message": ""}})) == UNKNOWN_400_MESSAGE


@pytest.mark.unit
def test_post_chat_completion_over_http(http_stub, fake_sleep, recorded_sleeps, completion_response):
    http_stub.add("POST", MOONSHOT_COMPLETIONS_URL, 502, text="bad gateway")
    http_stub.add("POST", MOONSHOT_COMPLETIONS_URL, 200, json=completion_response("Ship it."))
    client = MoonshotClient("sk-test", transport=http_stub.transport)

    result = request_review(make_review_client(client, fake_sleep))

    assert result.review_text == "Ship it."
    assert recorded_sleeps == [5.0]
    requests = http_stub.calls("POST", MOONSHOT_COMPLETIONS_URL)
    assert len(requests) == 2
    assert http_stub.json_body(requests[0])["model"] == "kimidev-72b-32k"
