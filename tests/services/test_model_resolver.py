"""
Tests for model resolution and the Moonshot client's model listing.
"""

import pytest
from unittest.mock import MagicMock

from kimi_review.exceptions.review_exceptions import (
    MissingCredentialException,
    NoModelAvailableException,
    ProviderUnreachableException,
)
from kimi_review.services.llm.model_resolver import ModelResolver, choose_model
from kimi_review.services.llm.moonshot_client import MoonshotClient

MOONSHOT_MODELS_URL = "https://api.moonshot.ai/v1/models"


@pytest.mark.unit
def test_choose_model_takes_first_available_preference():
    assert choose_model(["A", "B"], {"B"}) == "B"
    assert choose_model(["A", "B"], {"A", "B"}) == "A"


@pytest.mark.unit
def test_choose_model_raises_when_nothing_matches():
    with pytest.raises(NoModelAvailableException) as exc_info:
        choose_model(["A", "B"], {"C"})

    assert exc_info.value.preferences == ["A", "B"]
    assert exc_info.value.available == ["C"]


@pytest.mark.unit
def test_resolver_uses_live_model_list():
    client = MagicMock()
    client.list_models.return_value = ["moonshot-v1-32k", "kimidev-72b-32k"]

    model = ModelResolver(client).resolve(["kimidev-72b-128k", "kimidev-72b-32k", "moonshot-v1-32k"])

    assert model == "kimidev-72b-32k"
    client.list_models.assert_called_once_with()


@pytest.mark.unit
def test_list_models_sends_bearer_key(http_stub, models_response):
    http_stub.add("GET", MOONSHOT_MODELS_URL, json=models_response("m1", "m2"))

    models = MoonshotClient("sk-test", transport=http_stub.transport).list_models()

    assert models == ["m1", "m2"]
    request = http_stub.calls("GET", MOONSHOT_MODELS_URL)[0]
    assert request.headers["Authorization"] == "Bearer sk-test"


@pytest.mark.unit
def test_empty_model_list_is_provider_unreachable(http_stub):
    http_stub.add("GET", MOONSHOT_MODELS_URL, json={"data": []})

    with pytest.raises(ProviderUnreachableException):
        ModelResolver(MoonshotClient("sk-test", transport=http_stub.transport)).resolve(["A"])


@pytest.mark.unit
def test_model_list_http_error_is_provider_unreachable(http_stub):
    http_stub.add("GET", MOONSHOT_MODELS_URL, 401, json={"error": {"message": "bad key"}})

    with pytest.raises(ProviderUnreachableException) as exc_info:
        MoonshotClient("sk-test", transport=http_stub.transport).list_models()

    assert "HTTP 401" in exc_info.value.message


@pytest.mark.unit
def test_model_list_garbage_body_is_provider_unreachable(http_stub):
    http_stub.add("GET", MOONSHOT_MODELS_URL, text="<html>oops</html>")

    with pytest.raises(ProviderUnreachableException):
        MoonshotClient("sk-test", transport=http_stub.transport).list_models()


@pytest.mark.unit
def test_client_requires_api_key():
    with pytest.raises(MissingCredentialException) as exc_info:
        MoonshotClient("")

    assert exc_info.value.credential_name == "MOONSHOT_KEY"
