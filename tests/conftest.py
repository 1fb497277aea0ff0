import json
import os
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from kimi_review.core.review_config import ReviewBotSettings

CI_ENV_VARS = (
    "MOONSHOT_KEY",
    "GITHUB_TOKEN",
    "GH_TOKEN",
    "FALLBACK_MODELS",
    "EXCLUDE_PATTERNS",
    "MAX_CODE_BLOB_BYTES",
    "MAX_SINGLE_FILE_BYTES",
)


class HTTPStub:
    """Routes requests by (method, url) to queued canned responses and records them."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Dict[str, Any]]] = {}
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def add(self, method: str, url: str, status_code: int = 200, **response_kwargs) -> "HTTPStub":
        self.routes.setdefault((method, url), []).append(
            {"status_code": status_code, **response_kwargs}
        )
        return self

    def calls(self, method: str, url: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and str(r.url) == url]

    def json_body(self, request: httpx.Request) -> Any:
        return json.loads(request.content)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, str(request.url)))
        if not queue:
            return httpx.Response(404, json={"message": "Not Found"})
        # The last queued response keeps answering once the others are used up
        canned = queue.pop(0) if len(queue) > 1 else queue[0]
        return httpx.Response(**canned)


def _models_response(*model_ids: str) -> Dict[str, Any]:
    return {"object": "list", "data": [{"id": model_id, "object": "model"} for model_id in model_ids]}


def _completion_response(content: Optional[str]) -> Dict[str, Any]:
    return {
        "id": "cmpl-1",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
    }


@pytest.fixture
def http_stub():
    return HTTPStub()


@pytest.fixture
def clean_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("REVIEW_BOT_") or name in CI_ENV_VARS:
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_settings(clean_env, tmp_path):
    def _make(**overrides) -> ReviewBotSettings:
        values = {
            "moonshot_key": "sk-test",
            "github_token": "ghs-test",
            "artifacts_dir": str(tmp_path / "artifacts"),
        }
        values.update(overrides)
        return ReviewBotSettings(_env_file=None, **values)

    return _make


@pytest.fixture
def recorded_sleeps():
    return []


@pytest.fixture
def fake_sleep(recorded_sleeps):
    return recorded_sleeps.append


@pytest.fixture
def models_response():
    """Builds a ``GET /models`` body listing the given identifiers."""
    return _models_response


@pytest.fixture
def completion_response():
    """Builds a ``POST /chat/completions`` success body with the given content."""
    return _completion_response
