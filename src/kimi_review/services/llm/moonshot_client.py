"""Moonshot (OpenAI-compatible) HTTP client for model listing and chat completions."""

from typing import Any, Dict, List, Optional, Tuple

import httpx

from kimi_review.core.review_config import LLMConfig
from kimi_review.exceptions.review_exceptions import (
    MissingCredentialException,
    ProviderUnreachableException,
)
from kimi_review.utils.logging import get_logger

logger = get_logger(__name__)

# Status recorded when no HTTP response arrived at all
TRANSPORT_FAILURE_STATUS = 0


class MoonshotClient:
    """
    Thin wrapper over the provider's REST endpoints.

    ``list_models`` raises on failure; ``post_chat_completion`` never raises
    for HTTP errors and hands the status back so the caller's retry policy
    can classify it.
    """

    def __init__(
        self,
        api_key: str,
        config: Optional[LLMConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not api_key:
            raise MissingCredentialException(
                "MOONSHOT_KEY",
                hint="Add it under Settings > Secrets and variables > Actions",
            )
        self.api_key = api_key
        self.config = config or LLMConfig()
        self.base_url = self.config.api_base_url.rstrip("/")
        self._transport = transport

    def list_models(self) -> List[str]:
        """
        Model identifiers the credential can access.

        Raises:
            ProviderUnreachableException: On transport errors, non-2xx responses,
                unparseable bodies or an empty list
        """
        url = f"{self.base_url}/models"
        logger.info("Attempting to retrieve the list of models currently available from Moonshot AI...")

        try:
            with self._client(timeout=30) as client:
                response = client.get(url)
            response.raise_for_status()
            data = response.json().get("data") or []
            models = [item["id"] for item in data if isinstance(item, dict) and item.get("id")]
        except httpx.HTTPStatusError as e:
            raise ProviderUnreachableException(f"HTTP {e.response.status_code} from {url}")
        except httpx.RequestError as e:
            raise ProviderUnreachableException(f"request to {url} failed: {e}")
        except (ValueError, AttributeError, TypeError) as e:
            raise ProviderUnreachableException(f"unparseable model list: {e}")

        if not models:
            raise ProviderUnreachableException()

        logger.info(f"Successfully retrieved models from Moonshot AI. Available models: [{' '.join(models)}]")
        return models

    def post_chat_completion(self, payload: Dict[str, Any]) -> Tuple[int, str]:
        """
        Send one chat-completion request.

        Returns:
            ``(status_code, raw_body)``; status is 0 when the request never got a response
        """
        url = f"{self.base_url}/chat/completions"
        try:
            with self._client(timeout=self.config.request_timeout) as client:
                response = client.post(url, json=payload)
        except httpx.RequestError as e:
            logger.warning(f"Completion request to {url} failed without a response: {e}")
            return TRANSPORT_FAILURE_STATUS, str(e)
        return response.status_code, response.text

    def _client(self, timeout: float) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(timeout),
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
