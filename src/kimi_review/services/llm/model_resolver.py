"""Pick the first preferred model the provider actually offers."""

from typing import Iterable, List, Sequence

from kimi_review.exceptions.review_exceptions import NoModelAvailableException
from kimi_review.services.llm.moonshot_client import MoonshotClient
from kimi_review.utils.logging import get_logger

logger = get_logger(__name__)


def choose_model(preferences: Sequence[str], available: Iterable[str]) -> str:
    """
    First entry of ``preferences`` present in ``available``.

    Raises:
        NoModelAvailableException: If no preference is available
    """
    available_set = set(available)
    for slug in preferences:
        if slug in available_set:
            logger.info(f"Found an available preferred model: '{slug}'")
            return slug
    raise NoModelAvailableException(list(preferences), sorted(available_set))


class ModelResolver:
    """Resolves the model for a run against the provider's live model list."""

    def __init__(self, client: MoonshotClient):
        self.client = client

    def resolve(self, preferences: List[str]) -> str:
        """
        Args:
            preferences: Ordered model identifiers, most preferred first

        Returns:
            The selected model identifier

        Raises:
            ProviderUnreachableException: If the model list cannot be fetched or is empty
            NoModelAvailableException: If none of the preferences is offered
        """
        available = self.client.list_models()
        logger.info(f"Searching for a model from your preferred list: [{' '.join(preferences)}]")
        model = choose_model(preferences, available)
        logger.info(f"Selected Moonshot model for this review: '{model}'")
        return model
