"""
Base functionality for image classification.

This module provides the classifier interface shared by every backend: a
backend only knows how to send a bitmap to its model and return the raw
answer; the base class turns that answer into the confidence for the flagged
category.
"""

from typing import Dict, Any, Optional, Tuple, Union
from abc import ABC, abstractmethod

from pydantic import ValidationError

from ..config import DEFAULT_FLAGGED_LABEL
from ..errors import InvalidModelOutputError, NoFlaggedLabelError
from ..utils.log_utils import get_logger
from .prompt import ClassificationResponse

logger = get_logger(__name__)


class Classifier(ABC):
    """Abstract base class for classifier backends."""

    def __init__(self, api_key: Optional[str] = None, flagged_label: str = DEFAULT_FLAGGED_LABEL):
        """Initialize the classifier.

        Args:
            api_key: API key for the service. If None, will try to get from environment.
            flagged_label: Category whose score is returned by classify().

        Raises:
            ModelUnavailableError: The backend cannot be set up.
        """
        self.api_key = api_key
        self.flagged_label = flagged_label
        self._validate_api_key()

    @abstractmethod
    def _validate_api_key(self) -> None:
        """Validate that the API key is available and set up the backend client."""
        pass

    @abstractmethod
    def _get_model_name(self) -> str:
        """Return the model name to use for this backend."""
        pass

    @abstractmethod
    def _call_api(self, image_b64: str) -> Tuple[Union[str, Dict[str, Any]], Dict[str, int]]:
        """Send the image to the model and return its answer and token usage.

        Args:
            image_b64: Base64-encoded JPEG image data

        Returns:
            Tuple of (response_text_or_dict, token_usage_dict)

        Raises:
            ClassifierUnavailableError: The backend call failed.
        """
        pass

    @property
    def model_name(self) -> str:
        return self._get_model_name()

    def score_categories(self, image_b64: str) -> ClassificationResponse:
        """Classify an image and return every category score the model reported.

        Raises:
            ClassifierUnavailableError: The backend call failed.
            InvalidModelOutputError: The answer does not match the response schema.
        """
        response, token_usage = self._call_api(image_b64)
        if token_usage:
            logger.debug("Token usage for %s: %s", self.model_name, token_usage)
        try:
            if isinstance(response, (str, bytes)):
                return ClassificationResponse.model_validate_json(response)
            return ClassificationResponse.model_validate(response)
        except ValidationError as err:
            logger.error("Unexpected response from %s: %s", self.model_name, response)
            raise InvalidModelOutputError(f"Invalid classifier response: {err}") from err

    def classify(self, image_b64: str) -> float:
        """Return the confidence in [0, 1] that the image belongs to the flagged category.

        Raises:
            ClassificationError: The call failed or the flagged label is missing.
        """
        if not image_b64:
            raise InvalidModelOutputError("Empty image data")
        response = self.score_categories(image_b64)
        score = response.score_for(self.flagged_label)
        if score is None:
            raise NoFlaggedLabelError(self.flagged_label, [c.label for c in response.categories])
        return score

