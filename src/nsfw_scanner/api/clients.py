"""
Classifier backends for various AI services.

Each backend asks a vision model for a category score set matching
prompt.ClassificationResponse, all inheriting from the base Classifier class
for a unified interface.
"""

import os
import base64
from typing import Optional, Tuple, Dict, Any

import anthropic
from openai import OpenAI, OpenAIError
import google.generativeai as genai

from ..errors import ClassifierUnavailableError, ModelUnavailableError
from ..utils.log_utils import get_logger
from .base import Classifier
from .prompt import PROMPT_TEMPLATE, RESPONSE_SCHEMA, JSON_SCHEMA

logger = get_logger(__name__)

MAX_OUTPUT_TOKENS = 256

# Keys Gemini's response_schema does not accept
GEMINI_UNSUPPORTED_FIELDS = {
    'additionalProperties', 'minimum', 'maximum', 'exclusiveMinimum',
    'exclusiveMaximum', 'multipleOf', 'minLength', 'maxLength',
    'pattern', 'format', 'minItems', 'maxItems', 'uniqueItems',
    'title', 'default', '$defs',
}


def inline_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Resolve local $ref pointers and drop fields Gemini does not support."""
    defs = schema.get('$defs', {})

    def resolve(obj):
        if isinstance(obj, dict):
            ref = obj.get('$ref')
            if ref:
                return resolve(defs[ref.rsplit('/', 1)[-1]])
            return {k: resolve(v) for k, v in obj.items() if k not in GEMINI_UNSUPPORTED_FIELDS}
        if isinstance(obj, list):
            return [resolve(item) for item in obj]
        return obj

    return resolve(schema)


class ClaudeClient(Classifier):
    """Classifier backed by Anthropic's Claude API."""

    def __init__(self, api_key: Optional[str] = None, model: str = "claude-3-haiku-20240307", **kwargs):
        """Initialize Claude client.

        Args:
            api_key: Anthropic API key. If None, uses ANTHROPIC_API_KEY env var.
            model: Model name to use (default: claude-3-haiku-20240307)
        """
        self.model = model
        super().__init__(api_key, **kwargs)

    def _validate_api_key(self) -> None:
        key = self.api_key or os.getenv("ANTHROPIC_API_KEY")
        if not key:
            raise ModelUnavailableError("ANTHROPIC_API_KEY environment variable not set")
        self.api_key = key
        self.client = anthropic.Anthropic(api_key=key)

    def _get_model_name(self) -> str:
        return self.model

    def _call_api(self, image_b64: str) -> Tuple[Dict[str, Any], Dict[str, int]]:
        """Make API call to Claude, forcing the answer through a tool schema."""
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=MAX_OUTPUT_TOKENS,
                temperature=0.0,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "text",
                                "text": PROMPT_TEMPLATE
                            },
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": "image/jpeg",
                                    "data": image_b64
                                }
                            }
                        ]
                    }
                ],
                tools=[
                    {
                        "name": "image_classification",
                        "input_schema": RESPONSE_SCHEMA
                    }
                ],
                tool_choice={"type": "tool", "name": "image_classification"}
            )
        except anthropic.AnthropicError as err:
            logger.error("Claude API request failed: %s", err)
            raise ClassifierUnavailableError(f"Claude API error: {err}") from err

        block = response.content[0]
        result = block.input if block.type == "tool_use" else getattr(block, "text", "")

        usage = response.usage
        token_usage = {
            'input_tokens': usage.input_tokens,
            'output_tokens': usage.output_tokens,
            'total_tokens': usage.input_tokens + usage.output_tokens
        }
        return result, token_usage


class OpenAIClient(Classifier):
    """Classifier backed by OpenAI's GPT API."""

    def __init__(self, api_key: Optional[str] = None, model: str = "gpt-4o-mini", **kwargs):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key. If None, uses OPENAI_API_KEY env var.
            model: Model name to use (default: gpt-4o-mini)
        """
        self.model = model
        super().__init__(api_key, **kwargs)

    def _validate_api_key(self) -> None:
        key = self.api_key or os.getenv("OPENAI_API_KEY")
        if not key:
            raise ModelUnavailableError("OPENAI_API_KEY environment variable not set")
        self.api_key = key
        self.client = OpenAI(api_key=key)

    def _get_model_name(self) -> str:
        return self.model

    def _call_api(self, image_b64: str) -> Tuple[str, Dict[str, int]]:
        """Make API call to OpenAI with structured output."""
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "text",
                                "text": PROMPT_TEMPLATE
                            },
                            {
                                "type": "image_url",
                                "image_url": {
                                    "url": f"data:image/jpeg;base64,{image_b64}",
                                    "detail": "low"
                                }
                            }
                        ]
                    }
                ],
                max_completion_tokens=MAX_OUTPUT_TOKENS,
                response_format={
                    "type": "json_schema",
                    "json_schema": JSON_SCHEMA
                }
            )
        except OpenAIError as err:
            logger.error("OpenAI API request failed: %s", err)
            raise ClassifierUnavailableError(f"OpenAI API error: {err}") from err

        usage = response.usage
        token_usage = {
            'input_tokens': getattr(usage, 'prompt_tokens', None),
            'output_tokens': getattr(usage, 'completion_tokens', None),
            'total_tokens': getattr(usage, 'total_tokens', None)
        }
        return response.choices[0].message.content or "", token_usage


class GeminiClient(Classifier):
    """Classifier backed by Google's Gemini API."""

    def __init__(self, api_key: Optional[str] = None, model: str = "gemini-1.5-flash-8b", **kwargs):
        """Initialize Gemini client.

        Args:
            api_key: Google API key. If None, uses GOOGLE_API_KEY env var.
            model: Model name to use (default: gemini-1.5-flash-8b)
        """
        self.model = model
        self._generative_model = None
        super().__init__(api_key, **kwargs)

    def _validate_api_key(self) -> None:
        key = self.api_key or os.getenv("GOOGLE_API_KEY")
        if not key:
            raise ModelUnavailableError("GOOGLE_API_KEY environment variable not set")
        self.api_key = key
        genai.configure(api_key=key)

    def _get_model_name(self) -> str:
        return self.model

    def _get_generative_model(self):
        if self._generative_model is None:
            self._generative_model = genai.GenerativeModel(
                self.model,
                generation_config={
                    "temperature": 0.0,
                    "candidate_count": 1,
                    "max_output_tokens": MAX_OUTPUT_TOKENS,
                    "response_mime_type": "application/json",
                    "response_schema": inline_schema(RESPONSE_SCHEMA),
                }
            )
        return self._generative_model

    def _call_api(self, image_b64: str) -> Tuple[str, Dict[str, int]]:
        """Make API call to Gemini with structured output."""
        try:
            response = self._get_generative_model().generate_content([
                PROMPT_TEMPLATE,
                {
                    "mime_type": "image/jpeg",
                    "data": base64.b64decode(image_b64)
                }
            ])
            response_text = response.text.strip()
        except Exception as err:
            logger.error("Gemini API request failed: %s", err)
            raise ClassifierUnavailableError(f"Gemini API error: {err}") from err

        # Gemini doesn't report token usage here; ~4 characters per token
        input_tokens = len(PROMPT_TEMPLATE) // 4
        output_tokens = len(response_text) // 4
        token_usage = {
            'input_tokens': input_tokens,
            'output_tokens': output_tokens,
            'total_tokens': input_tokens + output_tokens
        }
        return response_text, token_usage


CLIENTS = {
    "claude": ClaudeClient,
    "openai": OpenAIClient,
    "gemini": GeminiClient,
}


def get_client(api_name: str, **kwargs) -> Classifier:
    """Factory function to create classifier instances.

    Args:
        api_name: Name of the API ('claude', 'openai', 'gemini')
        **kwargs: Additional arguments passed to the client constructor

    Returns:
        Configured classifier instance

    Raises:
        ValueError: Unknown API name.
        ModelUnavailableError: The backend could not be set up.
    """
    try:
        client_cls = CLIENTS[api_name.lower()]
    except KeyError:
        raise ValueError(f"Unsupported API: {api_name}") from None
    return client_cls(**kwargs)
