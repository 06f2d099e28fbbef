"""
Classifier backends.

This module provides a unified interface for the vision models used to score
images, through a shared Classifier base class and per-vendor clients.
"""

from .base import Classifier
from .clients import ClaudeClient, OpenAIClient, GeminiClient, get_client
from .prompt import PROMPT_TEMPLATE, CategoryScore, ClassificationResponse

__all__ = [
    "Classifier",
    "ClaudeClient",
    "OpenAIClient",
    "GeminiClient",
    "get_client",
    "PROMPT_TEMPLATE",
    "CategoryScore",
    "ClassificationResponse",
]
