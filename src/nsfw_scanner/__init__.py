"""
NSFW Scanner

Scan a folder of images with a vision classifier and review the most likely
NSFW files first.
"""

__version__ = "0.1.0"

# Allow loading slightly truncated/corrupt images across the package
from PIL import ImageFile
ImageFile.LOAD_TRUNCATED_IMAGES = True

from .config import ScannerConfig
from .core import (
    BatchScanner,
    ClassificationResult,
    ImageDecoder,
    ResultAggregator,
    ScanReport,
    ScanSession,
    ScanState,
)
from .api import Classifier, ClaudeClient, OpenAIClient, GeminiClient, get_client


__all__ = [
    "ScannerConfig",
    "BatchScanner",
    "ClassificationResult",
    "ImageDecoder",
    "ResultAggregator",
    "ScanReport",
    "ScanSession",
    "ScanState",
    "Classifier",
    "ClaudeClient",
    "OpenAIClient",
    "GeminiClient",
    "get_client",
]
