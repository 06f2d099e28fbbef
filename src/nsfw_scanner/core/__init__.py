"""
Core functionality for image scanning and classification.
"""

from .scan_engine import BatchScanner, ScanReport, ItemFailure
from .results import ClassificationResult, ResultAggregator
from .image_decoder import ImageDecoder
from .session import ScanSession, ScanState
from .workers import AsyncWorkerPool, ItemOutcome, OutcomeKind

__all__ = [
    "BatchScanner",
    "ScanReport",
    "ItemFailure",
    "ClassificationResult",
    "ResultAggregator",
    "ImageDecoder",
    "ScanSession",
    "ScanState",
    "AsyncWorkerPool",
    "ItemOutcome",
    "OutcomeKind",
]
