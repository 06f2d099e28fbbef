"""
Exception types raised across the scanner.

Only ModelUnavailableError is fatal. Everything else is local to a single
image or a single caller request.
"""

from pathlib import Path
from typing import Optional


class ScannerError(Exception):
    """Base class for all scanner errors."""


class ModelUnavailableError(ScannerError):
    """The classifier backend could not be constructed."""


class DecodeError(ScannerError):
    """An image file could not be turned into a bitmap."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not decode {path}: {reason}")


class ClassificationError(ScannerError):
    """A single classification call failed."""


class ClassifierUnavailableError(ClassificationError):
    """The backend did not answer. Worth retrying."""


class InvalidModelOutputError(ClassificationError):
    """The backend answered with something that is not a category score set."""


class NoFlaggedLabelError(ClassificationError):
    """The category score set has no entry for the flagged label."""

    def __init__(self, label: str, labels: Optional[list] = None):
        self.label = label
        self.labels = list(labels or [])
        seen = ", ".join(self.labels) or "none"
        super().__init__(f"Detection failed: no {label} observation found (got: {seen})")


class ScanInProgressError(ScannerError):
    """start() was called while the session is already scanning."""


class DeleteError(ScannerError):
    """A flagged file could not be removed from disk."""

    def __init__(self, filename: str, cause: OSError):
        self.filename = filename
        self.cause = cause
        super().__init__(f"Failed to delete {filename}: {cause}")
