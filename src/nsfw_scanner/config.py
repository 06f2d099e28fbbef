"""
Defaults and the scan configuration object.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

# File name suffixes treated as images. Matched with str.endswith, so "png"
# also accepts "photo.png" but not "photo.PNG" unless case_sensitive is off.
DEFAULT_SUFFIXES: Tuple[str, ...] = ("png",)
ALL_IMAGE_SUFFIXES: Tuple[str, ...] = (".png", ".jpg", ".jpeg", ".heic", ".heif", ".webp", ".bmp", ".gif")

# Category label whose score is reported as the confidence
DEFAULT_FLAGGED_LABEL = "NSFW"

# Square edge, in pixels, of the bitmap sent to the classifier
DEFAULT_IMAGE_SIZE = 512

# Seconds to wait for a single classification before giving up on it
DEFAULT_TIMEOUT = 60.0

# 1 means no retry
DEFAULT_MAX_ATTEMPTS = 1
DEFAULT_RETRY_BACKOFF = 1.0

# Confidence at or above which the CLI highlights (and may delete) a file
DEFAULT_THRESHOLD = 0.5

SUPPORTED_APIS = ("claude", "openai", "gemini")
DEFAULT_API = "gemini"


@dataclass(frozen=True)
class ScannerConfig:
    """Settings for one BatchScanner.

    Attributes:
        suffixes: File name suffixes that mark an entry as an image.
        case_sensitive: Compare suffixes exactly (the default) or case-folded.
        max_concurrent: Cap on in-flight classifications. None means every
            eligible file is submitted at once.
        timeout: Per-classification timeout in seconds. None disables it.
        max_attempts: Attempts per image for transient classifier failures.
        retry_backoff: Multiplier for the exponential wait between attempts.
        image_size: Target square size for the decoded bitmap.
        flagged_label: Category whose score becomes the result confidence.
    """

    suffixes: Tuple[str, ...] = field(default=DEFAULT_SUFFIXES)
    case_sensitive: bool = True
    max_concurrent: Optional[int] = None
    timeout: Optional[float] = DEFAULT_TIMEOUT
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_backoff: float = DEFAULT_RETRY_BACKOFF
    image_size: int = DEFAULT_IMAGE_SIZE
    flagged_label: str = DEFAULT_FLAGGED_LABEL

    def __post_init__(self) -> None:
        if not self.suffixes:
            raise ValueError("at least one suffix is required")
        if self.max_concurrent is not None and self.max_concurrent < 1:
            raise ValueError("max_concurrent must be positive or None")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive or None")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        # accept any iterable of suffixes but store a tuple
        object.__setattr__(self, "suffixes", tuple(self.suffixes))

    def accepts(self, filename: str) -> bool:
        """Return True if `filename` ends with one of the configured suffixes."""
        if self.case_sensitive:
            return filename.endswith(self.suffixes)
        lowered = filename.lower()
        return any(lowered.endswith(s.lower()) for s in self.suffixes)
