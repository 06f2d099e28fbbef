"""
image_decoder.py: Turn an image file into the bitmap handed to the classifier.

The bitmap is the image resized to approximate a square of `size` pixels per
side (aspect ratio preserved), converted to RGB and re-encoded as a base64 JPEG
string, which is what every classifier backend accepts.

Supports whatever Pillow can open; HEIC/HEIF when pillow-heif is installed.
"""

import base64
import io
from math import sqrt
from pathlib import Path
from typing import Union

try:
    from pillow_heif import register_heif_opener
    register_heif_opener()
except ImportError:
    pass

from PIL import Image, UnidentifiedImageError

from ..config import DEFAULT_IMAGE_SIZE
from ..errors import DecodeError
from ..utils.log_utils import get_logger

logger = get_logger(__name__)


def target_dimensions(width: int, height: int, size: int) -> tuple[int, int]:
    """Return (w, h) with roughly size*size pixels, the short side a multiple of 32."""
    aspect_ratio = width / height
    new_w, new_h = sqrt(size**2 * aspect_ratio), sqrt(size**2 / aspect_ratio)

    smaller_side = max(32, int(round(min(new_w, new_h) / 32) * 32))
    if new_w < new_h:
        return smaller_side, max(1, int(round(smaller_side / aspect_ratio)))
    return max(1, int(round(smaller_side * aspect_ratio))), smaller_side


def encode_image(img: Image.Image, size: int) -> str:
    """Resize an open image and return it as a base64-encoded JPEG."""
    w, h = img.size
    new_w, new_h = target_dimensions(w, h, size)
    img_resized = img.resize((new_w, new_h), resample=Image.Resampling.LANCZOS)
    if img_resized.mode != "RGB":
        img_resized = img_resized.convert("RGB")
    buffer = io.BytesIO()
    img_resized.save(buffer, format="JPEG")
    return base64.b64encode(buffer.getvalue()).decode("utf-8")


class ImageDecoder:
    """Decodes image files into classifier input."""

    def __init__(self, size: int = DEFAULT_IMAGE_SIZE):
        self.size = size

    def decode(self, path: Union[str, Path]) -> str:
        """Open `path`, fully decode it, and return the base64 JPEG bitmap.

        Raises:
            DecodeError: The file is missing, unreadable, or not an image.
        """
        path = Path(path)
        try:
            with Image.open(path) as img:
                img.load()
                w, h = img.size
                if w == 0 or h == 0:
                    raise DecodeError(path, "image has no pixels")
                return encode_image(img, self.size)
        except DecodeError:
            raise
        except (OSError, UnidentifiedImageError, ValueError, Image.DecompressionBombError) as err:
            raise DecodeError(path, str(err)) from err

    __call__ = decode
