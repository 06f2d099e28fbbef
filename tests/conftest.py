"""Shared fixtures: an in-process classifier and image helpers."""

import json
import threading
import time
from pathlib import Path
from typing import Dict, Optional, Union

import pytest
from PIL import Image

from nsfw_scanner.api import Classifier
from nsfw_scanner.errors import DecodeError

Score = Union[float, Exception, dict]


class FakeClassifier(Classifier):
    """Classifier double keyed by the bitmap it receives.

    `scores` maps bitmap -> NSFW confidence, an exception to raise, or a raw
    response dict. `delays` maps bitmap -> seconds to sleep before answering.
    """

    def __init__(self, scores: Optional[Dict[str, Score]] = None, default: Optional[Score] = None,
                 delays: Optional[Dict[str, float]] = None, gate: Optional[threading.Event] = None,
                 **kwargs):
        self.scores = dict(scores or {})
        self.default = default
        self.delays = dict(delays or {})
        self.gate = gate
        self.calls = []
        self._lock = threading.Lock()
        self.in_flight = 0
        self.max_in_flight = 0
        super().__init__(**kwargs)

    def _validate_api_key(self) -> None:
        pass

    def _get_model_name(self) -> str:
        return "fake-model"

    def _call_api(self, image_b64: str):
        with self._lock:
            self.calls.append(image_b64)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                self.gate.wait(timeout=5)
            time.sleep(self.delays.get(image_b64, 0.0))
            score = self.scores.get(image_b64, self.default)
            if isinstance(score, Exception):
                raise score
            if isinstance(score, dict):
                return score, {}
            response = {"categories": [
                {"label": "SFW", "confidence": round(1.0 - score, 4)},
                {"label": "NSFW", "confidence": score},
            ]}
            return json.dumps(response), {"input_tokens": 1, "output_tokens": 1, "total_tokens": 2}
        finally:
            with self._lock:
                self.in_flight -= 1


def name_decoder(path) -> str:
    """Decoder double: the 'bitmap' is the file name, missing files fail."""
    path = Path(path)
    if not path.exists():
        raise DecodeError(path, "missing")
    return path.name


def make_png(path: Path, color=(200, 30, 30), size=(16, 12)) -> Path:
    Image.new("RGB", size, color).save(path, format="PNG")
    return path


@pytest.fixture
def image_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "images"
    directory.mkdir()
    return directory
