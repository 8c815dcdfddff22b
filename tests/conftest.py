from __future__ import annotations

import base64
from typing import Dict, List

import cv2
import numpy as np
import pytest

from facematch.config import Settings
from facematch.models.types import DecodedImage, DetectedFace


def encode_image(width: int, height: int, ext: str = ".png") -> bytes:
    pixels = np.full((height, width, 3), 128, dtype=np.uint8)
    ok, buf = cv2.imencode(ext, pixels)
    assert ok
    return buf.tobytes()


def data_url(width: int, height: int, media: str = "png") -> str:
    ext = ".jpg" if media in ("jpeg", "jpg") else ".png"
    payload = base64.b64encode(encode_image(width, height, ext)).decode("ascii")
    return f"data:image/{media};base64,{payload}"


def make_face(descriptor) -> DetectedFace:
    return {
        'box': {'x': 0, 'y': 0, 'width': 10, 'height': 10},
        'landmarks': [(1, 1)] * 68,
        'descriptor': np.asarray(descriptor, dtype=np.float64),
    }


class FakeDetector:
    """Returns canned faces keyed by decoded image width."""

    def __init__(self, faces_by_width: Dict[int, List[DetectedFace]]):
        self.faces_by_width = faces_by_width
        self.calls = 0

    def process_image(self, image: DecodedImage) -> List[DetectedFace]:
        self.calls += 1
        return self.faces_by_width.get(image.width, [])


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(models_dir=str(tmp_path / "models"))
