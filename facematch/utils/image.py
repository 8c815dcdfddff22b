"""Image source resolution.

This module turns an image descriptor string (embedded base64 data, an
``http(s)`` URL, or a local file path) into a decoded, size-bounded RGB
pixel buffer ready for face detection.
"""

import base64
import binascii
import enum
import logging
import re
from pathlib import Path
from typing import Optional

import cv2
import numpy as np
import requests
from fastapi.concurrency import run_in_threadpool

from ..models.types import DecodedImage

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:image"
DATA_URL_PATTERN = re.compile(r"^data:image/(png|jpeg|jpg);base64,")
URL_SAFE_ALPHABET = str.maketrans("-_", "+/")


class ImageResolveError(Exception):
    """Base exception for image resolution errors."""
    pass


class FetchError(ImageResolveError):
    """Exception raised when a remote image cannot be fetched."""
    pass


class ReadError(ImageResolveError):
    """Exception raised when a local image file cannot be read."""
    pass


class DecodeError(ImageResolveError):
    """Exception raised when image data cannot be decoded."""
    pass


class SourceKind(enum.Enum):
    DATA_URL = "data_url"
    URL = "url"
    PATH = "path"


def classify_source(source: str) -> SourceKind:
    """Classify an image descriptor, checking data URLs first, then URLs."""
    if source.startswith(DATA_URL_PREFIX):
        return SourceKind.DATA_URL
    if source.startswith("http://") or source.startswith("https://"):
        return SourceKind.URL
    return SourceKind.PATH


def decode_data_url(source: str) -> bytes:
    """Decode an embedded ``data:image/<type>;base64,`` string to bytes.

    Args:
        source: Data URL, e.g. ``"data:image/jpeg;base64,/9j/4AAQSkZ..."``.
            Unpadded and URL-safe payloads are accepted.

    Returns:
        Raw image file bytes.

    Raises:
        DecodeError: If the media type is unsupported or the payload is not
            valid base64.
    """
    prefix = DATA_URL_PATTERN.match(source)
    if prefix is None:
        raise DecodeError(
            "Unsupported embedded image data, expected data:image/(png|jpeg|jpg);base64,"
        )

    payload = "".join(source[prefix.end():].split()).rstrip("=")
    payload = payload.translate(URL_SAFE_ALPHABET)
    payload += "=" * (-len(payload) % 4)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Failed to decode base64 image data: {e}")


def fetch_url(url: str, timeout: Optional[float] = None) -> bytes:
    """Download an image over HTTP(S).

    Raises:
        FetchError: If the request fails or the response is not 2xx.
    """
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise FetchError(f"Failed to fetch image from URL: {e}")

    if not 200 <= response.status_code < 300:
        raise FetchError(f"Failed to fetch image from URL: {response.reason}")
    return response.content


def read_local_file(path: str) -> bytes:
    """Read an image file from the local filesystem.

    Raises:
        ReadError: If the file is missing or unreadable.
    """
    try:
        return Path(path).expanduser().resolve().read_bytes()
    except OSError as e:
        raise ReadError(f"Failed to read local image file: {e}")


def read_source_bytes(source: str, fetch_timeout: Optional[float] = None) -> bytes:
    """Return the raw bytes behind an image descriptor."""
    kind = classify_source(source)
    if kind is SourceKind.DATA_URL:
        return decode_data_url(source)
    if kind is SourceKind.URL:
        return fetch_url(source, timeout=fetch_timeout)
    return read_local_file(source)


def decode_image(image_bytes: bytes, max_dimension: int) -> DecodedImage:
    """Decode image bytes and bound the longest side to ``max_dimension``.

    Images already within the bound keep their size; larger ones are
    downscaled preserving aspect ratio.

    Args:
        image_bytes: Encoded image file contents (PNG, JPEG, ...).
        max_dimension: Maximum allowed width or height in pixels.

    Returns:
        Decoded RGB image.

    Raises:
        DecodeError: If the bytes cannot be read as an image.
    """
    nparr = np.frombuffer(image_bytes, np.uint8)
    image = cv2.imdecode(nparr, cv2.IMREAD_COLOR) if nparr.size else None
    if image is None:
        raise DecodeError("Failed to decode image data")

    height, width = image.shape[:2]
    longest = max(height, width)
    if longest > max_dimension:
        scale = max_dimension / longest
        width = max(1, round(width * scale))
        height = max(1, round(height * scale))
        image = cv2.resize(image, (width, height), interpolation=cv2.INTER_AREA)

    rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    return DecodedImage(pixels=rgb, width=width, height=height)


def resolve_image(source: str, max_dimension: int,
                  fetch_timeout: Optional[float] = None) -> DecodedImage:
    """Resolve an image descriptor into a decoded image (blocking)."""
    image_bytes = read_source_bytes(source, fetch_timeout=fetch_timeout)
    return decode_image(image_bytes, max_dimension)


async def load_image(source: str, max_dimension: int,
                     fetch_timeout: Optional[float] = None) -> DecodedImage:
    """Resolve an image descriptor without blocking the event loop."""
    logger.debug(f"Resolving {classify_source(source).value} image source")
    return await run_in_threadpool(resolve_image, source, max_dimension, fetch_timeout)
