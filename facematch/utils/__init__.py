"""Utility functions for image source resolution"""
from .image import (
    ImageResolveError,
    FetchError,
    ReadError,
    DecodeError,
    classify_source,
    decode_image,
    load_image,
    resolve_image
)

__all__ = [
    'ImageResolveError',
    'FetchError',
    'ReadError',
    'DecodeError',
    'classify_source',
    'decode_image',
    'load_image',
    'resolve_image'
]
