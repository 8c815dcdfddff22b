"""Data models and type definitions"""
from .types import (
    Box,
    DetectedFace,
    MatchResult,
    DecodedImage,
    CompareFacesRequest,
    FaceCounts,
    ComparisonResult
)

__all__ = [
    'Box',
    'DetectedFace',
    'MatchResult',
    'DecodedImage',
    'CompareFacesRequest',
    'FaceCounts',
    'ComparisonResult'
]
