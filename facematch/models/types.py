"""Data models and type definitions"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
from pydantic import BaseModel
from typing_extensions import TypedDict


class Box(TypedDict):
    x: int
    y: int
    width: int
    height: int


class DetectedFace(TypedDict):
    box: Box
    landmarks: List[Tuple[int, int]]
    descriptor: np.ndarray


class MatchResult(TypedDict):
    distance: float
    isMatch: bool
    threshold: float


@dataclass
class DecodedImage:
    """RGB pixel buffer bounded to the configured maximum dimension."""
    pixels: np.ndarray
    width: int
    height: int


class CompareFacesRequest(BaseModel):
    image1: Optional[str] = None
    image2: Optional[str] = None
    threshold: Optional[float] = None


class FaceCounts(BaseModel):
    facesDetectedImage1: int
    facesDetectedImage2: int


class ComparisonResult(BaseModel):
    match: bool
    distance: float
    threshold: float
    message: str
    details: FaceCounts
