"""Core face detection, matching and model lifecycle"""
from .face_detection import (
    FaceDetector,
    FaceDetectionError,
    ModelLoadError,
    NoFaceDetectedError,
    find_best_match
)
from .loader import ModelState, Phase, StartupResult, load_models

__all__ = [
    'FaceDetector',
    'FaceDetectionError',
    'ModelLoadError',
    'NoFaceDetectedError',
    'find_best_match',
    'ModelState',
    'Phase',
    'StartupResult',
    'load_models'
]
