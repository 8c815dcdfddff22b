"""Face detection and matching module.

This module wraps the pretrained dlib networks (face detector, 68-point
landmark predictor and ResNet descriptor model) behind a small detector
class, and finds the closest pair of faces between two images by the
Euclidean distance of their descriptors.
"""

import logging
import math
from typing import Any, List

import numpy as np

from ..models.types import Box, DecodedImage, DetectedFace, MatchResult

logger = logging.getLogger(__name__)


class FaceDetectionError(Exception):
    """Base exception for face detection errors."""
    pass


class NoFaceDetectedError(FaceDetectionError):
    """Exception raised when no face is detected in an image."""
    pass


class ModelLoadError(FaceDetectionError):
    """Exception raised when a pretrained model cannot be loaded."""
    pass


class FaceDetector:
    """Runs detection, landmark prediction and descriptor extraction."""

    def __init__(self, face_detector: Any, shape_predictor: Any, face_encoder: Any,
                 use_cnn: bool = True, upsample: int = 1, num_jitters: int = 1):
        """Wrap already loaded dlib models.

        Args:
            face_detector: ``dlib.cnn_face_detection_model_v1`` or a HOG
                ``dlib.fhog_object_detector``.
            shape_predictor: 68-point ``dlib.shape_predictor``.
            face_encoder: ``dlib.face_recognition_model_v1``.
            use_cnn: Whether ``face_detector`` returns mmod rectangles.
            upsample: Times to upsample the image before detection.
            num_jitters: Re-samples used when computing each descriptor.
        """
        self.face_detector = face_detector
        self.shape_predictor = shape_predictor
        self.face_encoder = face_encoder
        self.use_cnn = use_cnn
        self.upsample = upsample
        self.num_jitters = num_jitters

    def detect_faces(self, pixels: np.ndarray) -> list:
        """Return dlib rectangles for every face, in detector order."""
        detections = self.face_detector(pixels, self.upsample)
        if self.use_cnn:
            return [detection.rect for detection in detections]
        return list(detections)

    @staticmethod
    def rect_to_box(rect: Any, width: int, height: int) -> Box:
        """Convert an inclusive dlib rectangle to a box clipped to the image."""
        left = max(rect.left(), 0)
        top = max(rect.top(), 0)
        right = min(rect.right(), width - 1)
        bottom = min(rect.bottom(), height - 1)
        return {
            'x': int(left),
            'y': int(top),
            'width': int(max(right - left + 1, 0)),
            'height': int(max(bottom - top + 1, 0))
        }

    def process_image(self, image: DecodedImage) -> List[DetectedFace]:
        """Detect faces and compute their landmarks and descriptors.

        Args:
            image: Decoded RGB image.

        Returns:
            Detected faces, possibly empty.
        """
        results: List[DetectedFace] = []

        for rect in self.detect_faces(image.pixels):
            shape = self.shape_predictor(image.pixels, rect)
            descriptor = self.face_encoder.compute_face_descriptor(
                image.pixels, shape, self.num_jitters
            )
            results.append({
                'box': self.rect_to_box(rect, image.width, image.height),
                'landmarks': [(point.x, point.y) for point in shape.parts()],
                'descriptor': np.array(descriptor)
            })

        logger.debug(f"Found {len(results)} faces in {image.width}x{image.height} image")
        return results


def face_distance(known_descriptors: np.ndarray, descriptor: np.ndarray) -> np.ndarray:
    """Euclidean distance from one descriptor to each known descriptor."""
    if len(known_descriptors) == 0:
        return np.empty(0)
    return np.linalg.norm(known_descriptors - descriptor, axis=1)


def find_best_match(faces1: List[DetectedFace], faces2: List[DetectedFace],
                    threshold: float) -> MatchResult:
    """Find the closest pair of faces across two detections.

    Each face of the first image is matched to its nearest face in the second
    image; the smallest of those distances decides the result. Ties keep the
    first minimum found.

    Args:
        faces1: Faces detected in the first image.
        faces2: Faces detected in the second image.
        threshold: Distances strictly below this are a match.

    Returns:
        The minimum distance and whether it counts as a match.

    Raises:
        NoFaceDetectedError: If either collection is empty.
    """
    if not faces1 or not faces2:
        raise NoFaceDetectedError("Could not detect faces in one or both images.")

    known_descriptors = np.array([face['descriptor'] for face in faces2])

    best_distance = math.inf
    for face in faces1:
        distances = face_distance(known_descriptors, face['descriptor'])
        distance = float(np.min(distances))
        if distance < best_distance:
            best_distance = distance

    return {
        'distance': best_distance,
        'isMatch': bool(best_distance < threshold),
        'threshold': threshold
    }
