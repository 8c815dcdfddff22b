"""Face comparison API routes.

This module provides the liveness probe and the face comparison endpoint,
resolving both image sources, running face detection on each and reporting
whether the closest pair of faces is within the distance threshold.
"""

import json
import logging
from typing import Union

from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from ..config import Settings
from ..core.face_detection import find_best_match
from ..core.loader import ModelState
from ..models.types import CompareFacesRequest, ComparisonResult, FaceCounts
from ..utils.image import load_image

logger = logging.getLogger(__name__)

MODELS_LOADING_MESSAGE = "Models are still loading. Please try again shortly."
MISSING_IMAGES_MESSAGE = (
    "Please provide both image1 and image2 in the request body. "
    "These can be URLs, local paths, or Base64 strings."
)
NO_FACE_MESSAGE = "Could not detect faces in one or both images."
FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

router = APIRouter()


def get_model_state(request: Request) -> ModelState:
    return request.app.state.model_state


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def parse_compare_request(request: Request) -> CompareFacesRequest:
    """Read a JSON or form-encoded comparison body.

    Raises:
        RequestValidationError: If the body is not valid JSON or does not
            fit ``CompareFacesRequest``.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        data = dict(form.items())
    else:
        raw = await request.body()
        try:
            data = json.loads(raw) if raw else None
        except ValueError as e:
            raise RequestValidationError(
                [{'type': 'json_invalid', 'loc': ('body',), 'msg': f"JSON decode error: {e}"}]
            )

    try:
        return CompareFacesRequest.model_validate(data if data is not None else {})
    except ValidationError as e:
        errors = [{**error, 'loc': ('body', *error['loc'])} for error in e.errors()]
        raise RequestValidationError(errors, body=data)


@router.get("/", response_class=PlainTextResponse)
async def index() -> str:
    return "Project is running"


@router.post("/compare-faces", response_model=ComparisonResult)
async def compare_faces(
    request_data: CompareFacesRequest = Depends(parse_compare_request),
    model_state: ModelState = Depends(get_model_state),
    settings: Settings = Depends(get_settings),
) -> Union[ComparisonResult, JSONResponse]:
    """Compare the faces found in two images.

    Args:
        request_data: JSON or form-encoded request body.
            - image1: Data URL, http(s) URL or local path of the first image
            - image2: Data URL, http(s) URL or local path of the second image
            - threshold: Optional distance threshold, defaults to settings

    Returns:
        Comparison result with the minimum face distance, or a JSON error:
            - 503 while models are loading
            - 400 when an image is missing or has no detectable face
            - 500 when an image cannot be resolved or processed
    """
    if not model_state.is_ready:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={'error': MODELS_LOADING_MESSAGE}
        )

    if not request_data.image1 or not request_data.image2:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={'error': MISSING_IMAGES_MESSAGE}
        )

    threshold = request_data.threshold
    if threshold is None:
        threshold = settings.default_threshold
    detector = model_state.detector

    try:
        image1 = await load_image(
            request_data.image1, settings.max_image_dimension, settings.fetch_timeout
        )
        image2 = await load_image(
            request_data.image2, settings.max_image_dimension, settings.fetch_timeout
        )

        faces1 = await run_in_threadpool(detector.process_image, image1)
        faces2 = await run_in_threadpool(detector.process_image, image2)

        logger.info(
            f"Detected {len(faces1)} faces in image 1 and {len(faces2)} faces in image 2."
        )
        details = FaceCounts(
            facesDetectedImage1=len(faces1),
            facesDetectedImage2=len(faces2)
        )

        if not faces1 or not faces2:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={
                    'match': False,
                    'message': NO_FACE_MESSAGE,
                    'details': details.model_dump()
                }
            )

        result = find_best_match(faces1, faces2, threshold)
        logger.info(
            f"Best distance {result['distance']:.4f} (threshold {threshold}), "
            f"match: {result['isMatch']}"
        )

        return ComparisonResult(
            match=result['isMatch'],
            distance=result['distance'],
            threshold=result['threshold'],
            message="Faces match!" if result['isMatch'] else "Faces do not match.",
            details=details
        )

    except Exception as e:
        logger.exception("Error during face comparison")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={'error': f"Internal server error during face comparison: {e}"}
        )
