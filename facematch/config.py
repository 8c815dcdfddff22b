"""Service configuration.

Settings are read from the environment (optionally seeded from a ``.env``
file). Every value has a default so the service starts with no configuration.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DETECTOR_MODELS = ("cnn", "hog")


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 9857
    models_dir: str = "models"
    default_threshold: float = 0.6
    max_image_dimension: int = 512
    detector_model: str = "cnn"
    upsample: int = 1
    num_jitters: int = 1
    fetch_timeout: Optional[float] = None
    max_body_bytes: int = 50 * 1024 * 1024
    log_level: str = "INFO"


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or value.strip() == "":
        return None
    return float(value)


def get_settings() -> Settings:
    """Build settings from ``FACEMATCH_*`` environment variables.

    Raises:
        ValueError: If a numeric variable cannot be parsed or the detector
            model is unknown.
    """
    load_dotenv()
    defaults = Settings()

    detector_model = os.getenv("FACEMATCH_DETECTOR", defaults.detector_model).lower()
    if detector_model not in DETECTOR_MODELS:
        raise ValueError(
            f"FACEMATCH_DETECTOR must be one of {DETECTOR_MODELS}, got {detector_model!r}"
        )

    return Settings(
        host=os.getenv("FACEMATCH_HOST", defaults.host),
        port=int(os.getenv("FACEMATCH_PORT", defaults.port)),
        models_dir=os.getenv("FACEMATCH_MODELS_DIR", defaults.models_dir),
        default_threshold=float(
            os.getenv("FACEMATCH_DEFAULT_THRESHOLD", defaults.default_threshold)
        ),
        max_image_dimension=int(
            os.getenv("FACEMATCH_MAX_IMAGE_DIMENSION", defaults.max_image_dimension)
        ),
        detector_model=detector_model,
        upsample=int(os.getenv("FACEMATCH_UPSAMPLE", defaults.upsample)),
        num_jitters=int(os.getenv("FACEMATCH_NUM_JITTERS", defaults.num_jitters)),
        fetch_timeout=_optional_float(os.getenv("FACEMATCH_FETCH_TIMEOUT")),
        max_body_bytes=int(os.getenv("FACEMATCH_MAX_BODY_BYTES", defaults.max_body_bytes)),
        log_level=os.getenv("FACEMATCH_LOG_LEVEL", defaults.log_level).upper(),
    )
