import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.middleware import BodySizeLimitMiddleware
from .api.routes import MISSING_IMAGES_MESSAGE, MODELS_LOADING_MESSAGE, router
from .config import Settings, get_settings
from .core.loader import ModelState, load_models

logger = logging.getLogger(__name__)

IMAGE_FIELDS = ("image1", "image2")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%d-%m %H:%M:%S %z",
    )


def create_app(settings: Optional[Settings] = None,
               model_state: Optional[ModelState] = None) -> FastAPI:
    """Build the FastAPI application.

    If ``model_state`` is not ready, models are loaded during the lifespan
    startup and a load failure aborts startup.
    """
    settings = settings or get_settings()
    model_state = model_state or ModelState()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not model_state.is_ready:
            result = await run_in_threadpool(load_models, settings)
            if not result.ok:
                raise result.error
            model_state.mark_ready(result.detector)
        yield

    # Initialize FastAPI app
    app = FastAPI(title="Face match", lifespan=lifespan)
    app.state.settings = settings
    app.state.model_state = model_state

    # Enable CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_body_bytes)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        if not model_state.is_ready:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={'error': MODELS_LOADING_MESSAGE}
            )

        body = exc.body if isinstance(exc.body, dict) else {}
        if not all(body.get(field) for field in IMAGE_FIELDS):
            message = MISSING_IMAGES_MESSAGE
        else:
            message = "Invalid request body: " + "; ".join(
                f"{'.'.join(map(str, error.get('loc', ())))}: {error.get('msg')}"
                for error in exc.errors()
            )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={'error': message}
        )

    # Mount routes
    app.include_router(router)
    return app


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)

    result = load_models(settings)
    if not result.ok:
        logger.critical(f"Failed to load models: {result.error}")
        sys.exit(1)

    app = create_app(settings, ModelState.ready(result.detector))

    logger.info(f"Face match app listening at http://{settings.host}:{settings.port}")
    logger.info(
        f"Send POST request to http://localhost:{settings.port}/compare-faces "
        "with image1 and image2 in body."
    )

    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
