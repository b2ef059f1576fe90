"""
Main FastAPI application.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ieltsmock.api.v1.api import api_router
from ieltsmock.core.config import settings
from ieltsmock.core.error_responses import http_error_for
from ieltsmock.core.exceptions import ScoringEngineError
from ieltsmock.core.logging_config import setup_logging
from ieltsmock.observability import metrics

# Initialize logging configuration at startup
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan event handler.

    - On startup: creates the metric instruments
    - On shutdown: logs the shutdown
    """
    metrics.initialize()
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} started ({settings.ENV})")

    yield

    logger.info(f"{settings.APP_NAME} shutting down")


tags_metadata = [
    {
        "name": "health",
        "description": "Health check and status endpoints",
    },
    {
        "name": "sessions",
        "description": "Test session lifecycle: start, save, submit and grade",
    },
    {
        "name": "results",
        "description": "Materialized assignment results and overall bands",
    },
]


def create_application() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan,
        description=(
            "**IELTS Mock Exam API** - scoring and band aggregation for "
            "mock IELTS tests.\n\n"
            "This API provides:\n"
            "* Test session lifecycle (start, save progress, submit)\n"
            "* Automatic Listening/Reading band conversion\n"
            "* Instructor grading for Writing/Speaking\n"
            "* Overall band results per assignment"
        ),
        docs_url=f"{settings.API_V1_PREFIX}/docs",
        redoc_url=f"{settings.API_V1_PREFIX}/redoc",
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        openapi_tags=tags_metadata,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    # Include API router
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.exception_handler(ScoringEngineError)
    async def scoring_engine_exception_handler(
        request: Request, exc: ScoringEngineError
    ):
        """
        Map domain errors raised by the core onto HTTP responses.
        """
        http_error = http_error_for(exc)
        error_type = exc.__class__.__name__

        logger.info(
            f"{error_type} on {request.method} {request.url.path}: {exc.message}",
            extra={
                "method": request.method,
                "path": str(request.url.path),
                "status_code": http_error.status_code,
            },
        )
        metrics.record_error(error_type, path=str(request.url.path))

        return JSONResponse(
            status_code=http_error.status_code,
            content={"detail": http_error.detail},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Handle HTTP exceptions and count server-side ones.
        """
        if exc.status_code >= 500:
            metrics.record_error("HTTPException", path=str(request.url.path))

        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        """
        Handle request validation errors.
        """
        # Convert errors to serializable format
        errors = []
        for error in exc.errors():
            error_dict = {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
            }
            errors.append(error_dict)

        metrics.record_error("ValidationError", path=str(request.url.path))

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": errors},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """
        Handle unexpected exceptions.

        Generates a unique error_id (UUID) for each exception so a response
        can be matched to its log entry.
        """
        error_id = str(uuid.uuid4())

        logger.exception(
            f"Unhandled exception [error_id={error_id}]: {exc}",
            extra={
                "error_id": error_id,
                "method": request.method,
                "path": str(request.url.path),
            },
        )
        metrics.record_error(exc.__class__.__name__, path=str(request.url.path))

        # Return error response with tracking ID (don't leak internal details)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "error_id": error_id,
            },
        )

    return app


app = create_application()


@app.get("/")
async def root():
    """
    Root endpoint.
    """
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": f"{settings.API_V1_PREFIX}/docs",
    }
