"""FastAPI application factory.

Creates the app with CORS, routers, error handlers, and OpenAPI metadata.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.exceptions import (
    ResumeTunerError,
    InvalidRequestError,
    JobDescriptionError,
    RewriteConstraintError,
    GenerationFailedError,
)
from services.models import HealthResponse

from .routers import edit, estimate, requirements, rewrite, tune

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"
TEMPORARY_GENERATION_ERROR = "AI provider is temporarily unavailable. Please try again."

# Map service exceptions to HTTP status codes
EXCEPTION_STATUS_MAP = {
    InvalidRequestError: 400,
    JobDescriptionError: 422,
    RewriteConstraintError: 422,
    GenerationFailedError: 500,
}


def error_status(exc: ResumeTunerError) -> int:
    if isinstance(exc, GenerationFailedError) and exc.transient:
        return 503
    return EXCEPTION_STATUS_MAP.get(type(exc), 500)


def error_content(exc: ResumeTunerError) -> dict:
    """Client-facing body for a service error. Provider details stay in the logs."""
    if isinstance(exc, GenerationFailedError):
        if exc.transient:
            return {"detail": TEMPORARY_GENERATION_ERROR}
        return {"detail": f"{exc.operation} failed."}
    if isinstance(exc, RewriteConstraintError):
        return {"detail": exc.message, "violations": exc.violations}
    return {"detail": exc.message}


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Resume Tuner API starting")
        yield

    app = FastAPI(
        title="Resume Tuner API",
        description="Requirement-driven resume and cover letter tuning",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS - allow localhost on any port
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"https?://localhost(:\d+)?",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    prefix = "/api/v1"
    app.include_router(edit.router, prefix=prefix, tags=["Edit"])
    app.include_router(tune.router, prefix=prefix, tags=["Tune"])
    app.include_router(requirements.router, prefix=prefix, tags=["Requirements"])
    app.include_router(rewrite.router, prefix=prefix, tags=["Rewrite"])
    app.include_router(estimate.router, prefix=prefix, tags=["Estimate"])

    @app.exception_handler(ResumeTunerError)
    async def resume_tuner_error_handler(request: Request, exc: ResumeTunerError):
        status_code = error_status(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content=error_content(exc))

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health():
        return HealthResponse(version=API_VERSION)

    return app
