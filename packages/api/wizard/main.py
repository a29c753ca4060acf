# This project was developed with assistance from AI tools.
"""FastAPI application entry point."""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import settings
from .routes import health, wizard
from .schemas.error import ErrorResponse
from .services.data_source import ApplicationFetchError, close_data_source, init_data_source
from .services.storage import close_storage_backend, init_storage_backend

logger = logging.getLogger(__name__)


def log_startup_status() -> None:
    """Log which storage backend and data source are in use. Call at startup."""
    if settings.STORAGE_BACKEND == "disabled":
        logger.warning("Wizard storage: DISABLED (state travels in route parameters only)")
    else:
        logger.warning("Wizard storage: %s", settings.STORAGE_BACKEND.upper())
    logger.warning("URLA API: %s (timeout=%ss)", settings.URLA_API_URL, settings.URLA_API_TIMEOUT)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application startup/shutdown lifecycle."""
    log_startup_status()
    init_storage_backend(settings)
    init_data_source(settings)
    yield
    await close_data_source()
    close_storage_backend()


app = FastAPI(
    title="Application Wizard API",
    description="Progress resolution and per-tab state for the mortgage application wizard",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", settings.SESSION_HEADER],
)

_HTTP_STATUS_TITLES: dict[int, str] = {
    400: "Bad Request",
    404: "Not Found",
    409: "Conflict",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    502: "Bad Gateway",
}


def _build_error(
    request: Request,
    status_code: int,
    detail: str,
    application_id: str | None = None,
    retryable: bool = False,
) -> ErrorResponse:
    return ErrorResponse(
        type="about:blank",
        title=_HTTP_STATUS_TITLES.get(status_code, "Error"),
        status=status_code,
        detail=detail,
        request_id=request.headers.get("x-request-id", str(uuid.uuid4())),
        instance=request.url.path,
        application_id=application_id,
        retryable=retryable,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Convert HTTPException to RFC 7807 Problem Details."""
    body = _build_error(request, exc.status_code, str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert Pydantic validation errors to RFC 7807 Problem Details."""
    body = _build_error(request, 422, str(exc.errors()))
    return JSONResponse(status_code=422, content=body.model_dump())


@app.exception_handler(ApplicationFetchError)
async def fetch_error_handler(request: Request, exc: ApplicationFetchError):
    """The application API failed: show an error, never navigate."""
    body = _build_error(
        request,
        502,
        str(exc),
        application_id=exc.application_id or None,
        retryable=True,
    )
    return JSONResponse(status_code=502, content=body.model_dump())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all for unhandled exceptions -- log and return 500."""
    body = _build_error(request, 500, "An unexpected error occurred.")
    logger.exception("Unhandled exception (request_id=%s)", body.request_id)
    return JSONResponse(status_code=500, content=body.model_dump())


# Include routers
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(wizard.pages_router, tags=["pages"])
app.include_router(wizard.router, prefix="/api/wizard", tags=["wizard"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint"""
    return {"message": "Welcome to the Application Wizard API"}
