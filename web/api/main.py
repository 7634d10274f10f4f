"""
Main FastAPI application for the Document Repository service.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from docstore import (
    AlreadyCommitted,
    AlreadyExists,
    CachedRepository,
    MalformedRequest,
    MalformedResponse,
    Repository,
    RepositoryError,
    TransportFailure,
)

from .models import HealthStatus, ServiceInfo
from .routes import (
    citations_router,
    documents_router,
    drafts_router,
    queues_router,
    types_router,
)
from ..core.config import get_settings
from ..core.repository import close_repository, get_repository


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"

# Status codes for repository errors, most specific class first
ERROR_STATUS = (
    (AlreadyExists, status.HTTP_409_CONFLICT),
    (AlreadyCommitted, status.HTTP_409_CONFLICT),
    (MalformedRequest, status.HTTP_400_BAD_REQUEST),
    (MalformedResponse, status.HTTP_502_BAD_GATEWAY),
    (TransportFailure, status.HTTP_502_BAD_GATEWAY),
)


# Lifespan context manager for startup/shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles:
    - Log level and repository setup on startup
    - Closing the repository on shutdown
    """
    # Startup
    logger.info("Starting Document Repository API...")
    try:
        settings = get_settings()
        logging.getLogger().setLevel(settings.log_level)
        repository = get_repository()
        logger.info(f"Repository ready at {repository.location}")
    except Exception as e:
        logger.error(f"Failed to configure repository: {e}")
        raise

    yield

    # Shutdown
    logger.info("Shutting down Document Repository API...")
    await close_repository()


# Create FastAPI app
app = FastAPI(
    title="Document Repository API",
    description="Write-once citations, documents and types, mutable drafts, and message queues",
    version=API_VERSION,
    lifespan=lifespan
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log all requests with timing information.

    Logs:
    - HTTP method and path
    - Client IP
    - Response status code
    - Request duration
    """
    start_time = time.time()

    logger.info(
        f"Request: {request.method} {request.url.path} "
        f"from {request.client.host if request.client else 'unknown'}"
    )

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"Request failed: {e}")
        raise

    duration = time.time() - start_time
    logger.info(
        f"Response: {response.status_code} "
        f"for {request.method} {request.url.path} "
        f"({duration:.3f}s)"
    )

    return response


def error_response(request: Request, code: int, message: str) -> JSONResponse:
    """Build the JSON error envelope shared by all handlers."""
    return JSONResponse(
        status_code=code,
        content={
            "error": {
                "code": code,
                "message": message,
                "path": str(request.url.path)
            }
        }
    )


# Error handlers
@app.exception_handler(RepositoryError)
async def repository_exception_handler(request: Request, exc: RepositoryError):
    """
    Translate repository errors into HTTP status codes.

    Returns:
        JSON response with error details
    """
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_class, error_status in ERROR_STATUS:
        if isinstance(exc, error_class):
            code = error_status
            break

    if code >= 500:
        logger.error(f"{type(exc).__name__} for {request.method} {request.url.path}: {exc}")
    else:
        logger.warning(f"{type(exc).__name__} for {request.method} {request.url.path}: {exc}")

    return error_response(request, code, str(exc))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handle HTTP exceptions with consistent JSON response format.

    Returns:
        JSON response with error details
    """
    logger.warning(
        f"HTTP {exc.status_code}: {exc.detail} "
        f"for {request.method} {request.url.path}"
    )
    return error_response(request, exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle request validation errors with detailed error messages.

    Returns:
        JSON response with validation error details
    """
    logger.warning(
        f"Validation error for {request.method} {request.url.path}: {exc.errors()}"
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "code": 422,
                "message": "Validation error",
                "details": exc.errors(),
                "path": str(request.url.path)
            }
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Handle unexpected exceptions with generic error response.

    Returns:
        JSON response with generic error message
    """
    logger.error(
        f"Unhandled exception for {request.method} {request.url.path}: {exc}",
        exc_info=True
    )
    return error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


app.include_router(citations_router)
app.include_router(drafts_router)
app.include_router(documents_router)
app.include_router(types_router)
app.include_router(queues_router)


@app.get("/", response_model=ServiceInfo)
async def root():
    """Root endpoint - service identification."""
    return ServiceInfo(service="Document Repository API", version=API_VERSION)


@app.get("/health", response_model=HealthStatus)
async def health(repository: Repository = Depends(get_repository)):
    """Health check endpoint."""
    caches = repository.stats() if isinstance(repository, CachedRepository) else None
    return HealthStatus(location=repository.location, caches=caches)
