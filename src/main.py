"""
Design Review Admin

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import Annotated, AsyncGenerator

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.deps import get_backend
from src.api.middleware.request_id import RequestIdMiddleware
from src.api.v1 import router as api_v1_router
from src.config import get_settings
from src.kernel.backend import DesignBackend, SqlBackend, create_backend
from src.kernel.errors import (
    BackendUnavailable,
    DesignAdminError,
    InvalidStatus,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    SchemaMismatch,
)
from src.logging_config import configure_logging, get_logger
from src.orchestration.lifecycle import SubmissionLifecycleManager
from src.schemas.common import HealthResponse

settings = get_settings()
logger = get_logger(__name__)

# Clients retrying after a 503 send their attempt count to get a longer backoff
RETRY_ATTEMPT_HEADER = "X-Retry-Attempt"

# Most specific first; NoRowsAffected is a NotFound
_ERROR_STATUS = (
    (InvalidStatus, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (PermissionDenied, status.HTTP_403_FORBIDDEN),
    (SchemaMismatch, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (BackendUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_code_for(exc: DesignAdminError) -> int:
    for error_type, code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Builds the backend collaborator once and closes it on shutdown.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )
    logger.info("Starting %s v%s (backend=%s)", settings.project_name, settings.version, settings.backend)

    backend = create_backend(settings)
    if isinstance(backend, SqlBackend):
        await backend.init_schema()
    app.state.backend = backend

    yield

    logger.info("Shutting down...")
    await backend.aclose()
    logger.info("Backend connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    Design Review Admin

    Review design submissions and move them through their lifecycle:
    pending -> accepted -> in development -> completed, with rejection
    from pending and rework loops back from later stages.
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Last added = outermost; CORS wraps everything so error responses carry it too
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _request_headers(request: Request) -> dict:
    req_id = getattr(request.state, "request_id", None)
    return {"X-Request-ID": req_id} if req_id else {}


def _retry_attempt(request: Request) -> int:
    """0-based attempt number the client reports in X-Retry-Attempt (0 when absent or malformed)."""
    try:
        return max(0, int(request.headers.get(RETRY_ATTEMPT_HEADER, "0")))
    except ValueError:
        return 0


@app.exception_handler(DesignAdminError)
async def design_admin_exception_handler(request: Request, exc: DesignAdminError):
    """Surface taxonomy errors with their displayable message."""
    code = status_code_for(exc)
    headers = _request_headers(request)
    if isinstance(exc, BackendUnavailable) and exc.retryable:
        delay = BackendUnavailable.retry_after(
            _retry_attempt(request),
            base=settings.retry_backoff_base_seconds,
            cap=settings.retry_backoff_max_seconds,
        )
        headers["Retry-After"] = str(max(1, int(delay)))
    if code >= 500:
        logger.warning("Request failed: %s", exc.message, extra={"error_code": exc.code})
    content = exc.to_dict()
    content["request_id"] = getattr(request.state, "request_id", None)
    return JSONResponse(status_code=code, content=content, headers=headers)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    content = {"detail": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=_request_headers(request))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
):
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation error", "errors": errors},
        headers=_request_headers(request),
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception,
):
    """Handle unexpected exceptions."""
    logger.exception("Unhandled exception: %s", exc)
    req_id = getattr(request.state, "request_id", None)
    if settings.debug:
        content = {"detail": str(exc), "type": type(exc).__name__, "request_id": req_id}
    else:
        content = {"detail": "Internal server error", "request_id": req_id}
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
        headers=_request_headers(request),
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(backend: Annotated[DesignBackend, Depends(get_backend)]):
    """Check application health and backend reachability."""
    backend_state = "connected"
    try:
        await SubmissionLifecycleManager(backend).check_connection()
    except DesignAdminError as exc:
        logger.warning("Backend health check failed: %s", exc)
        backend_state = "unavailable"
    return HealthResponse(
        status="ok" if backend_state == "connected" else "degraded",
        version=settings.version,
        backend=backend_state,
    )


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {
            "v1": settings.api_v1_prefix,
        },
    }


app.include_router(
    api_v1_router,
    prefix=settings.api_v1_prefix,
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
