"""
FastAPI dependencies for the backend collaborator and the lifecycle manager.
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.config import get_settings
from src.kernel.backend.base import DesignBackend
from src.orchestration.lifecycle import SubmissionLifecycleManager


# Operator session token, forwarded to the backend
security = HTTPBearer(auto_error=False)


def get_backend(request: Request) -> DesignBackend:
    """Backend created at start-up (see src.main lifespan)."""
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Backend not configured",
        )
    return backend


async def get_lifecycle_manager(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    backend: Annotated[DesignBackend, Depends(get_backend)],
) -> SubmissionLifecycleManager:
    """Lifecycle manager acting for the caller's session when a bearer token is sent."""
    if credentials and credentials.credentials:
        backend = backend.bind(credentials.credentials)
    return SubmissionLifecycleManager.from_settings(backend, get_settings())


LifecycleManager = Annotated[SubmissionLifecycleManager, Depends(get_lifecycle_manager)]
