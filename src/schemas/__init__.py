"""
Pydantic schemas for backend records and API payloads.
"""

from src.schemas.common import ErrorResponse, HealthResponse
from src.schemas.design import (
    DesignRecord,
    DesignResponse,
    ProfileSummary,
    StatusBoard,
    StatusBoardResponse,
    StatusColumn,
    StatusTransitionRequest,
    TransitionAction,
)

__all__ = [
    # Common
    "ErrorResponse",
    "HealthResponse",
    # Design
    "DesignRecord",
    "DesignResponse",
    "ProfileSummary",
    "StatusBoard",
    "StatusBoardResponse",
    "StatusColumn",
    "StatusTransitionRequest",
    "TransitionAction",
]
