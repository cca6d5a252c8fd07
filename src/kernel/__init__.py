"""
Kernel layer

- Models for the designs and profiles tables
- Backend collaborators (Supabase REST, direct SQL)
- Error taxonomy shared by every layer
"""

from src.kernel.errors import (
    BackendUnavailable,
    DesignAdminError,
    InvalidStatus,
    InvalidTransition,
    NoRowsAffected,
    NotFound,
    PermissionDenied,
    SchemaMismatch,
)
from src.kernel.models import Design, DesignStatus, DesignType, Profile, ProfileRole

__all__ = [
    # Errors
    "DesignAdminError",
    "BackendUnavailable",
    "SchemaMismatch",
    "NotFound",
    "NoRowsAffected",
    "PermissionDenied",
    "InvalidTransition",
    "InvalidStatus",
    # Models
    "Design",
    "DesignStatus",
    "DesignType",
    "Profile",
    "ProfileRole",
]
