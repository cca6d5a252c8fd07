"""
SQLAlchemy models for the designs and profiles tables.
"""

from src.kernel.models.base import Base, TimestampMixin, generate_uuid
from src.kernel.models.profile import Profile, ProfileRole
from src.kernel.models.design import (
    Design,
    DesignStatus,
    DesignType,
    STATUS_TIMESTAMP_COLUMNS,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "generate_uuid",
    "Profile",
    "ProfileRole",
    "Design",
    "DesignStatus",
    "DesignType",
    "STATUS_TIMESTAMP_COLUMNS",
]
