"""
Backend collaborators: table read/write over Supabase or direct SQL.
"""

from src.config import Settings
from src.kernel.backend.base import (
    DESIGNS_TABLE,
    OWNER_EMBED,
    PROFILES_TABLE,
    REVIEWER_EMBED,
    DesignBackend,
    Embed,
)
from src.kernel.backend.postgrest import PostgrestBackend
from src.kernel.backend.sql import SqlBackend


def create_backend(settings: Settings) -> DesignBackend:
    """Build the backend named by settings.backend."""
    if settings.backend == "sql":
        return SqlBackend.from_settings(settings)
    return PostgrestBackend.from_settings(settings)


__all__ = [
    "DESIGNS_TABLE",
    "PROFILES_TABLE",
    "OWNER_EMBED",
    "REVIEWER_EMBED",
    "DesignBackend",
    "Embed",
    "PostgrestBackend",
    "SqlBackend",
    "create_backend",
]
