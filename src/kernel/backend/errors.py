"""
Translate backend failures into the lifecycle error taxonomy.

Structured codes (PostgREST PGRST* codes, PostgreSQL SQLSTATE, HTTP status)
decide first. Message inspection is a last resort, kept here so business
logic never looks at error text.
"""

import re
from typing import Any, Dict, Optional, Tuple

import httpx
from sqlalchemy import exc as sa_exc

from src.kernel.errors import (
    BackendUnavailable,
    DesignAdminError,
    NoRowsAffected,
    PermissionDenied,
    SchemaMismatch,
)

# insufficient_privilege, JWT invalid / expired
PERMISSION_CODES = frozenset({"42501", "PGRST301", "PGRST302", "PGRST303"})
# undefined_table, undefined_column, missing relationship / column / table in schema cache
SCHEMA_CODES = frozenset({"42P01", "42703", "PGRST200", "PGRST201", "PGRST204", "PGRST205"})
# singular response with no rows, malformed id
NO_ROWS_CODES = frozenset({"PGRST116", "22P02"})

_PERMISSION_TEXT = re.compile(r"row[- ]level security|\bRLS\b|\bpermission\b", re.IGNORECASE)
_SCHEMA_TEXT = re.compile(
    r"no such (table|column)|does not exist|undefined (table|column)|could not find",
    re.IGNORECASE,
)


def _extract(payload: Any) -> Tuple[Optional[str], str]:
    if isinstance(payload, dict):
        code = payload.get("code")
        message = payload.get("message") or payload.get("msg") or payload.get("error_description") or payload.get("error") or ""
        return (str(code) if code is not None else None), str(message)
    if payload is None:
        return None, ""
    return None, str(payload)


def looks_like_permission_error(message: str) -> bool:
    """Heuristic used only when the backend gave no structured code."""
    return bool(message) and bool(_PERMISSION_TEXT.search(message))


def classify_postgrest_error(status_code: int, payload: Any) -> DesignAdminError:
    """Map a PostgREST / GoTrue error response to a taxonomy error."""
    code, message = _extract(payload)
    message = message or f"HTTP {status_code}"
    details: Dict[str, Any] = {"status_code": status_code, "code": code}

    if code in PERMISSION_CODES:
        return PermissionDenied(f"Permission denied: {message}", details=details)
    if code in SCHEMA_CODES:
        return SchemaMismatch(f"Schema mismatch: {message}", details=details)
    if code in NO_ROWS_CODES:
        return NoRowsAffected(f"No rows matched: {message}", details=details)

    if status_code in (401, 403):
        return PermissionDenied(f"Permission denied: {message}", details=details)
    if status_code == 404:
        return SchemaMismatch(f"Schema mismatch: {message}", details=details)
    if status_code >= 500 or status_code == 429:
        return BackendUnavailable(f"Backend error: {message}", details=details)

    if code is None and looks_like_permission_error(message):
        return PermissionDenied(f"Permission denied: {message}", details=details)

    # Rejected query; resending it unchanged will not help
    return BackendUnavailable(
        f"Query failed: {message} (Code: {code or 'unknown'})",
        details=details,
        retryable=False,
    )


def classify_transport_error(exc: httpx.HTTPError) -> BackendUnavailable:
    """Connection, timeout and protocol failures are all transient."""
    return BackendUnavailable(
        f"Backend unreachable: {exc.__class__.__name__}: {exc}",
        details={"error": exc.__class__.__name__},
    )


def classify_sqlalchemy_error(exc: Exception) -> DesignAdminError:
    """Map a SQLAlchemy / DBAPI failure to a taxonomy error."""
    if isinstance(exc, sa_exc.NoSuchTableError):
        return SchemaMismatch(f"Schema mismatch: table {exc} not found")

    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    message = str(orig) if orig is not None else str(exc)
    details: Dict[str, Any] = {"error": exc.__class__.__name__, "code": sqlstate}

    if sqlstate in PERMISSION_CODES:
        return PermissionDenied(f"Permission denied: {message}", details=details)
    if sqlstate in SCHEMA_CODES:
        return SchemaMismatch(f"Schema mismatch: {message}", details=details)

    if isinstance(exc, (sa_exc.OperationalError, sa_exc.ProgrammingError)) and _SCHEMA_TEXT.search(message):
        return SchemaMismatch(f"Schema mismatch: {message}", details=details)
    if isinstance(exc, sa_exc.ProgrammingError) and looks_like_permission_error(message):
        return PermissionDenied(f"Permission denied: {message}", details=details)
    if isinstance(exc, sa_exc.IntegrityError):
        return BackendUnavailable(f"Query failed: {message}", details=details, retryable=False)
    if isinstance(exc, (sa_exc.OperationalError, sa_exc.InterfaceError, OSError)):
        return BackendUnavailable(f"Database unavailable: {message}", details=details)
    return BackendUnavailable(f"Query failed: {message}", details=details, retryable=False)
