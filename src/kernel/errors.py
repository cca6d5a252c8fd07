"""
Error taxonomy for the design lifecycle.

Every failure surfaces to the caller as one of these; none are retried
inside the core. `retryable` tells the caller whether re-invoking can help.
"""

from typing import Any, Dict, Optional


class DesignAdminError(Exception):
    """Base class for lifecycle and backend failures."""

    code = "design_admin_error"
    retryable = False

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        retryable: Optional[bool] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if retryable is not None:
            self.retryable = retryable

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detail": self.message,
            "code": self.code,
            "retryable": self.retryable,
        }


class BackendUnavailable(DesignAdminError):
    """Connectivity or query-execution failure."""

    code = "backend_unavailable"
    retryable = True

    @staticmethod
    def retry_after(attempt: int, base: float = 1.0, cap: float = 30.0) -> float:
        """Exponential backoff hint for the caller's next attempt (0-based)."""
        # Exponent clamped so huge attempt counts cannot overflow a float
        return min(cap, base * (2 ** min(max(attempt, 0), 32)))


class SchemaMismatch(DesignAdminError):
    """Expected table, column or relationship is missing, or a row does not fit."""

    code = "schema_mismatch"


class NotFound(DesignAdminError):
    """No design matches the given id."""

    code = "not_found"


class NoRowsAffected(NotFound):
    """
    A write matched nothing.

    The backend cannot tell "does not exist" from "filtered out by access
    policy" here, so callers should read this as "could not confirm update".
    """

    code = "no_rows_affected"


class PermissionDenied(DesignAdminError):
    """The backend's access policy rejected the operation."""

    code = "permission_denied"


class InvalidTransition(DesignAdminError):
    """Target status is not reachable from the current one."""

    code = "invalid_transition"

    def __init__(self, from_status: str, to_status: str):
        super().__init__(
            f"Invalid transition: {from_status} -> {to_status}",
            details={"from_status": from_status, "to_status": to_status},
        )
        self.from_status = from_status
        self.to_status = to_status


class InvalidStatus(DesignAdminError):
    """Value is not one of the known design statuses."""

    code = "invalid_status"

    def __init__(self, value: str):
        super().__init__(f"Unknown design status: {value!r}", details={"status": value})
        self.value = value
