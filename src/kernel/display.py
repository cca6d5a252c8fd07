"""
Presentation helpers for designs and profiles.

All functions are pure and total: bad input yields a fallback, never an
exception.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from src.kernel.models.design import DesignStatus

UNKNOWN_USER = "Unknown User"
DEFAULT_COLOR = "gray"

STATUS_COLORS: Dict[str, str] = {
    DesignStatus.PENDING.value: "yellow",
    DesignStatus.ACCEPTED.value: "blue",
    DesignStatus.IN_DEVELOPMENT.value: "purple",
    DesignStatus.COMPLETED.value: "green",
    DesignStatus.REJECTED.value: "red",
}


def _field(obj: Any, name: str) -> Optional[str]:
    if obj is None:
        return None
    if isinstance(obj, dict):
        value = obj.get(name)
    else:
        value = getattr(obj, name, None)
    if value is None:
        return None
    return str(value)


def display_name(profile: Any) -> str:
    """
    Name to show for a profile (model, dict or None).

    "first last" when either part is set, then username, then email.
    """
    first = (_field(profile, "first_name") or "").strip()
    last = (_field(profile, "last_name") or "").strip()
    if first or last:
        return f"{first} {last}".strip()
    return _field(profile, "username") or _field(profile, "email") or UNKNOWN_USER


def _status_value(status: Any) -> str:
    if isinstance(status, DesignStatus):
        return status.value
    return "" if status is None else str(status)


def status_label(status: Any) -> str:
    """'in_development' -> 'In Development'."""
    words = _status_value(status).replace("_", " ").split()
    return " ".join(w[:1].upper() + w[1:] for w in words)


def status_color(status: Any) -> str:
    return STATUS_COLORS.get(_status_value(status), DEFAULT_COLOR)


def format_timestamp(value: Any) -> str:
    """Render a datetime or ISO string as 'Oct 19, 2026, 01:41 PM'."""
    if value is None:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return ""
    if not isinstance(value, datetime):
        return ""
    return value.strftime("%b %d, %Y, %I:%M %p")


def status_counts(designs: Iterable[Any]) -> Dict[str, int]:
    """Count designs per status; every known status is present."""
    counts = {s.value: 0 for s in DesignStatus}
    for design in designs:
        raw = design.get("status") if isinstance(design, dict) else getattr(design, "status", None)
        key = _status_value(raw)
        if key in counts:
            counts[key] += 1
    return counts
