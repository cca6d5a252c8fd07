"""
Backend collaborator interface.

The lifecycle manager talks to the data store only through this contract:
row reads with ordering, exact-match filters and foreign-key embedding, and
row updates that return the updated rows. Adapters translate their native
failures into the error taxonomy in src.kernel.errors.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

DESIGNS_TABLE = "designs"
PROFILES_TABLE = "profiles"

PROFILE_SUMMARY_COLUMNS: Tuple[str, ...] = (
    "id",
    "email",
    "first_name",
    "last_name",
    "username",
)


@dataclass(frozen=True)
class Embed:
    """
    Embed the row of `table` referenced by `foreign_key` under `alias`.

    e.g. Embed("user_profile", "profiles", "user_id") puts the owner's
    profile (or None) at row["user_profile"].
    """

    alias: str
    table: str
    foreign_key: str
    columns: Tuple[str, ...] = ("*",)


OWNER_EMBED = Embed("user_profile", PROFILES_TABLE, "user_id", PROFILE_SUMMARY_COLUMNS)
REVIEWER_EMBED = Embed("reviewer_profile", PROFILES_TABLE, "reviewed_by", PROFILE_SUMMARY_COLUMNS)

Row = Dict[str, Any]


class DesignBackend(ABC):
    """Abstract table-level read/write collaborator."""

    @abstractmethod
    async def select(
        self,
        table: str,
        *,
        columns: Sequence[str] = ("*",),
        embeds: Sequence[Embed] = (),
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        """Return rows of `table` matching every filter exactly."""

    @abstractmethod
    async def update(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        match: Mapping[str, Any],
    ) -> List[Row]:
        """Set `values` on rows matching `match`; return the updated rows."""

    @abstractmethod
    async def current_identity(self) -> Optional[str]:
        """Id of the authenticated identity this view acts for, if any."""

    @abstractmethod
    def bind(self, access_token: Optional[str]) -> "DesignBackend":
        """Return a view of this backend acting for the given session token."""

    async def aclose(self) -> None:
        """Release connections held by the backend."""
        return None
