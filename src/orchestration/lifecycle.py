"""
Submission lifecycle manager.

Reads designs (optionally with owner and reviewer profiles) and moves a
design between statuses. The transition table in state_machine is enforced
here for every caller; an illegal transition never reaches the backend.

Concurrent transitions on one design are last-write-wins at the backend;
no version token is checked.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from src.config import Settings
from src.kernel.backend.base import DESIGNS_TABLE, OWNER_EMBED, REVIEWER_EMBED, DesignBackend, Row
from src.kernel.display import status_counts
from src.kernel.errors import InvalidStatus, NoRowsAffected, NotFound, SchemaMismatch
from src.kernel.models.design import STATUS_TIMESTAMP_COLUMNS, DesignStatus
from src.logging_config import get_logger
from src.orchestration.state_machine import ensure_transition, parse_status, valid_transitions
from src.schemas.design import DesignRecord, StatusBoard

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class SubmissionLifecycleManager:
    """Read and transition designs through an explicit backend collaborator."""

    def __init__(
        self,
        backend: DesignBackend,
        *,
        stamp_transition_timestamps: bool = False,
        record_reviewer: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.backend = backend
        self.stamp_transition_timestamps = stamp_transition_timestamps
        self.record_reviewer = record_reviewer
        self._clock = clock

    @classmethod
    def from_settings(cls, backend: DesignBackend, settings: Settings) -> "SubmissionLifecycleManager":
        return cls(
            backend,
            stamp_transition_timestamps=settings.stamp_transition_timestamps,
            record_reviewer=settings.record_reviewer,
        )

    @staticmethod
    def _parse(rows: List[Row]) -> List[DesignRecord]:
        try:
            return [DesignRecord.model_validate(row) for row in rows]
        except ValidationError as exc:
            raise SchemaMismatch(
                f"Schema mismatch: design row does not match the expected shape ({exc.error_count()} errors)",
                details={"errors": exc.errors(include_url=False, include_input=False)},
            ) from exc

    async def list_designs(
        self,
        status: Optional[str] = None,
        *,
        expand: bool = True,
    ) -> List[DesignRecord]:
        """
        List designs, newest first.

        Args:
            status: only designs with exactly this status; all when None
            expand: embed owner and reviewer profiles

        Raises:
            InvalidStatus: status is not a known design status
            BackendUnavailable, SchemaMismatch, PermissionDenied: from the backend
        """
        filters = None
        if status is not None:
            filters = {"status": parse_status(status).value}

        rows = await self.backend.select(
            DESIGNS_TABLE,
            embeds=(OWNER_EMBED, REVIEWER_EMBED) if expand else (),
            filters=filters,
            order_by="created_at",
            descending=True,
        )
        return self._parse(rows)

    async def get_design(self, design_id: str, *, expand: bool = True) -> DesignRecord:
        rows = await self.backend.select(
            DESIGNS_TABLE,
            embeds=(OWNER_EMBED, REVIEWER_EMBED) if expand else (),
            filters={"id": design_id},
            limit=1,
        )
        if not rows:
            raise NotFound(f"Design {design_id} not found", details={"design_id": design_id})
        return self._parse(rows)[0]

    async def board(self, *, expand: bool = True) -> StatusBoard:
        """All designs in one read, bucketed by status (newest first per bucket)."""
        designs = await self.list_designs(expand=expand)
        groups: Dict[str, List[DesignRecord]] = {s.value: [] for s in DesignStatus}
        for design in designs:
            groups[design.status.value].append(design)
        return StatusBoard(groups=groups, counts=status_counts(designs))

    @staticmethod
    def allowed_targets(status: str) -> List[str]:
        return valid_transitions(parse_status(status).value)

    async def transition(
        self,
        design_id: str,
        target_status: str,
        *,
        reviewer_id: Optional[str] = None,
    ) -> DesignRecord:
        """
        Move a design to target_status.

        The write touches status and updated_at, plus the per-state timestamp
        and reviewed_by when those options are on. Callers re-read with
        list_designs() to refresh any cached listing.

        Raises:
            InvalidStatus: target_status is not a known status
            NotFound: no design has this id
            InvalidTransition: target is not reachable from the current status
            NoRowsAffected: the write matched nothing
            PermissionDenied, BackendUnavailable, SchemaMismatch: from the backend
        """
        target = parse_status(target_status).value

        rows = await self.backend.select(
            DESIGNS_TABLE,
            columns=("id", "status", "updated_at"),
            filters={"id": design_id},
            limit=1,
        )
        if not rows:
            raise NotFound(f"Design {design_id} not found", details={"design_id": design_id})

        current = rows[0].get("status")
        try:
            current = parse_status(current).value
        except InvalidStatus as exc:
            raise SchemaMismatch(f"Schema mismatch: design {design_id} has unknown status {current!r}") from exc

        ensure_transition(current, target)

        now = self._clock()
        previous = _as_datetime(rows[0].get("updated_at"))
        if previous is not None and previous > now:
            # Never move updated_at backwards, even with clock skew
            now = previous

        values: Dict[str, Any] = {"status": target, "updated_at": now}
        if self.stamp_transition_timestamps and target in STATUS_TIMESTAMP_COLUMNS:
            values[STATUS_TIMESTAMP_COLUMNS[target]] = now
        if self.record_reviewer:
            reviewer = reviewer_id or await self.backend.current_identity()
            if reviewer:
                values["reviewed_by"] = reviewer

        updated = await self.backend.update(DESIGNS_TABLE, values, match={"id": design_id})
        if not updated:
            raise NoRowsAffected(
                "No rows were updated. The design might not exist or you might "
                "not have permission to update it.",
                details={"design_id": design_id},
            )

        logger.info(
            "Design status changed",
            extra={"design_id": design_id, "from_status": current, "to_status": target},
        )
        return self._parse(updated)[0]

    async def check_connection(self) -> None:
        """Minimal read against designs; raises the same errors as list_designs."""
        await self.backend.select(DESIGNS_TABLE, columns=("id",), limit=1)
