"""Design schemas: backend records and API payloads."""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.kernel.models.design import DesignStatus, DesignType


def _as_text_id(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything stored is UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ProfileSummary(BaseModel):
    """Profile fields embedded into a design listing."""

    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    role: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, value: Any) -> Any:
        return _as_text_id(value)


class DesignRecord(BaseModel):
    """
    A row of the designs table, optionally enriched with profiles.

    Validation aliases are the stored column names; attribute names are the
    domain names used everywhere else.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    owner_id: str = Field(alias="user_id")
    name: str
    category: DesignType = Field(alias="type")
    page_count: int = Field(alias="pages_count")
    external_link: Optional[str] = Field(None, alias="figma_link")
    description: Optional[str] = None
    status: DesignStatus
    created_at: datetime
    updated_at: datetime
    accepted_at: Optional[datetime] = None
    development_started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    admin_notes: Optional[str] = None
    reviewed_by: Optional[str] = None

    owner: Optional[ProfileSummary] = Field(None, alias="user_profile")
    reviewer: Optional[ProfileSummary] = Field(None, alias="reviewer_profile")

    @field_validator("id", "owner_id", "reviewed_by", mode="before")
    @classmethod
    def normalize_ids(cls, value: Any) -> Any:
        return _as_text_id(value)

    @field_validator(
        "created_at",
        "updated_at",
        "accepted_at",
        "development_started_at",
        "completed_at",
        "rejected_at",
    )
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class StatusBoard(BaseModel):
    """A listing split into one bucket per status."""

    groups: Dict[str, List[DesignRecord]]
    counts: Dict[str, int]

    @property
    def total(self) -> int:
        return sum(self.counts.values())


# --- API payloads ---


class StatusTransitionRequest(BaseModel):
    """Request to move a design to a new status."""

    status: str = Field(..., min_length=1, max_length=50)


class TransitionAction(BaseModel):
    """A legal next status and its caption."""

    status: str
    label: str


class DesignResponse(BaseModel):
    """Design as returned by the admin API."""

    id: str
    owner_id: str
    name: str
    category: str
    page_count: int
    external_link: Optional[str] = None
    description: Optional[str] = None
    status: str
    status_label: str
    status_color: str
    created_at: datetime
    updated_at: datetime
    accepted_at: Optional[datetime] = None
    development_started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    admin_notes: Optional[str] = None
    reviewed_by: Optional[str] = None
    owner: Optional[ProfileSummary] = None
    reviewer: Optional[ProfileSummary] = None
    owner_name: str
    allowed_transitions: List[TransitionAction] = []


class StatusColumn(BaseModel):
    """One board column."""

    status: str
    label: str
    color: str
    count: int
    designs: List[DesignResponse]


class StatusBoardResponse(BaseModel):
    """Designs grouped by status, newest first within each column."""

    total: int
    columns: List[StatusColumn]
