"""
Design model - a submission tracked through the review lifecycle.

Column names follow the hosted schema (user_id, type, pages_count,
figma_link); the domain layer exposes them as owner_id, category,
page_count and external_link.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.kernel.models.base import Base, TimestampMixin, generate_uuid


class DesignStatus(str, Enum):
    """Lifecycle stage of a design."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_DEVELOPMENT = "in_development"
    COMPLETED = "completed"
    REJECTED = "rejected"


class DesignType(str, Enum):
    """What kind of product the design describes."""

    WEB_APPLICATION = "web_application"
    WEBSITE = "website"


# Per-state timestamp column stamped when entering that state
STATUS_TIMESTAMP_COLUMNS = {
    DesignStatus.ACCEPTED.value: "accepted_at",
    DesignStatus.IN_DEVELOPMENT.value: "development_started_at",
    DesignStatus.COMPLETED.value: "completed_at",
    DesignStatus.REJECTED.value: "rejected_at",
}


class Design(Base, TimestampMixin):
    """A design submission."""

    __tablename__ = "designs"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    pages_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    figma_link: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(50),
        default=DesignStatus.PENDING.value,
        nullable=False,
    )
    accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    development_started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'accepted', 'in_development', 'completed', 'rejected')",
            name="ck_designs_status",
        ),
        CheckConstraint("type IN ('web_application', 'website')", name="ck_designs_type"),
        Index("ix_designs_status_created_at", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Design {self.name} {self.status}>"
