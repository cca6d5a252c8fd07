"""
Profile model - identity records owned by the hosted auth system.

Read-only from this service: designs reference profiles as owner and reviewer.
"""

import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from src.kernel.models.base import Base, TimestampMixin


class ProfileRole(str, Enum):
    """Roles a profile can hold."""
    STUDENT = "student"
    MENTOR = "mentor"
    ADMIN = "admin"
    VOLUNTEER = "volunteer"


class Profile(Base, TimestampMixin):
    """User profile keyed by the auth user id."""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20),
        default=ProfileRole.STUDENT.value,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Profile {self.email}>"
