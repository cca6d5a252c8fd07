"""
Pytest fixtures for design review tests.

Each test gets its own SQLite file with the designs and profiles tables and a
small seeded data set covering every status.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Dict

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.database import create_engine_for, create_session_maker, init_db
from src.kernel.backend.sql import SqlBackend
from src.kernel.models import Design, DesignStatus, DesignType, Profile, ProfileRole
from src.orchestration.lifecycle import SubmissionLifecycleManager

BASE_TIME = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)

# name -> (status, hours after BASE_TIME); created_at == updated_at at seed time
SEED_DESIGNS = {
    "landing_page": (DesignStatus.PENDING, 0),
    "portfolio": (DesignStatus.PENDING, 1),
    "crm_dashboard": (DesignStatus.ACCEPTED, 2),
    "booking_app": (DesignStatus.IN_DEVELOPMENT, 3),
    "blog": (DesignStatus.COMPLETED, 4),
    "spam_entry": (DesignStatus.REJECTED, 5),
}


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Engine on a fresh SQLite file with the schema created."""
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'designs.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_maker(db_engine)


@pytest_asyncio.fixture
async def owner(session_maker) -> Profile:
    """Profile that submitted every seeded design."""
    profile = Profile(
        id=uuid.uuid4(),
        email="ada@example.com",
        first_name="Ada",
        last_name="Lovelace",
        username="ada",
        role=ProfileRole.STUDENT.value,
    )
    async with session_maker() as session:
        session.add(profile)
        await session.commit()
    return profile


@pytest_asyncio.fixture
async def reviewer(session_maker) -> Profile:
    """Admin profile with only an email set."""
    profile = Profile(
        id=uuid.uuid4(),
        email="reviewer@example.com",
        role=ProfileRole.ADMIN.value,
    )
    async with session_maker() as session:
        session.add(profile)
        await session.commit()
    return profile


@pytest_asyncio.fixture
async def seeded_designs(session_maker, owner: Profile) -> Dict[str, str]:
    """Insert one design per SEED_DESIGNS entry; returns name -> id."""
    ids: Dict[str, str] = {}
    async with session_maker() as session:
        for name, (status, hours) in SEED_DESIGNS.items():
            stamp = BASE_TIME + timedelta(hours=hours)
            design = Design(
                id=uuid.uuid4(),
                user_id=owner.id,
                name=name.replace("_", " ").title(),
                type=DesignType.WEBSITE.value,
                pages_count=hours + 1,
                figma_link=f"https://figma.com/file/{name}",
                description=f"Seeded design {name}",
                status=status.value,
                created_at=stamp,
                updated_at=stamp,
            )
            session.add(design)
            ids[name] = str(design.id)
        await session.commit()
    return ids


@pytest.fixture
def sql_backend(session_maker) -> SqlBackend:
    return SqlBackend(session_maker)


@pytest.fixture
def manager(sql_backend: SqlBackend) -> SubmissionLifecycleManager:
    return SubmissionLifecycleManager(sql_backend)
