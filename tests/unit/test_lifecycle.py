"""Unit tests for the submission lifecycle manager over the SQL backend."""

import uuid
from datetime import timedelta

import pytest
import sqlalchemy as sa
from jose import jwt

from src.database import create_engine_for, create_session_maker
from src.kernel.backend.base import DesignBackend
from src.kernel.backend.sql import SqlBackend
from src.kernel.errors import (
    BackendUnavailable,
    InvalidStatus,
    InvalidTransition,
    NoRowsAffected,
    NotFound,
    PermissionDenied,
    SchemaMismatch,
)
from src.kernel.models import DesignStatus
from src.orchestration.lifecycle import SubmissionLifecycleManager
from tests.conftest import BASE_TIME, SEED_DESIGNS

JWT_SECRET = "test-jwt-secret"


class RecordingBackend(DesignBackend):
    """Delegates to another backend and records every update call."""

    def __init__(self, inner: DesignBackend):
        self.inner = inner
        self.updates = []

    async def select(self, table, **kwargs):
        return await self.inner.select(table, **kwargs)

    async def update(self, table, values, *, match):
        self.updates.append((table, dict(values), dict(match)))
        return await self.inner.update(table, values, match=match)

    async def current_identity(self):
        return await self.inner.current_identity()

    def bind(self, access_token):
        return RecordingBackend(self.inner.bind(access_token))


class DenyingBackend(RecordingBackend):
    """Reads succeed, writes are refused by the access policy."""

    async def update(self, table, values, *, match):
        self.updates.append((table, dict(values), dict(match)))
        raise PermissionDenied("Permission denied: new row violates row-level security policy for table \"designs\"")


async def _statuses(manager, status):
    return {d.id for d in await manager.list_designs(status)}


class TestListDesigns:
    """Reading and filtering designs."""

    @pytest.mark.asyncio
    async def test_lists_all_newest_first(self, manager, seeded_designs):
        designs = await manager.list_designs()
        assert len(designs) == len(SEED_DESIGNS)
        created = [d.created_at for d in designs]
        assert created == sorted(created, reverse=True)
        assert designs[0].id == seeded_designs["spam_entry"]

    @pytest.mark.asyncio
    async def test_filter_by_status(self, manager, seeded_designs):
        pending = await manager.list_designs("pending")
        assert [d.id for d in pending] == [seeded_designs["portfolio"], seeded_designs["landing_page"]]
        assert all(d.status is DesignStatus.PENDING for d in pending)

    @pytest.mark.asyncio
    async def test_filter_with_no_matches(self, manager, owner):
        assert await manager.list_designs("completed") == []

    @pytest.mark.asyncio
    async def test_unknown_status_filter(self, manager, seeded_designs):
        with pytest.raises(InvalidStatus):
            await manager.list_designs("archived")

    @pytest.mark.asyncio
    async def test_owner_profile_embedded(self, manager, seeded_designs, owner):
        design = (await manager.list_designs("completed"))[0]
        assert design.owner_id == str(owner.id)
        assert design.owner is not None
        assert design.owner.email == "ada@example.com"
        assert design.owner.first_name == "Ada"
        assert design.reviewer is None

    @pytest.mark.asyncio
    async def test_columns_mapped_to_domain_names(self, manager, seeded_designs):
        design = await manager.get_design(seeded_designs["blog"])
        assert design.name == "Blog"
        assert design.category.value == "website"
        assert design.page_count == 5
        assert design.external_link == "https://figma.com/file/blog"

    @pytest.mark.asyncio
    async def test_without_expansion(self, manager, seeded_designs):
        designs = await manager.list_designs(expand=False)
        assert all(d.owner is None for d in designs)

    @pytest.mark.asyncio
    async def test_get_design_not_found(self, manager, seeded_designs):
        with pytest.raises(NotFound):
            await manager.get_design(str(uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_get_design_malformed_id(self, manager, seeded_designs):
        with pytest.raises(NotFound):
            await manager.get_design("not-a-uuid")


class TestBoard:
    @pytest.mark.asyncio
    async def test_counts_cover_every_status(self, manager, seeded_designs):
        board = await manager.board()
        assert board.counts == {
            "pending": 2,
            "accepted": 1,
            "in_development": 1,
            "completed": 1,
            "rejected": 1,
        }
        assert board.total == 6
        assert [d.id for d in board.groups["pending"]] == [
            seeded_designs["portfolio"],
            seeded_designs["landing_page"],
        ]

    @pytest.mark.asyncio
    async def test_counts_come_from_status_counts(self, manager, seeded_designs, monkeypatch):
        seen = []

        def fake_counts(designs):
            seen.append(len(designs))
            return {"pending": 99}

        monkeypatch.setattr("src.orchestration.lifecycle.status_counts", fake_counts)
        board = await manager.board()

        assert seen == [6]
        assert board.counts == {"pending": 99}
        assert board.total == 99

    @pytest.mark.asyncio
    async def test_empty_board(self, manager, owner):
        board = await manager.board()
        assert board.total == 0
        assert set(board.groups) == {s.value for s in DesignStatus}

    def test_allowed_targets(self):
        assert SubmissionLifecycleManager.allowed_targets("accepted") == ["in_development", "pending"]
        with pytest.raises(InvalidStatus):
            SubmissionLifecycleManager.allowed_targets("draft")


class TestTransition:
    """Status changes through the manager."""

    @pytest.mark.asyncio
    async def test_accept_moves_between_listings(self, manager, seeded_designs):
        design_id = seeded_designs["landing_page"]

        updated = await manager.transition(design_id, "accepted")

        assert updated.status is DesignStatus.ACCEPTED
        assert design_id not in await _statuses(manager, "pending")
        assert design_id in await _statuses(manager, "accepted")

    @pytest.mark.asyncio
    async def test_pending_to_completed_rejected(self, sql_backend, seeded_designs):
        backend = RecordingBackend(sql_backend)
        manager = SubmissionLifecycleManager(backend)
        design_id = seeded_designs["portfolio"]

        with pytest.raises(InvalidTransition) as exc_info:
            await manager.transition(design_id, "completed")

        assert exc_info.value.from_status == "pending"
        assert backend.updates == []
        assert (await manager.get_design(design_id)).status is DesignStatus.PENDING

    @pytest.mark.asyncio
    async def test_rejected_is_terminal(self, manager, seeded_designs):
        with pytest.raises(InvalidTransition):
            await manager.transition(seeded_designs["spam_entry"], "pending")

    @pytest.mark.asyncio
    async def test_unknown_target_status(self, manager, seeded_designs):
        with pytest.raises(InvalidStatus):
            await manager.transition(seeded_designs["portfolio"], "shipped")

    @pytest.mark.asyncio
    async def test_nonexistent_id_mutates_nothing(self, manager, seeded_designs):
        before = {d.id: (d.status, d.updated_at) for d in await manager.list_designs()}

        with pytest.raises(NotFound):
            await manager.transition(str(uuid.uuid4()), "accepted")

        after = {d.id: (d.status, d.updated_at) for d in await manager.list_designs()}
        assert after == before

    @pytest.mark.asyncio
    async def test_write_denied_preserves_message(self, sql_backend, seeded_designs):
        backend = DenyingBackend(sql_backend)
        manager = SubmissionLifecycleManager(backend)
        design_id = seeded_designs["landing_page"]

        with pytest.raises(PermissionDenied) as exc_info:
            await manager.transition(design_id, "accepted")

        assert "row-level security" in exc_info.value.message
        assert len(backend.updates) == 1
        assert design_id in await _statuses(manager, "pending")

    @pytest.mark.asyncio
    async def test_update_matching_nothing(self, sql_backend, seeded_designs):
        class VanishingBackend(RecordingBackend):
            async def update(self, table, values, *, match):
                return []

        manager = SubmissionLifecycleManager(VanishingBackend(sql_backend))
        with pytest.raises(NoRowsAffected) as exc_info:
            await manager.transition(seeded_designs["landing_page"], "accepted")
        assert "No rows were updated" in exc_info.value.message
        assert isinstance(exc_info.value, NotFound)

    @pytest.mark.asyncio
    async def test_rework_loop(self, manager, seeded_designs):
        design_id = seeded_designs["blog"]
        await manager.transition(design_id, "in_development")
        await manager.transition(design_id, "accepted")
        await manager.transition(design_id, "pending")
        design = await manager.transition(design_id, "rejected")
        assert design.status is DesignStatus.REJECTED

    @pytest.mark.asyncio
    async def test_updated_at_advances(self, manager, seeded_designs):
        design_id = seeded_designs["crm_dashboard"]
        previous = (await manager.get_design(design_id)).updated_at

        updated = await manager.transition(design_id, "in_development")

        assert updated.updated_at >= previous
        assert updated.created_at == BASE_TIME + timedelta(hours=2)

    @pytest.mark.asyncio
    async def test_updated_at_never_moves_backwards(self, sql_backend, seeded_designs):
        manager = SubmissionLifecycleManager(
            sql_backend,
            clock=lambda: BASE_TIME - timedelta(days=1),
        )
        design_id = seeded_designs["booking_app"]
        previous = (await manager.get_design(design_id)).updated_at

        updated = await manager.transition(design_id, "completed")

        assert updated.updated_at == previous

    @pytest.mark.asyncio
    async def test_timestamps_not_stamped_by_default(self, manager, seeded_designs):
        updated = await manager.transition(seeded_designs["landing_page"], "accepted")
        assert updated.accepted_at is None
        assert updated.reviewed_by is None

    @pytest.mark.asyncio
    async def test_stamp_transition_timestamps(self, sql_backend, seeded_designs):
        now = BASE_TIME + timedelta(days=2)
        manager = SubmissionLifecycleManager(
            sql_backend,
            stamp_transition_timestamps=True,
            clock=lambda: now,
        )
        accepted = await manager.transition(seeded_designs["landing_page"], "accepted")
        started = await manager.transition(seeded_designs["landing_page"], "in_development")
        rejected = await manager.transition(seeded_designs["portfolio"], "rejected")

        assert accepted.accepted_at == now
        assert started.development_started_at == now
        assert started.accepted_at == now
        assert rejected.rejected_at == now
        assert rejected.updated_at == now

    @pytest.mark.asyncio
    async def test_back_to_pending_has_no_timestamp_column(self, sql_backend, seeded_designs):
        manager = SubmissionLifecycleManager(sql_backend, stamp_transition_timestamps=True)
        updated = await manager.transition(seeded_designs["crm_dashboard"], "pending")
        assert updated.status is DesignStatus.PENDING
        assert updated.accepted_at is None

    @pytest.mark.asyncio
    async def test_record_explicit_reviewer(self, sql_backend, seeded_designs, reviewer):
        manager = SubmissionLifecycleManager(sql_backend, record_reviewer=True)
        await manager.transition(seeded_designs["landing_page"], "accepted", reviewer_id=str(reviewer.id))

        design = await manager.get_design(seeded_designs["landing_page"])
        assert design.reviewed_by == str(reviewer.id)
        assert design.reviewer is not None
        assert design.reviewer.email == "reviewer@example.com"

    @pytest.mark.asyncio
    async def test_record_reviewer_from_session(self, session_maker, seeded_designs, reviewer):
        token = jwt.encode(
            {"sub": str(reviewer.id), "email": reviewer.email, "role": "authenticated"},
            JWT_SECRET,
            algorithm="HS256",
        )
        backend = SqlBackend(session_maker, jwt_secret=JWT_SECRET).bind(token)
        manager = SubmissionLifecycleManager(backend, record_reviewer=True)

        updated = await manager.transition(seeded_designs["portfolio"], "rejected")

        assert updated.reviewed_by == str(reviewer.id)

    @pytest.mark.asyncio
    async def test_record_reviewer_without_identity(self, sql_backend, seeded_designs):
        manager = SubmissionLifecycleManager(sql_backend, record_reviewer=True)
        updated = await manager.transition(seeded_designs["portfolio"], "accepted")
        assert updated.reviewed_by is None

    def test_invalid_session_token(self, session_maker):
        token = jwt.encode({"sub": str(uuid.uuid4())}, "some-other-secret", algorithm="HS256")
        backend = SqlBackend(session_maker, jwt_secret=JWT_SECRET)
        with pytest.raises(PermissionDenied):
            backend.bind(token)


class TestBackendFailures:
    """Backend problems surface as taxonomy errors."""

    @pytest.mark.asyncio
    async def test_table_not_declared(self, session_maker):
        manager = SubmissionLifecycleManager(SqlBackend(session_maker, metadata=sa.MetaData()))
        with pytest.raises(SchemaMismatch):
            await manager.list_designs()

    @pytest.mark.asyncio
    async def test_table_missing_in_database(self, tmp_path):
        engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        try:
            manager = SubmissionLifecycleManager(SqlBackend(create_session_maker(engine)))
            with pytest.raises(SchemaMismatch):
                await manager.list_designs()
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_database_unreachable(self, tmp_path):
        missing = tmp_path / "no" / "such" / "dir" / "designs.db"
        engine = create_engine_for(f"sqlite+aiosqlite:///{missing}")
        try:
            manager = SubmissionLifecycleManager(SqlBackend(create_session_maker(engine)))
            with pytest.raises(BackendUnavailable) as exc_info:
                await manager.check_connection()
            assert exc_info.value.retryable is True
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_check_connection(self, manager, seeded_designs):
        await manager.check_connection()
