"""Unit tests for backend error classification."""

import httpx
import pytest
from sqlalchemy import exc as sa_exc

from src.kernel.backend.errors import (
    classify_postgrest_error,
    classify_sqlalchemy_error,
    classify_transport_error,
    looks_like_permission_error,
)
from src.kernel.errors import (
    BackendUnavailable,
    NoRowsAffected,
    PermissionDenied,
    SchemaMismatch,
)


class _PgError(Exception):
    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


class TestPostgrestClassification:
    @pytest.mark.parametrize(
        "status_code,payload,expected",
        [
            (403, {"code": "42501", "message": "permission denied for table designs"}, PermissionDenied),
            (401, {"code": "PGRST301", "message": "JWT expired"}, PermissionDenied),
            (400, {"code": "42703", "message": "column designs.figma does not exist"}, SchemaMismatch),
            (400, {"code": "PGRST200", "message": "Could not find a relationship"}, SchemaMismatch),
            (406, {"code": "PGRST116", "message": "JSON object requested, multiple (or no) rows returned"}, NoRowsAffected),
            (400, {"code": "22P02", "message": "invalid input syntax for type uuid"}, NoRowsAffected),
            (401, {"message": "No API key found in request"}, PermissionDenied),
            (404, "Not Found", SchemaMismatch),
            (502, "Bad Gateway", BackendUnavailable),
            (429, {"message": "Too many requests"}, BackendUnavailable),
        ],
    )
    def test_structured_codes_and_status(self, status_code, payload, expected):
        assert isinstance(classify_postgrest_error(status_code, payload), expected)

    def test_structured_code_wins_over_text(self):
        error = classify_postgrest_error(
            400,
            {"code": "42703", "message": "permission column does not exist"},
        )
        assert isinstance(error, SchemaMismatch)

    def test_text_heuristic_without_code(self):
        error = classify_postgrest_error(400, {"message": "blocked by RLS"})
        assert isinstance(error, PermissionDenied)
        assert error.message == "Permission denied: blocked by RLS"

    def test_rejected_query_not_retryable(self):
        error = classify_postgrest_error(400, {"code": "23514", "message": "violates check constraint"})
        assert isinstance(error, BackendUnavailable)
        assert error.retryable is False
        assert "23514" in error.message

    def test_message_preserved(self):
        error = classify_postgrest_error(403, {"code": "42501", "message": "new row violates row-level security policy"})
        assert "new row violates row-level security policy" in error.message
        assert error.details["status_code"] == 403


def test_looks_like_permission_error():
    assert looks_like_permission_error("violates row-level security policy")
    assert looks_like_permission_error("Permission denied")
    assert not looks_like_permission_error("")
    assert not looks_like_permission_error("unrelated failure")


def test_transport_errors_are_retryable():
    error = classify_transport_error(httpx.ReadTimeout("timed out"))
    assert isinstance(error, BackendUnavailable)
    assert error.retryable is True
    assert error.details["error"] == "ReadTimeout"


class TestSqlAlchemyClassification:
    def test_missing_table_text(self):
        exc = sa_exc.OperationalError("SELECT", {}, _PgError("no such table: designs"))
        assert isinstance(classify_sqlalchemy_error(exc), SchemaMismatch)

    def test_sqlstate_permission(self):
        exc = sa_exc.ProgrammingError("UPDATE", {}, _PgError("permission denied for table designs", "42501"))
        assert isinstance(classify_sqlalchemy_error(exc), PermissionDenied)

    def test_sqlstate_schema(self):
        exc = sa_exc.ProgrammingError("SELECT", {}, _PgError('relation "designs" does not exist', "42P01"))
        assert isinstance(classify_sqlalchemy_error(exc), SchemaMismatch)

    def test_connection_failure_retryable(self):
        exc = sa_exc.OperationalError("SELECT", {}, _PgError("unable to open database file"))
        error = classify_sqlalchemy_error(exc)
        assert isinstance(error, BackendUnavailable)
        assert error.retryable is True

    def test_integrity_error_not_retryable(self):
        exc = sa_exc.IntegrityError("UPDATE", {}, _PgError("FOREIGN KEY constraint failed"))
        error = classify_sqlalchemy_error(exc)
        assert isinstance(error, BackendUnavailable)
        assert error.retryable is False


def test_retry_after_backoff():
    assert BackendUnavailable.retry_after(0) == 1.0
    assert BackendUnavailable.retry_after(3) == 8.0
    assert BackendUnavailable.retry_after(10, base=1.0, cap=30.0) == 30.0
