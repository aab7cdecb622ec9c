"""Tests for infsched error classes.

Tests cover:
- Error hierarchy
- Status code classification
- Retry classification
"""

import pytest

from infsched.errors import (
    ConflictError,
    InfschedError,
    NoKindMatchError,
    NotFoundError,
    OwnershipConflict,
    PermanentError,
    PermanentStoreError,
    ReconcileCancelled,
    SpecValidationError,
    StoreError,
    TransientError,
    TransientStoreError,
    classify_status,
    is_transient,
)


class TestHierarchy:
    """Tests for the transient/permanent hierarchy."""

    def test_base_is_exception(self):
        assert issubclass(InfschedError, Exception)

    def test_transient_and_permanent_are_distinct(self):
        assert not issubclass(TransientError, PermanentError)
        assert not issubclass(PermanentError, TransientError)

    def test_conflict_is_transient_store_error(self):
        error = ConflictError("stale")
        assert isinstance(error, StoreError)
        assert isinstance(error, TransientError)
        assert error.status == 409
        assert error.retryable

    def test_not_found_is_neither(self):
        error = NotFoundError("gone")
        assert not isinstance(error, TransientError)
        assert not isinstance(error, PermanentError)
        assert error.status == 404

    def test_spec_validation_error_message(self):
        error = SpecValidationError("modelServer.replicas", "must be >= 1 (got 0)")
        assert isinstance(error, PermanentError)
        assert error.field == "modelServer.replicas"
        assert str(error) == "spec.modelServer.replicas: must be >= 1 (got 0)"

    def test_cancelled_is_transient(self):
        assert issubclass(ReconcileCancelled, TransientError)

    def test_ownership_conflict_is_permanent(self):
        assert issubclass(OwnershipConflict, PermanentError)


# =============================================================================
# classify_status
# =============================================================================


class TestClassifyStatus:
    """Tests for mapping status codes onto the taxonomy."""

    def test_not_found(self):
        assert isinstance(classify_status(404, "x"), NotFoundError)

    def test_conflict(self):
        assert isinstance(classify_status(409, "x"), ConflictError)

    @pytest.mark.parametrize("status", [None, 408, 425, 429, 500, 503])
    def test_transient_statuses(self, status):
        error = classify_status(status, "x")
        assert isinstance(error, TransientStoreError)
        assert error.status == status

    @pytest.mark.parametrize("status", [400, 401, 403, 422])
    def test_permanent_statuses(self, status):
        error = classify_status(status, "x")
        assert isinstance(error, PermanentStoreError)
        assert not error.retryable

    def test_returns_without_raising(self):
        error = classify_status(500, "boom")
        assert str(error) == "boom"


class TestIsTransient:
    """Tests for retry classification at the driver."""

    def test_transient(self):
        assert is_transient(ConflictError("x"))
        assert is_transient(ReconcileCancelled("x"))

    def test_permanent(self):
        assert not is_transient(SpecValidationError("modelServer", "is required"))
        assert not is_transient(OwnershipConflict("x"))

    def test_unclassified_store_error_is_not_retried(self):
        assert not is_transient(NoKindMatchError("x"))

    def test_unknown_exception_is_retried(self):
        assert is_transient(RuntimeError("x"))
