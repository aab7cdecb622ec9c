"""
Error classes for infsched reconciliation.

These error types enable retry classification at the reconcile boundary:
- TransientError: Safe to retry (conflicts, rate limits, network issues, cancellation)
- PermanentError: Retrying will not help until the spec or cluster changes
  (invalid payload, forbidden, invalid spec, ownership conflict)

Store backends translate their native failures into the store errors below.
The engine surfaces them through status conditions and hands them back to the
driver, which decides how long to wait before the next attempt.

Expected outcomes (missing prerequisites, workloads not ready yet) are never
raised; they are requeue results.
"""

from typing import Optional


class InfschedError(Exception):
    """Base exception for infsched."""
    pass


class TransientError(InfschedError):
    """
    Transient error - safe to retry.

    Examples:
    - Optimistic concurrency conflict (409)
    - Rate limit exceeded (429)
    - API server unavailable (5xx)
    - Request timeout
    - Reconcile cancelled by the driver
    """
    pass


class PermanentError(InfschedError):
    """
    Permanent error - do not retry immediately.

    Examples:
    - Structurally invalid payload (400, 422)
    - Authorization failed (401, 403)
    - Invalid InferenceScheduler spec
    - Child object controlled by another owner
    """
    pass


# -----------------------------------------------------------------------------
# Store errors
# -----------------------------------------------------------------------------


class StoreError(InfschedError):
    """
    A store operation failed.

    Attributes:
        status: HTTP-like status code reported by the store, if any
        retryable: Whether the failure is classified as transient
    """

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return isinstance(self, TransientError)


class NotFoundError(StoreError):
    """The requested object does not exist."""

    def __init__(self, message: str):
        super().__init__(message, status=404)


class NoKindMatchError(StoreError):
    """The requested kind is not registered with the store (CRD not installed)."""

    def __init__(self, message: str):
        super().__init__(message, status=404)


class ConflictError(StoreError, TransientError):
    """The write carried a stale resourceVersion, or the object already exists."""

    def __init__(self, message: str):
        super().__init__(message, status=409)


class TransientStoreError(StoreError, TransientError):
    """Store failure that is safe to retry."""
    pass


class PermanentStoreError(StoreError, PermanentError):
    """Store failure that will not succeed on retry."""
    pass


# -----------------------------------------------------------------------------
# Reconcile errors
# -----------------------------------------------------------------------------


class SpecValidationError(PermanentError):
    """The InferenceScheduler spec is invalid."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"spec.{field}: {message}")


class OwnershipConflict(PermanentError):
    """A child object is already controlled by a different owner."""
    pass


class UnsupportedKindError(PermanentError):
    """No readiness predicate exists for the kind."""
    pass


class ReconcileCancelled(TransientError):
    """The driver cancelled the reconcile invocation."""
    pass


_TRANSIENT_STATUSES = frozenset({408, 409, 425, 429})


def classify_status(status: Optional[int], message: str) -> StoreError:
    """
    Map a store status code onto the transient/permanent taxonomy.

    Connection failures (no status) and 5xx responses are transient, as are
    the explicitly retryable 4xx codes. Every other 4xx is permanent.

    Args:
        status: HTTP status code, or None if the request never completed
        message: Human-readable failure description

    Returns:
        A StoreError subclass instance (not raised)
    """
    if status == 404:
        return NotFoundError(message)
    if status == 409:
        return ConflictError(message)
    if status is None or status >= 500 or status in _TRANSIENT_STATUSES:
        return TransientStoreError(message, status=status)
    return PermanentStoreError(message, status=status)


def is_transient(error: BaseException) -> bool:
    """Return True if the error should be retried with backoff."""
    if isinstance(error, TransientError):
        return True
    if isinstance(error, PermanentError):
        return False
    # Unclassified exceptions are retried with backoff
    return not isinstance(error, StoreError)
