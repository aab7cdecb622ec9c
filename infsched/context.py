"""
Reconcile context and cooperative cancellation.

The driver hands a ReconcileContext to each engine invocation. The engine
wraps its store in a CancellableStore, so a cancelled invocation stops at the
next store call with ReconcileCancelled instead of starting new writes.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from infsched.errors import ReconcileCancelled
from infsched.schemas.kinds import ResourceKind
from infsched.store.base import ResourceStore


@dataclass
class ReconcileContext:
    """
    Per-invocation context.

    Attributes:
        reason: Why the invocation was triggered (logged only)
        attempt: 1-based attempt number from the driver
    """
    reason: str = "requeue"
    attempt: int = 1
    _cancelled: threading.Event = field(default_factory=threading.Event, repr=False)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def check(self) -> None:
        """Raise ReconcileCancelled if the invocation was cancelled."""
        if self._cancelled.is_set():
            raise ReconcileCancelled("reconcile cancelled")


class CancellableStore(ResourceStore):
    """Store proxy that checks the context before every call."""

    def __init__(self, store: ResourceStore, ctx: ReconcileContext):
        self.store = store
        self.ctx = ctx

    def get(self, kind: ResourceKind, namespace: str, name: str) -> dict[str, Any]:
        self.ctx.check()
        return self.store.get(kind, namespace, name)

    def create(self, kind: ResourceKind, obj: dict[str, Any]) -> dict[str, Any]:
        self.ctx.check()
        return self.store.create(kind, obj)

    def update(self, kind: ResourceKind, obj: dict[str, Any]) -> dict[str, Any]:
        self.ctx.check()
        return self.store.update(kind, obj)

    def update_status(self, kind: ResourceKind, obj: dict[str, Any]) -> dict[str, Any]:
        self.ctx.check()
        return self.store.update_status(kind, obj)

    def delete(self, kind: ResourceKind, namespace: str, name: str) -> None:
        self.ctx.check()
        self.store.delete(kind, namespace, name)

    def list(
        self,
        kind: ResourceKind,
        namespace: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        self.ctx.check()
        return self.store.list(kind, namespace=namespace, limit=limit)
