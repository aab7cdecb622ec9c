"""
ReadinessProbe - point-in-time readiness of workload objects.

A workload is ready when status.readyReplicas equals spec.replicas at the
moment of the check. Pods flapping between checks are not tracked.
"""

from dataclasses import dataclass
from typing import Any

from infsched.errors import UnsupportedKindError
from infsched.schemas import ResourceDescriptor
from infsched.schemas.kinds import WORKLOAD_KINDS
from infsched.store.base import ResourceStore


@dataclass(frozen=True)
class Readiness:
    ready: bool
    ready_replicas: int
    desired_replicas: int


def workload_readiness(obj: dict[str, Any]) -> Readiness:
    """Evaluate a workload object (missing readyReplicas counts as 0)."""
    desired = (obj.get("spec") or {}).get("replicas")
    if desired is None:
        desired = 1
    ready = (obj.get("status") or {}).get("readyReplicas") or 0
    return Readiness(ready=ready == desired, ready_replicas=ready, desired_replicas=desired)


class ReadinessProbe:
    """Reads workloads back from the store and evaluates readiness."""

    def __init__(self, store: ResourceStore):
        self.store = store

    def check(self, descriptor: ResourceDescriptor) -> Readiness:
        """
        Check the stored object for `descriptor`.

        Raises:
            UnsupportedKindError: If the kind has no readiness predicate
            StoreError: If the read fails
        """
        if descriptor.kind not in WORKLOAD_KINDS:
            raise UnsupportedKindError(f"No readiness probe for kind {descriptor.kind.kind}")
        obj = self.store.get(descriptor.kind, descriptor.namespace, descriptor.name)
        return workload_readiness(obj)
