"""
ManagedObject schema - the InferenceScheduler root being reconciled.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Optional

from .kinds import INFERENCE_SCHEDULER
from .status import ObservedStatus


@dataclass
class OwnerReference:
    """A controller owner reference declared on every child object."""
    api_version: str
    kind: str
    name: str
    uid: str
    controller: bool = True
    block_owner_deletion: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
            "controller": self.controller,
            "blockOwnerDeletion": self.block_owner_deletion,
        }


@dataclass
class ManagedObject:
    """
    The root entity. Identity is (namespace, name).

    Attributes:
        namespace: Namespace of the object
        name: Object name, also the prefix of every child name
        uid: Store-assigned unique id
        generation: Spec generation, bumped by the store on spec changes
        resource_version: Optimistic concurrency token
        finalizers: Deletion-blocking markers
        deletion_timestamp: Set by the store on delete request; never cleared
        labels: Object labels
        spec: Raw spec mapping (parsed into DesiredState by the engine)
        status: Observed status
    """
    namespace: str
    name: str
    uid: str = ""
    generation: int = 1
    resource_version: str = ""
    finalizers: list[str] = field(default_factory=list)
    deletion_timestamp: Optional[str] = None
    labels: dict[str, str] = field(default_factory=dict)
    spec: dict[str, Any] = field(default_factory=dict)
    status: ObservedStatus = field(default_factory=ObservedStatus)

    @property
    def key(self) -> tuple[str, str]:
        return (self.namespace, self.name)

    @property
    def deletion_requested(self) -> bool:
        return self.deletion_timestamp is not None

    def has_finalizer(self, finalizer: str) -> bool:
        return finalizer in self.finalizers

    def add_finalizer(self, finalizer: str) -> bool:
        """Add a finalizer. Returns True if the list changed."""
        if finalizer in self.finalizers:
            return False
        self.finalizers.append(finalizer)
        return True

    def remove_finalizer(self, finalizer: str) -> bool:
        """Remove a finalizer. Returns True if the list changed."""
        if finalizer not in self.finalizers:
            return False
        self.finalizers = [f for f in self.finalizers if f != finalizer]
        return True

    def owner_reference(self) -> OwnerReference:
        return OwnerReference(
            api_version=INFERENCE_SCHEDULER.api_version,
            kind=INFERENCE_SCHEDULER.kind,
            name=self.name,
            uid=self.uid,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire object."""
        metadata: dict[str, Any] = {
            "name": self.name,
            "namespace": self.namespace,
            "generation": self.generation,
        }
        if self.uid:
            metadata["uid"] = self.uid
        if self.resource_version:
            metadata["resourceVersion"] = self.resource_version
        if self.finalizers:
            metadata["finalizers"] = list(self.finalizers)
        if self.deletion_timestamp:
            metadata["deletionTimestamp"] = self.deletion_timestamp
        if self.labels:
            metadata["labels"] = dict(self.labels)
        return {
            "apiVersion": INFERENCE_SCHEDULER.api_version,
            "kind": INFERENCE_SCHEDULER.kind,
            "metadata": metadata,
            "spec": copy.deepcopy(self.spec),
            "status": self.status.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ManagedObject":
        """Deserialize from a wire object."""
        metadata = data.get("metadata") or {}
        return cls(
            namespace=metadata.get("namespace", "default"),
            name=metadata["name"],
            uid=metadata.get("uid", ""),
            generation=metadata.get("generation", 1),
            resource_version=str(metadata.get("resourceVersion", "")),
            finalizers=list(metadata.get("finalizers") or []),
            deletion_timestamp=metadata.get("deletionTimestamp"),
            labels=dict(metadata.get("labels") or {}),
            spec=copy.deepcopy(data.get("spec") or {}),
            status=ObservedStatus.from_dict(data.get("status")),
        )
