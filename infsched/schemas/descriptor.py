"""
ResourceDescriptor schema - one child object produced by a builder.

Child names are `<root name>-<suffix>` with a fixed suffix per child role.
The same root therefore maps to the same child names on every pass, which is
what lets upsert find the existing object and the store's garbage collector
find the children of a deleted root.
"""

import copy
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .kinds import ResourceKind
from .managed_object import OwnerReference


class ChildSuffix(str, Enum):
    """Fixed name suffix per child role."""
    WORKLOAD = "model-server"
    ACCESS_POINT = "model-server-svc"
    ROUTING_WORKLOAD = "epp"
    ROUTING_ACCESS_POINT = "epp-svc"
    ROUTING_IDENTITY = "epp-identity"
    ROUTING_CONFIG = "epp-config"
    POOL = "pool"
    GATEWAY = "gateway"
    ROUTE = "route"


def child_name(root_name: str, suffix: ChildSuffix) -> str:
    """Return the deterministic child name for a root."""
    return f"{root_name}-{suffix.value}"


@dataclass(frozen=True)
class ResourceDescriptor:
    """
    A desired child object.

    Attributes:
        kind: Store type of the object
        name: Object name (root name + suffix)
        namespace: Namespace (the root's namespace)
        payload: Every top-level section except apiVersion/kind/metadata
        labels: metadata.labels
        owner_ref: Controller owner reference, attached by upsert when absent
    """
    kind: ResourceKind
    name: str
    namespace: str
    payload: dict[str, Any] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    owner_ref: Optional[OwnerReference] = None

    def to_object(self) -> dict[str, Any]:
        """Serialize to a complete wire object."""
        metadata: dict[str, Any] = {"name": self.name, "namespace": self.namespace}
        if self.labels:
            metadata["labels"] = dict(self.labels)
        if self.owner_ref is not None:
            metadata["ownerReferences"] = [self.owner_ref.to_dict()]
        obj: dict[str, Any] = {
            "apiVersion": self.kind.api_version,
            "kind": self.kind.kind,
            "metadata": metadata,
        }
        obj.update(copy.deepcopy(self.payload))
        return obj

    def fingerprint(self) -> str:
        """Canonical JSON of the wire object, stable across passes."""
        return json.dumps(self.to_object(), sort_keys=True, separators=(",", ":"))
