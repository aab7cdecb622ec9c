"""
ResourceStore - the external object store the operator reconciles against.

Objects cross this boundary as wire-format dicts (apiVersion, kind, metadata,
spec/data/... sections, status). Backends translate their native failures into
infsched.errors store errors:

- NotFoundError: object absent
- NoKindMatchError: type not registered (capability not installed)
- ConflictError: stale resourceVersion or create of an existing name
- TransientStoreError / PermanentStoreError: everything else, classified

Storage backends:
- In-memory (tests, `infsched render`)
- Kubernetes (dynamic client)
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from infsched.schemas import ManagedObject
from infsched.schemas.kinds import INFERENCE_SCHEDULER, ResourceKind


class ResourceStore(ABC):
    """
    Abstract base class for object storage.

    Root helpers (`get_root`, `update_root`, `update_root_status`) are built on
    the generic operations and convert to and from ManagedObject.
    """

    @abstractmethod
    def get(self, kind: ResourceKind, namespace: str, name: str) -> dict[str, Any]:
        """
        Read one object.

        Raises:
            NotFoundError: If the object does not exist
            NoKindMatchError: If the kind is not registered
        """
        pass

    @abstractmethod
    def create(self, kind: ResourceKind, obj: dict[str, Any]) -> dict[str, Any]:
        """
        Create an object. Status sections are ignored.

        Returns:
            The stored object, with uid and resourceVersion assigned

        Raises:
            ConflictError: If an object with the same name already exists
        """
        pass

    @abstractmethod
    def update(self, kind: ResourceKind, obj: dict[str, Any]) -> dict[str, Any]:
        """
        Replace an object (everything except status).

        If obj carries metadata.resourceVersion it must match the stored one.

        Raises:
            NotFoundError: If the object does not exist
            ConflictError: If the resourceVersion is stale
        """
        pass

    @abstractmethod
    def update_status(self, kind: ResourceKind, obj: dict[str, Any]) -> dict[str, Any]:
        """Replace only the status section of an object."""
        pass

    @abstractmethod
    def delete(self, kind: ResourceKind, namespace: str, name: str) -> None:
        """
        Request deletion of an object.

        Objects with finalizers get a deletion timestamp and stay until their
        finalizer list is empty.

        Raises:
            NotFoundError: If the object does not exist
        """
        pass

    @abstractmethod
    def list(
        self,
        kind: ResourceKind,
        namespace: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """
        List objects of a kind.

        Args:
            kind: Kind to list
            namespace: Restrict to one namespace (ignored for cluster-scoped kinds)
            limit: Maximum number of objects returned

        Raises:
            NoKindMatchError: If the kind is not registered
        """
        pass

    # -------------------------------------------------------------------------
    # Root helpers
    # -------------------------------------------------------------------------

    def get_root(self, namespace: str, name: str) -> ManagedObject:
        return ManagedObject.from_dict(self.get(INFERENCE_SCHEDULER, namespace, name))

    def update_root(self, root: ManagedObject) -> ManagedObject:
        """Persist root metadata and spec (finalizers, labels)."""
        obj = root.to_dict()
        obj.pop("status", None)
        return ManagedObject.from_dict(self.update(INFERENCE_SCHEDULER, obj))

    def update_root_status(self, root: ManagedObject) -> ManagedObject:
        """Persist the root's observed status."""
        return ManagedObject.from_dict(self.update_status(INFERENCE_SCHEDULER, root.to_dict()))
