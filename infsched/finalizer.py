"""
FinalizerManager - gates physical deletion of the root object.

While the finalizer marker is present the store keeps a deleted root around
(with its deletion timestamp set). `finalize` runs the cleanup hook and then
removes the marker, which lets the store complete the deletion.

Cleanup hooks:
- OwnerCascadeCleanup: nothing to do; the store's garbage collector deletes
  every child through its owner reference
- ExplicitSweepCleanup: deletes every child it controls by name, in reverse
  creation order
"""

import logging
from abc import ABC, abstractmethod

from infsched.builders import BUILD_ORDER
from infsched.errors import NoKindMatchError, NotFoundError, SpecValidationError
from infsched.schemas import DesiredState, ManagedObject
from infsched.store.base import ResourceStore
from infsched.upsert import controller_uid


logger = logging.getLogger(__name__)

FINALIZER = "llm.llm-d.io/finalizer"


class CleanupHook(ABC):
    """Runs before the finalizer marker is removed."""

    @abstractmethod
    def cleanup(self, store: ResourceStore, root: ManagedObject) -> None:
        pass


class OwnerCascadeCleanup(CleanupHook):
    """Rely on owner references; the store cascades the deletion."""

    def cleanup(self, store: ResourceStore, root: ManagedObject) -> None:
        logger.debug(f"Children of {root.namespace}/{root.name} are removed by owner cascade")


class ExplicitSweepCleanup(CleanupHook):
    """
    Delete each child explicitly.

    Skips children that are already gone, kinds that are no longer installed
    and objects controlled by a different owner.
    """

    def cleanup(self, store: ResourceStore, root: ManagedObject) -> None:
        try:
            desired = DesiredState.from_dict(root.spec)
        except SpecValidationError as e:
            # Child names do not depend on the spec, but builders need one
            logger.warning(f"Sweeping {root.namespace}/{root.name} with an invalid spec: {e}")
            desired = DesiredState.from_dict({"modelServer": {"modelName": "unknown", "hfTokenSecretName": "unknown"}})

        for builder in reversed(BUILD_ORDER):
            descriptor = builder(root.name, root.namespace, desired)
            try:
                existing = store.get(descriptor.kind, descriptor.namespace, descriptor.name)
                controller = controller_uid(existing)
                if controller != root.uid:
                    logger.warning(
                        f"Not deleting {descriptor.kind.kind} {descriptor.namespace}/{descriptor.name}: "
                        f"controlled by another owner (uid {controller or 'none'})",
                        extra={"event": "sweep.skipped"},
                    )
                    continue
                store.delete(descriptor.kind, descriptor.namespace, descriptor.name)
                logger.info(f"Deleted {descriptor.kind.kind} {descriptor.namespace}/{descriptor.name}")
            except NoKindMatchError:
                logger.debug(f"{descriptor.kind.kind} is not installed, nothing to sweep")
            except NotFoundError:
                pass


def cleanup_hook_for(mode: str) -> CleanupHook:
    """Return the hook for a configured cleanup mode ("cascade" or "sweep")."""
    if mode == "cascade":
        return OwnerCascadeCleanup()
    if mode == "sweep":
        return ExplicitSweepCleanup()
    raise ValueError(f"Unknown cleanup mode: {mode}")


class FinalizerManager:
    """
    Args:
        store: Store used to persist the root
        cleanup: Hook run during finalization
        finalizer: Marker string
    """

    def __init__(self, store: ResourceStore, cleanup: CleanupHook | None = None, finalizer: str = FINALIZER):
        self.store = store
        self.cleanup = cleanup or OwnerCascadeCleanup()
        self.finalizer = finalizer

    def ensure(self, root: ManagedObject) -> ManagedObject:
        """Attach the marker if absent and persist. Returns the current root."""
        if root.has_finalizer(self.finalizer):
            return root
        root.add_finalizer(self.finalizer)
        updated = self.store.update_root(root)
        logger.info(f"Added finalizer to {root.namespace}/{root.name}", extra={"event": "finalizer.added"})
        return updated

    def finalize(self, root: ManagedObject) -> None:
        """Run cleanup and remove the marker. No-op when the marker is absent."""
        if not root.has_finalizer(self.finalizer):
            return
        self.cleanup.cleanup(self.store, root)
        root.remove_finalizer(self.finalizer)
        self.store.update_root(root)
        logger.info(f"Removed finalizer from {root.namespace}/{root.name}", extra={"event": "finalizer.removed"})
