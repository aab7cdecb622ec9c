"""
Idempotent upsert of child objects.

Read by (kind, namespace, name). Absent: attach the controller owner and
create. Present: carry forward resourceVersion, re-attach the owner and
replace the full payload. The store leaves resourceVersion untouched when the
replacement equals what is stored, so repeated upserts of an unchanged
descriptor are no-ops.
"""

import logging
from dataclasses import replace
from enum import Enum
from typing import Any

from infsched.errors import NotFoundError, OwnershipConflict
from infsched.schemas import ManagedObject, ResourceDescriptor
from infsched.store.base import ResourceStore


logger = logging.getLogger(__name__)


class UpsertAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


def controller_uid(obj: dict[str, Any]) -> str:
    """Return the uid of the controller owner reference, or "" if there is none."""
    for ref in (obj.get("metadata") or {}).get("ownerReferences") or []:
        if ref.get("controller"):
            return ref.get("uid", "")
    return ""


def upsert(store: ResourceStore, descriptor: ResourceDescriptor, owner: ManagedObject) -> UpsertAction:
    """
    Create or replace the object described by `descriptor`.

    Args:
        store: Target store
        descriptor: Desired child object
        owner: Root object recorded as controller owner

    Returns:
        UpsertAction.CREATED or UpsertAction.UPDATED

    Raises:
        OwnershipConflict: If the existing object has a different controller
        StoreError: If the store read or write fails
    """
    if descriptor.owner_ref is None:
        descriptor = replace(descriptor, owner_ref=owner.owner_reference())
    desired = descriptor.to_object()

    try:
        existing = store.get(descriptor.kind, descriptor.namespace, descriptor.name)
    except NotFoundError:
        store.create(descriptor.kind, desired)
        logger.info(
            f"Created {descriptor.kind.kind} {descriptor.namespace}/{descriptor.name}",
            extra={"event": "upsert.created", "metadata": {"kind": descriptor.kind.kind, "name": descriptor.name}},
        )
        return UpsertAction.CREATED

    controller = controller_uid(existing)
    if controller and controller != owner.uid:
        raise OwnershipConflict(
            f"{descriptor.kind.kind} {descriptor.namespace}/{descriptor.name} "
            f"is controlled by another owner (uid {controller})"
        )

    desired["metadata"]["resourceVersion"] = existing["metadata"].get("resourceVersion")
    store.update(descriptor.kind, desired)
    logger.debug(
        f"Updated {descriptor.kind.kind} {descriptor.namespace}/{descriptor.name}",
        extra={"event": "upsert.updated", "metadata": {"kind": descriptor.kind.kind, "name": descriptor.name}},
    )
    return UpsertAction.UPDATED
