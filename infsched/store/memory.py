"""
In-memory ResourceStore.

Behaves like the API server for the parts the reconciler depends on:

- resourceVersion is bumped only when stored content actually changes
- writes carrying a stale resourceVersion are rejected with ConflictError
- status is a separate section: create/update ignore it, update_status sets only it
- kinds must be installed before use (NoKindMatchError otherwise)
- deleting an object with finalizers only sets deletionTimestamp; the object
  is removed once its finalizer list is empty
- removing an object garbage-collects every object whose ownerReferences
  point at its uid

Every call is appended to `calls` as (operation, kind, name) so tests can
assert on the writes a reconcile performed.
"""

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from infsched.errors import ConflictError, NoKindMatchError, NotFoundError, StoreError
from infsched.schemas import kinds
from infsched.schemas.kinds import ResourceKind
from infsched.store.base import ResourceStore


WRITE_OPERATIONS = frozenset({"create", "update", "update_status", "delete"})

# metadata fields owned by the store, never taken from the client
_SERVER_METADATA = ("uid", "resourceVersion", "generation", "creationTimestamp", "deletionTimestamp")

_Key = tuple[ResourceKind, str, str]


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class InMemoryStore(ResourceStore):
    """
    In-memory implementation of ResourceStore.

    Args:
        installed_kinds: Kinds registered with the store. Defaults to the
            root kind plus the built-in kinds; capability kinds must be
            installed explicitly.
    """

    def __init__(self, installed_kinds: Optional[Iterable[ResourceKind]] = None):
        if installed_kinds is None:
            installed_kinds = (kinds.INFERENCE_SCHEDULER,) + kinds.BUILTIN_KINDS
        self._installed: set[ResourceKind] = set(installed_kinds)
        self._objects: dict[_Key, dict[str, Any]] = {}
        self._version = 0
        self._injected: list[tuple[str, Optional[ResourceKind], StoreError]] = []
        self.calls: list[tuple[str, str, str]] = []

    # -------------------------------------------------------------------------
    # Test helpers
    # -------------------------------------------------------------------------

    def install(self, *resource_kinds: ResourceKind) -> None:
        """Register kinds (install CRDs)."""
        self._installed.update(resource_kinds)

    def uninstall(self, *resource_kinds: ResourceKind) -> None:
        for kind in resource_kinds:
            self._installed.discard(kind)

    def is_installed(self, kind: ResourceKind) -> bool:
        return kind in self._installed

    def inject_error(self, operation: str, error: StoreError, kind: Optional[ResourceKind] = None) -> None:
        """Make the next matching call raise `error` (one shot)."""
        self._injected.append((operation, kind, error))

    def set_status(self, kind: ResourceKind, namespace: str, name: str, status: dict[str, Any]) -> dict[str, Any]:
        """Merge fields into an object's status, as a platform controller would."""
        obj = self._require(kind, namespace, name)
        merged = dict(obj.get("status") or {})
        merged.update(status)
        if merged != obj.get("status"):
            obj["status"] = merged
            self._bump(obj)
        return copy.deepcopy(obj)

    def seed(self, kind: ResourceKind, obj: dict[str, Any]) -> dict[str, Any]:
        """Create an object without recording a call. Keeps any status given."""
        status = obj.get("status")
        created = self._create(kind, obj)
        if status is not None:
            key = self._key(kind, created["metadata"].get("namespace", ""), created["metadata"]["name"])
            self._objects[key]["status"] = copy.deepcopy(status)
            created["status"] = copy.deepcopy(status)
        return created

    def writes(self) -> list[tuple[str, str, str]]:
        """Recorded calls that modify state."""
        return [c for c in self.calls if c[0] in WRITE_OPERATIONS]

    def reset_calls(self) -> None:
        self.calls = []

    def objects(self, kind: Optional[ResourceKind] = None) -> list[dict[str, Any]]:
        """Every stored object (optionally of one kind), without recording a call."""
        return [
            copy.deepcopy(obj)
            for key, obj in sorted(self._objects.items(), key=lambda item: (str(item[0][0]), item[0][1], item[0][2]))
            if kind is None or key[0] == kind
        ]

    # -------------------------------------------------------------------------
    # ResourceStore
    # -------------------------------------------------------------------------

    def get(self, kind: ResourceKind, namespace: str, name: str) -> dict[str, Any]:
        self._record("get", kind, name)
        return copy.deepcopy(self._require(kind, namespace, name))

    def create(self, kind: ResourceKind, obj: dict[str, Any]) -> dict[str, Any]:
        self._record("create", kind, obj.get("metadata", {}).get("name", ""))
        return self._create(kind, obj)

    def update(self, kind: ResourceKind, obj: dict[str, Any]) -> dict[str, Any]:
        metadata = obj.get("metadata") or {}
        self._record("update", kind, metadata.get("name", ""))
        existing = self._require(kind, metadata.get("namespace", ""), metadata["name"])
        self._check_version(kind, existing, metadata)

        updated: dict[str, Any] = {k: copy.deepcopy(v) for k, v in obj.items() if k not in ("metadata", "status")}
        new_metadata = {k: copy.deepcopy(v) for k, v in metadata.items() if k not in _SERVER_METADATA}
        for field_name in _SERVER_METADATA:
            if field_name in existing["metadata"]:
                new_metadata[field_name] = existing["metadata"][field_name]
        updated["metadata"] = new_metadata
        if "status" in existing:
            updated["status"] = existing["status"]

        if updated == existing:
            return copy.deepcopy(existing)

        if updated.get("spec") != existing.get("spec"):
            new_metadata["generation"] = existing["metadata"].get("generation", 1) + 1
        key = self._key(kind, new_metadata.get("namespace", ""), new_metadata["name"])
        self._objects[key] = updated
        self._bump(updated)

        if new_metadata.get("deletionTimestamp") and not new_metadata.get("finalizers"):
            self._remove(key)
        return copy.deepcopy(updated)

    def update_status(self, kind: ResourceKind, obj: dict[str, Any]) -> dict[str, Any]:
        metadata = obj.get("metadata") or {}
        self._record("update_status", kind, metadata.get("name", ""))
        existing = self._require(kind, metadata.get("namespace", ""), metadata["name"])
        self._check_version(kind, existing, metadata)

        status = copy.deepcopy(obj.get("status") or {})
        if existing.get("status") != status:
            existing["status"] = status
            self._bump(existing)
        return copy.deepcopy(existing)

    def delete(self, kind: ResourceKind, namespace: str, name: str) -> None:
        self._record("delete", kind, name)
        obj = self._require(kind, namespace, name)
        metadata = obj["metadata"]
        if metadata.get("finalizers"):
            if not metadata.get("deletionTimestamp"):
                metadata["deletionTimestamp"] = _now()
                self._bump(obj)
            return
        self._remove(self._key(kind, namespace, name))

    def list(
        self,
        kind: ResourceKind,
        namespace: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        self._record("list", kind, namespace or "")
        items = [
            copy.deepcopy(obj)
            for (obj_kind, obj_namespace, _), obj in sorted(self._objects.items(), key=lambda item: item[0][1:])
            if obj_kind == kind and (namespace is None or not kind.namespaced or obj_namespace == namespace)
        ]
        if limit is not None:
            items = items[:limit]
        return items

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _record(self, operation: str, kind: ResourceKind, name: str) -> None:
        self.calls.append((operation, kind.kind, name))
        for index, (op, injected_kind, error) in enumerate(self._injected):
            if op == operation and (injected_kind is None or injected_kind == kind):
                del self._injected[index]
                raise error
        if kind not in self._installed:
            raise NoKindMatchError(f"no matches for kind \"{kind.kind}\" in version \"{kind.api_version}\"")

    def _key(self, kind: ResourceKind, namespace: str, name: str) -> _Key:
        return (kind, namespace if kind.namespaced else "", name)

    def _require(self, kind: ResourceKind, namespace: str, name: str) -> dict[str, Any]:
        if kind not in self._installed:
            raise NoKindMatchError(f"no matches for kind \"{kind.kind}\" in version \"{kind.api_version}\"")
        obj = self._objects.get(self._key(kind, namespace, name))
        if obj is None:
            raise NotFoundError(f"{kind.plural} \"{name}\" not found")
        return obj

    def _check_version(self, kind: ResourceKind, existing: dict[str, Any], metadata: dict[str, Any]) -> None:
        expected = metadata.get("resourceVersion")
        current = existing["metadata"]["resourceVersion"]
        if expected and str(expected) != current:
            raise ConflictError(
                f"Operation cannot be fulfilled on {kind.plural} \"{metadata['name']}\": "
                "the object has been modified; please apply your changes to the latest version and try again"
            )

    def _bump(self, obj: dict[str, Any]) -> None:
        self._version += 1
        obj["metadata"]["resourceVersion"] = str(self._version)

    def _create(self, kind: ResourceKind, obj: dict[str, Any]) -> dict[str, Any]:
        metadata = obj.get("metadata") or {}
        name = metadata.get("name")
        if not name:
            raise StoreError("metadata.name is required", status=422)
        namespace = metadata.get("namespace", "") if kind.namespaced else ""
        key = self._key(kind, namespace, name)
        if kind not in self._installed:
            raise NoKindMatchError(f"no matches for kind \"{kind.kind}\" in version \"{kind.api_version}\"")
        if key in self._objects:
            raise ConflictError(f"{kind.plural} \"{name}\" already exists")

        stored: dict[str, Any] = {k: copy.deepcopy(v) for k, v in obj.items() if k not in ("metadata", "status")}
        stored_metadata = {k: copy.deepcopy(v) for k, v in metadata.items() if k not in _SERVER_METADATA}
        stored_metadata.update({
            "uid": str(uuid.uuid4()),
            "generation": 1,
            "creationTimestamp": _now(),
        })
        stored["metadata"] = stored_metadata
        self._bump(stored)
        self._objects[key] = stored
        return copy.deepcopy(stored)

    def _remove(self, key: _Key) -> None:
        removed = self._objects.pop(key, None)
        if removed is None:
            return
        uid = removed["metadata"]["uid"]
        for child_key, child in list(self._objects.items()):
            owners = child["metadata"].get("ownerReferences") or []
            if any(ref.get("uid") == uid for ref in owners):
                child_metadata = child["metadata"]
                if child_metadata.get("finalizers"):
                    child_metadata.setdefault("deletionTimestamp", _now())
                    self._bump(child)
                else:
                    self._remove(child_key)
