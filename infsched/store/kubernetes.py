"""
Kubernetes ResourceStore built on the dynamic client.

Every kind (built-in or CRD) goes through `kubernetes.dynamic.DynamicClient`,
so capability types installed after startup are picked up by discovery. API
failures are translated with `classify_status`.
"""

import logging
from typing import Any, Callable, Optional, TypeVar

import urllib3
from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import ResourceNotFoundError

from infsched.errors import NoKindMatchError, classify_status
from infsched.schemas.kinds import ResourceKind
from infsched.store.base import ResourceStore


logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_dynamic_client(kubeconfig: Optional[str] = None, context: Optional[str] = None) -> DynamicClient:
    """
    Build a DynamicClient.

    Uses the given kubeconfig when provided; otherwise tries the in-cluster
    service account first and falls back to the default kubeconfig.
    """
    if kubeconfig or context:
        k8s_config.load_kube_config(config_file=kubeconfig, context=context)
    else:
        try:
            k8s_config.load_incluster_config()
        except k8s_config.ConfigException:
            k8s_config.load_kube_config()
    return DynamicClient(k8s_client.ApiClient())


class KubernetesStore(ResourceStore):
    """
    ResourceStore backed by a Kubernetes API server.

    Args:
        dynamic_client: A kubernetes.dynamic.DynamicClient
        request_timeout: Per-request timeout in seconds
    """

    def __init__(self, dynamic_client: DynamicClient, request_timeout: float = 30.0):
        self.client = dynamic_client
        self.request_timeout = request_timeout

    @classmethod
    def from_config(cls, config) -> "KubernetesStore":
        """Create a store from an OperatorConfig."""
        return cls(
            build_dynamic_client(config.kubeconfig, config.context),
            request_timeout=config.request_timeout_s,
        )

    def _resource(self, kind: ResourceKind):
        try:
            return self._call(lambda: self.client.resources.get(api_version=kind.api_version, kind=kind.kind))
        except ResourceNotFoundError:
            raise NoKindMatchError(f"no matches for kind \"{kind.kind}\" in version \"{kind.api_version}\"")

    def _call(self, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except ApiException as e:
            # DynamicApiError subclasses ApiException
            raise classify_status(e.status, f"{e.status} {e.reason}: {e.body or ''}".strip()) from e
        except urllib3.exceptions.HTTPError as e:
            raise classify_status(None, f"API server unreachable: {e}") from e

    def _namespace(self, kind: ResourceKind, namespace: Optional[str]) -> Optional[str]:
        return namespace if kind.namespaced else None

    def get(self, kind: ResourceKind, namespace: str, name: str) -> dict[str, Any]:
        api = self._resource(kind)
        result = self._call(lambda: api.get(
            name=name,
            namespace=self._namespace(kind, namespace),
            _request_timeout=self.request_timeout,
        ))
        return result.to_dict()

    def create(self, kind: ResourceKind, obj: dict[str, Any]) -> dict[str, Any]:
        api = self._resource(kind)
        namespace = self._namespace(kind, obj["metadata"].get("namespace"))
        result = self._call(lambda: api.create(
            body=obj,
            namespace=namespace,
            _request_timeout=self.request_timeout,
        ))
        logger.debug(f"Created {kind.kind} {obj['metadata']['name']}")
        return result.to_dict()

    def update(self, kind: ResourceKind, obj: dict[str, Any]) -> dict[str, Any]:
        api = self._resource(kind)
        metadata = obj["metadata"]
        result = self._call(lambda: api.replace(
            body=obj,
            name=metadata["name"],
            namespace=self._namespace(kind, metadata.get("namespace")),
            _request_timeout=self.request_timeout,
        ))
        return result.to_dict()

    def update_status(self, kind: ResourceKind, obj: dict[str, Any]) -> dict[str, Any]:
        api = self._resource(kind)
        metadata = obj["metadata"]
        result = self._call(lambda: api.status.replace(
            body=obj,
            name=metadata["name"],
            namespace=self._namespace(kind, metadata.get("namespace")),
            _request_timeout=self.request_timeout,
        ))
        return result.to_dict()

    def delete(self, kind: ResourceKind, namespace: str, name: str) -> None:
        api = self._resource(kind)
        self._call(lambda: api.delete(
            name=name,
            namespace=self._namespace(kind, namespace),
            _request_timeout=self.request_timeout,
        ))

    def list(
        self,
        kind: ResourceKind,
        namespace: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        api = self._resource(kind)
        kwargs: dict[str, Any] = {"_request_timeout": self.request_timeout}
        if kind.namespaced and namespace:
            kwargs["namespace"] = namespace
        if limit is not None:
            kwargs["limit"] = limit
        result = self._call(lambda: api.get(**kwargs))
        return list(result.to_dict().get("items") or [])
