"""
Resource kinds known to infsched.

A ResourceKind identifies a type in the external store by group, version and
kind, plus the plural resource name and whether instances are namespaced.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ResourceKind:
    """A group/version/kind triple with its REST plural."""
    group: str
    version: str
    kind: str
    plural: str
    namespaced: bool = True

    @property
    def api_version(self) -> str:
        """apiVersion string as written on the wire ("v1" for the core group)."""
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"

    def __str__(self) -> str:
        return f"{self.kind}.{self.group or 'core'}/{self.version}"


# Root object
INFERENCE_SCHEDULER = ResourceKind("llm.llm-d.io", "v1alpha1", "InferenceScheduler", "inferenceschedulers")

# Built-in kinds
DEPLOYMENT = ResourceKind("apps", "v1", "Deployment", "deployments")
SERVICE = ResourceKind("", "v1", "Service", "services")
SERVICE_ACCOUNT = ResourceKind("", "v1", "ServiceAccount", "serviceaccounts")
CONFIG_MAP = ResourceKind("", "v1", "ConfigMap", "configmaps")
ROLE = ResourceKind("rbac.authorization.k8s.io", "v1", "Role", "roles")
ROLE_BINDING = ResourceKind("rbac.authorization.k8s.io", "v1", "RoleBinding", "rolebindings")

# Capability types (installed by CRDs)
GATEWAY = ResourceKind("gateway.networking.k8s.io", "v1", "Gateway", "gateways")
HTTP_ROUTE = ResourceKind("gateway.networking.k8s.io", "v1", "HTTPRoute", "httproutes")
GATEWAY_CLASS = ResourceKind("gateway.networking.k8s.io", "v1", "GatewayClass", "gatewayclasses", namespaced=False)
INFERENCE_POOL = ResourceKind("inference.networking.k8s.io", "v1", "InferencePool", "inferencepools")

BUILTIN_KINDS = (DEPLOYMENT, SERVICE, SERVICE_ACCOUNT, CONFIG_MAP, ROLE, ROLE_BINDING)
WORKLOAD_KINDS = frozenset({DEPLOYMENT})
