"""
Capability registry.

Holds the capability types that must be installed in the cluster before
anything is deployed. Constructed once at startup and passed into the engine
and the prerequisite validator.
"""

from dataclasses import dataclass
from typing import Iterator

from infsched.schemas import kinds
from infsched.schemas.kinds import ResourceKind


GATEWAY_API_FAMILY = "gateway-api"
INFERENCE_EXTENSION_FAMILY = "inference-extension"


@dataclass(frozen=True)
class Capability:
    """
    A required capability type.

    Attributes:
        kind: Type whose presence is probed
        family: Capabilities of the same family share one missing entry
        missing_message: Entry reported when the type is not installed
    """
    kind: ResourceKind
    family: str
    missing_message: str


DEFAULT_CAPABILITIES = (
    Capability(
        kind=kinds.GATEWAY,
        family=GATEWAY_API_FAMILY,
        missing_message=(
            "Gateway API v1.3.0+ (install: kubectl apply -f "
            "https://github.com/kubernetes-sigs/gateway-api/releases/download/v1.3.0/standard-install.yaml)"
        ),
    ),
    Capability(
        kind=kinds.HTTP_ROUTE,
        family=GATEWAY_API_FAMILY,
        missing_message="Gateway API HTTPRoute CRD",
    ),
    Capability(
        kind=kinds.INFERENCE_POOL,
        family=INFERENCE_EXTENSION_FAMILY,
        missing_message=(
            "Gateway API Inference Extension v1.1.0+ (install: kubectl apply -f "
            "https://github.com/kubernetes-sigs/gateway-api-inference-extension/releases/download/v1.1.0/manifests.yaml)"
        ),
    ),
)


@dataclass(frozen=True)
class CapabilityRegistry:
    """
    Capabilities known to the operator.

    Attributes:
        capabilities: Required capability types, probed in order
        gateway_class_kind: Type listed to find named gateway classes
    """
    capabilities: tuple[Capability, ...] = DEFAULT_CAPABILITIES
    gateway_class_kind: ResourceKind = kinds.GATEWAY_CLASS

    def __iter__(self) -> Iterator[Capability]:
        return iter(self.capabilities)


def default_registry() -> CapabilityRegistry:
    """Registry for the standard Gateway API + Inference Extension install."""
    return CapabilityRegistry()
