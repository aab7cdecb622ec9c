"""
Typed builders for the capability-backed objects: InferencePool, Gateway and
HTTPRoute.

Each object is a frozen dataclass with an explicit `to_wire()` step, so the
field layout of the external API lives in one place.
"""

from dataclasses import dataclass
from typing import Any

from infsched.builders.model_server import model_server_selector
from infsched.schemas import DesiredState, ResourceDescriptor
from infsched.schemas.descriptor import ChildSuffix, child_name
from infsched.schemas.kinds import GATEWAY, HTTP_ROUTE, INFERENCE_POOL


ROUTE_PATH_PREFIX = "/v1/"
FAILURE_MODE_FAIL_OPEN = "FailOpen"


@dataclass(frozen=True)
class InferencePoolSpec:
    selector: dict[str, str]
    target_port: int
    endpoint_picker_service: str
    endpoint_picker_port: int
    failure_mode: str = FAILURE_MODE_FAIL_OPEN

    def to_wire(self) -> dict[str, Any]:
        return {
            "spec": {
                "selector": {"matchLabels": dict(self.selector)},
                "targetPorts": [{"number": self.target_port}],
                "endpointPickerRef": {
                    "name": self.endpoint_picker_service,
                    "port": {"number": self.endpoint_picker_port},
                    "failureMode": self.failure_mode,
                },
            }
        }


@dataclass(frozen=True)
class GatewayListener:
    name: str
    protocol: str
    port: int
    allowed_namespaces: str = "Same"

    def to_wire(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "protocol": self.protocol,
            "port": self.port,
            "allowedRoutes": {"namespaces": {"from": self.allowed_namespaces}},
        }


@dataclass(frozen=True)
class GatewayObjectSpec:
    class_name: str
    listeners: tuple[GatewayListener, ...]

    def to_wire(self) -> dict[str, Any]:
        return {
            "spec": {
                "gatewayClassName": self.class_name,
                "listeners": [listener.to_wire() for listener in self.listeners],
            }
        }


@dataclass(frozen=True)
class HTTPRouteSpec:
    """A single-rule route: path prefix match forwarded to an InferencePool."""
    gateway_name: str
    gateway_namespace: str
    path_prefix: str
    pool_name: str
    pool_port: int

    def to_wire(self) -> dict[str, Any]:
        return {
            "spec": {
                "parentRefs": [{"name": self.gateway_name, "namespace": self.gateway_namespace}],
                "rules": [
                    {
                        "matches": [{"path": {"type": "PathPrefix", "value": self.path_prefix}}],
                        "backendRefs": [
                            {
                                "group": INFERENCE_POOL.group,
                                "kind": INFERENCE_POOL.kind,
                                "name": self.pool_name,
                                "port": self.pool_port,
                            }
                        ],
                    }
                ],
            }
        }


def _routing_labels(root_name: str) -> dict[str, str]:
    return {"app.kubernetes.io/instance": root_name, "app.kubernetes.io/managed-by": "infsched"}


def build_inference_pool(root_name: str, namespace: str, desired: DesiredState) -> ResourceDescriptor:
    pool = InferencePoolSpec(
        selector=model_server_selector(root_name, desired),
        target_port=desired.model_server.port,
        endpoint_picker_service=child_name(root_name, ChildSuffix.ROUTING_ACCESS_POINT),
        endpoint_picker_port=desired.endpoint_picker.grpc_port,
    )
    return ResourceDescriptor(
        kind=INFERENCE_POOL,
        name=child_name(root_name, ChildSuffix.POOL),
        namespace=namespace,
        labels=_routing_labels(root_name),
        payload=pool.to_wire(),
    )


def build_gateway(root_name: str, namespace: str, desired: DesiredState) -> ResourceDescriptor:
    gateway = GatewayObjectSpec(
        class_name=desired.gateway.class_name,
        listeners=(GatewayListener(name="http", protocol="HTTP", port=desired.gateway.listener_port),),
    )
    return ResourceDescriptor(
        kind=GATEWAY,
        name=child_name(root_name, ChildSuffix.GATEWAY),
        namespace=namespace,
        labels=_routing_labels(root_name),
        payload=gateway.to_wire(),
    )


def build_http_route(root_name: str, namespace: str, desired: DesiredState) -> ResourceDescriptor:
    route = HTTPRouteSpec(
        gateway_name=child_name(root_name, ChildSuffix.GATEWAY),
        gateway_namespace=namespace,
        path_prefix=ROUTE_PATH_PREFIX,
        pool_name=child_name(root_name, ChildSuffix.POOL),
        pool_port=desired.model_server.port,
    )
    return ResourceDescriptor(
        kind=HTTP_ROUTE,
        name=child_name(root_name, ChildSuffix.ROUTE),
        namespace=namespace,
        labels=_routing_labels(root_name),
        payload=route.to_wire(),
    )
