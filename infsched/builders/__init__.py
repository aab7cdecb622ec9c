"""
infsched.builders - Pure DesiredState -> ResourceDescriptor functions.

Every builder has the signature `(root_name, namespace, desired)` and performs
no I/O. BUILD_ORDER lists them in creation order.
"""

from typing import Callable

from infsched.schemas import DesiredState, ResourceDescriptor

from .model_server import build_model_server_deployment, build_model_server_service
from .endpoint_picker import (
    build_service_account,
    build_role,
    build_role_binding,
    build_routing_config,
    build_endpoint_picker_deployment,
    build_endpoint_picker_service,
)
from .networking import build_inference_pool, build_gateway, build_http_route
from .routing_config import EndpointPickerConfig, PluginEntry

Builder = Callable[[str, str, DesiredState], ResourceDescriptor]

BUILD_ORDER: tuple[Builder, ...] = (
    build_model_server_deployment,
    build_model_server_service,
    build_service_account,
    build_role,
    build_role_binding,
    build_routing_config,
    build_endpoint_picker_deployment,
    build_endpoint_picker_service,
    build_inference_pool,
    build_gateway,
    build_http_route,
)


def build_all(root_name: str, namespace: str, desired: DesiredState) -> list[ResourceDescriptor]:
    """Every child descriptor, in creation order."""
    return [builder(root_name, namespace, desired) for builder in BUILD_ORDER]


__all__ = [
    "Builder",
    "BUILD_ORDER",
    "build_all",
    "build_model_server_deployment",
    "build_model_server_service",
    "build_service_account",
    "build_role",
    "build_role_binding",
    "build_routing_config",
    "build_endpoint_picker_deployment",
    "build_endpoint_picker_service",
    "build_inference_pool",
    "build_gateway",
    "build_http_route",
    "EndpointPickerConfig",
    "PluginEntry",
]
