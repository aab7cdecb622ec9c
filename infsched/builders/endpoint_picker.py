"""
Endpoint picker builders: identity (ServiceAccount, Role, RoleBinding),
routing config, workload and Service.

The three identity objects share the `-epp-identity` name; they are distinct
objects because their kinds differ.
"""

from typing import Any

from infsched.builders.routing_config import PLUGINS_FILE, EndpointPickerConfig
from infsched.schemas import DesiredState, ResourceDescriptor
from infsched.schemas.descriptor import ChildSuffix, child_name
from infsched.schemas.kinds import CONFIG_MAP, DEPLOYMENT, INFERENCE_POOL, ROLE, ROLE_BINDING, SERVICE, SERVICE_ACCOUNT


GRPC_HEALTH_PORT = 9003
METRICS_PORT = 9090
CONFIG_MOUNT_PATH = "/config"
CONFIG_VOLUME = "plugins-config"
LOG_VERBOSITY = 2

_RBAC_GROUP = "rbac.authorization.k8s.io"


def endpoint_picker_selector(root_name: str) -> dict[str, str]:
    return {"app": "epp", "app.kubernetes.io/instance": root_name}


def endpoint_picker_labels(root_name: str) -> dict[str, str]:
    return {
        **endpoint_picker_selector(root_name),
        "app.kubernetes.io/name": "endpoint-picker",
        "app.kubernetes.io/component": "routing",
    }


def build_service_account(root_name: str, namespace: str, desired: DesiredState) -> ResourceDescriptor:
    return ResourceDescriptor(
        kind=SERVICE_ACCOUNT,
        name=child_name(root_name, ChildSuffix.ROUTING_IDENTITY),
        namespace=namespace,
        labels=endpoint_picker_labels(root_name),
    )


def build_role(root_name: str, namespace: str, desired: DesiredState) -> ResourceDescriptor:
    """Read access to pods and inference pools in the root's namespace."""
    verbs = ["get", "list", "watch"]
    return ResourceDescriptor(
        kind=ROLE,
        name=child_name(root_name, ChildSuffix.ROUTING_IDENTITY),
        namespace=namespace,
        labels=endpoint_picker_labels(root_name),
        payload={
            "rules": [
                {"apiGroups": [""], "resources": ["pods"], "verbs": list(verbs)},
                {"apiGroups": [INFERENCE_POOL.group], "resources": [INFERENCE_POOL.plural], "verbs": list(verbs)},
            ]
        },
    )


def build_role_binding(root_name: str, namespace: str, desired: DesiredState) -> ResourceDescriptor:
    identity = child_name(root_name, ChildSuffix.ROUTING_IDENTITY)
    return ResourceDescriptor(
        kind=ROLE_BINDING,
        name=identity,
        namespace=namespace,
        labels=endpoint_picker_labels(root_name),
        payload={
            "roleRef": {"apiGroup": _RBAC_GROUP, "kind": ROLE.kind, "name": identity},
            "subjects": [{"kind": SERVICE_ACCOUNT.kind, "name": identity, "namespace": namespace}],
        },
    )


def build_routing_config(root_name: str, namespace: str, desired: DesiredState) -> ResourceDescriptor:
    config = EndpointPickerConfig.from_desired(desired)
    return ResourceDescriptor(
        kind=CONFIG_MAP,
        name=child_name(root_name, ChildSuffix.ROUTING_CONFIG),
        namespace=namespace,
        labels=endpoint_picker_labels(root_name),
        payload={"data": {PLUGINS_FILE: config.to_yaml()}},
    )


def endpoint_picker_args(root_name: str, namespace: str, desired: DesiredState) -> list[str]:
    return [
        f"--pool-name={child_name(root_name, ChildSuffix.POOL)}",
        f"--pool-namespace={namespace}",
        f"--grpc-port={desired.endpoint_picker.grpc_port}",
        f"--grpc-health-port={GRPC_HEALTH_PORT}",
        f"--config-file={CONFIG_MOUNT_PATH}/{PLUGINS_FILE}",
        f"--v={LOG_VERBOSITY}",
    ]


def build_endpoint_picker_deployment(root_name: str, namespace: str, desired: DesiredState) -> ResourceDescriptor:
    spec = desired.endpoint_picker
    labels = endpoint_picker_labels(root_name)
    container: dict[str, Any] = {
        "name": "epp",
        "image": spec.image,
        "args": endpoint_picker_args(root_name, namespace, desired),
        "ports": [
            {"name": "grpc", "containerPort": spec.grpc_port, "protocol": "TCP"},
            {"name": "grpc-health", "containerPort": GRPC_HEALTH_PORT, "protocol": "TCP"},
            {"name": "metrics", "containerPort": METRICS_PORT, "protocol": "TCP"},
        ],
        "volumeMounts": [{"name": CONFIG_VOLUME, "mountPath": CONFIG_MOUNT_PATH, "readOnly": True}],
        "resources": dict(spec.resources),
    }
    return ResourceDescriptor(
        kind=DEPLOYMENT,
        name=child_name(root_name, ChildSuffix.ROUTING_WORKLOAD),
        namespace=namespace,
        labels=labels,
        payload={
            "spec": {
                "replicas": spec.replicas,
                "selector": {"matchLabels": endpoint_picker_selector(root_name)},
                "template": {
                    "metadata": {"labels": labels},
                    "spec": {
                        "serviceAccountName": child_name(root_name, ChildSuffix.ROUTING_IDENTITY),
                        "containers": [container],
                        "volumes": [
                            {
                                "name": CONFIG_VOLUME,
                                "configMap": {"name": child_name(root_name, ChildSuffix.ROUTING_CONFIG)},
                            }
                        ],
                    },
                },
            }
        },
    )


def build_endpoint_picker_service(root_name: str, namespace: str, desired: DesiredState) -> ResourceDescriptor:
    grpc_port = desired.endpoint_picker.grpc_port
    return ResourceDescriptor(
        kind=SERVICE,
        name=child_name(root_name, ChildSuffix.ROUTING_ACCESS_POINT),
        namespace=namespace,
        labels=endpoint_picker_labels(root_name),
        payload={
            "spec": {
                "type": "ClusterIP",
                "selector": endpoint_picker_selector(root_name),
                "ports": [
                    {"name": "grpc", "port": grpc_port, "targetPort": grpc_port, "protocol": "TCP"},
                    {"name": "grpc-health", "port": GRPC_HEALTH_PORT, "targetPort": GRPC_HEALTH_PORT, "protocol": "TCP"},
                    {"name": "metrics", "port": METRICS_PORT, "targetPort": METRICS_PORT, "protocol": "TCP"},
                ],
            }
        },
    )
