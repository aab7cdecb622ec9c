"""
Model server builders: the primary workload and its Service.
"""

from typing import Any

from infsched.schemas import DesiredState, ResourceDescriptor, ServerKind
from infsched.schemas.descriptor import ChildSuffix, child_name
from infsched.schemas.kinds import DEPLOYMENT, SERVICE
from infsched.utils import sanitize_name


HF_TOKEN_ENV = "HF_TOKEN"
HF_TOKEN_SECRET_KEY = "token"


def model_server_selector(root_name: str, desired: DesiredState) -> dict[str, str]:
    """Labels that identify the model server pods of one root."""
    spec = desired.model_server
    return {
        "app": spec.type.value,
        "model": sanitize_name(spec.model_name),
        "app.kubernetes.io/instance": root_name,
    }


def model_server_labels(root_name: str, desired: DesiredState) -> dict[str, str]:
    labels = {
        **model_server_selector(root_name, desired),
        "app.kubernetes.io/name": "model-server",
        "app.kubernetes.io/component": "inference",
    }
    # User labels win, except over the selector
    labels.update(desired.model_server.labels)
    labels.update(model_server_selector(root_name, desired))
    return labels


def model_server_args(desired: DesiredState) -> list[str]:
    """Container args for the configured server implementation."""
    spec = desired.model_server
    if spec.type is ServerKind.TGI:
        return [
            f"--model-id={spec.model_name}",
            f"--port={spec.port}",
            f"--cuda-memory-fraction={spec.gpu_memory_utilization:.2f}",
        ]
    args = [f"--model={spec.model_name}", f"--port={spec.port}"]
    if spec.enable_prefix_caching:
        args.append("--enable-prefix-caching")
    args.append(f"--gpu-memory-utilization={spec.gpu_memory_utilization:.2f}")
    return args


def build_model_server_deployment(root_name: str, namespace: str, desired: DesiredState) -> ResourceDescriptor:
    spec = desired.model_server
    labels = model_server_labels(root_name, desired)
    container: dict[str, Any] = {
        "name": spec.type.value,
        "image": spec.image,
        "args": model_server_args(desired),
        "ports": [{"name": "http", "containerPort": spec.port, "protocol": "TCP"}],
        "env": [
            {
                "name": HF_TOKEN_ENV,
                "valueFrom": {
                    "secretKeyRef": {"name": spec.hf_token_secret_name, "key": HF_TOKEN_SECRET_KEY},
                },
            }
        ],
        "resources": dict(spec.resources),
    }
    return ResourceDescriptor(
        kind=DEPLOYMENT,
        name=child_name(root_name, ChildSuffix.WORKLOAD),
        namespace=namespace,
        labels=labels,
        payload={
            "spec": {
                "replicas": spec.replicas,
                "selector": {"matchLabels": model_server_selector(root_name, desired)},
                "template": {
                    "metadata": {"labels": labels},
                    "spec": {"containers": [container]},
                },
            }
        },
    )


def build_model_server_service(root_name: str, namespace: str, desired: DesiredState) -> ResourceDescriptor:
    spec = desired.model_server
    return ResourceDescriptor(
        kind=SERVICE,
        name=child_name(root_name, ChildSuffix.ACCESS_POINT),
        namespace=namespace,
        labels=model_server_labels(root_name, desired),
        payload={
            "spec": {
                "type": desired.gateway.service_type.value,
                "selector": model_server_selector(root_name, desired),
                "ports": [
                    {"name": "http", "port": spec.port, "targetPort": spec.port, "protocol": "TCP"},
                ],
            }
        },
    )
