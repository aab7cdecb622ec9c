"""Shared builders for test objects."""

import copy
from datetime import datetime, timedelta, timezone

from infsched.schemas import kinds


NAMESPACE = "llm"
NAME = "llama"

BASE_SPEC = {
    "modelServer": {
        "type": "vllm",
        "modelName": "meta-llama/Llama-3.1-8B-Instruct",
        "replicas": 2,
        "hfTokenSecretName": "hf-token",
    },
    "endpointPicker": {
        "plugins": {
            "loadAwareScorer": {"weight": 1.0},
            "prefixCacheScorer": {"weight": 2.0},
        },
    },
    "gateway": {"className": "kgateway"},
}


class FakeClock:
    """Advances one second per call."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now


def make_root(name=NAME, namespace=NAMESPACE, spec=None):
    return {
        "apiVersion": kinds.INFERENCE_SCHEDULER.api_version,
        "kind": kinds.INFERENCE_SCHEDULER.kind,
        "metadata": {"name": name, "namespace": namespace},
        "spec": copy.deepcopy(spec if spec is not None else BASE_SPEC),
    }


def install_capabilities(store, gateway_classes=("kgateway",)):
    store.install(kinds.GATEWAY, kinds.HTTP_ROUTE, kinds.INFERENCE_POOL, kinds.GATEWAY_CLASS)
    for class_name in gateway_classes:
        store.seed(kinds.GATEWAY_CLASS, {
            "apiVersion": kinds.GATEWAY_CLASS.api_version,
            "kind": kinds.GATEWAY_CLASS.kind,
            "metadata": {"name": class_name},
            "spec": {"controllerName": f"example.com/{class_name}"},
        })


def mark_ready(store, name=NAME, namespace=NAMESPACE):
    """Report every Deployment of a root as fully ready."""
    for obj in store.objects(kinds.DEPLOYMENT):
        metadata = obj["metadata"]
        if metadata["namespace"] == namespace and metadata["name"].startswith(f"{name}-"):
            store.set_status(kinds.DEPLOYMENT, namespace, metadata["name"],
                             {"readyReplicas": obj["spec"]["replicas"]})
