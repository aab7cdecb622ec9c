"""
DesiredState schema - the parsed InferenceScheduler spec.

DesiredState is built once per reconcile from the custom object's `spec`
mapping. Every optional field has its default applied in `from_dict`, so
builders never see a missing value.

Wire format (camelCase):

    modelServer:
      type: vllm | tgi
      modelName: meta-llama/Llama-3.1-8B-Instruct
      replicas: 2
      hfTokenSecretName: hf-token
    endpointPicker:
      plugins:
        prefixCacheScorer: {weight: 3.0}
    gateway:
      className: kgateway
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from infsched.errors import SpecValidationError


DEFAULT_VLLM_IMAGE = "vllm/vllm-openai:latest"
DEFAULT_TGI_IMAGE = "ghcr.io/huggingface/text-generation-inference:latest"
DEFAULT_EPP_IMAGE = "ghcr.io/llm-d/llm-d-inference-scheduler:v0.3.2"
DEFAULT_MODEL_SERVER_PORT = 8000
DEFAULT_MODEL_SERVER_REPLICAS = 2
DEFAULT_GPU_MEMORY_UTILIZATION = 0.9
DEFAULT_EPP_REPLICAS = 1
DEFAULT_EPP_GRPC_PORT = 9002
DEFAULT_GATEWAY_PORT = 80


class ServerKind(str, Enum):
    """Supported model server implementations."""
    VLLM = "vllm"
    TGI = "tgi"

    @property
    def default_image(self) -> str:
        if self is ServerKind.TGI:
            return DEFAULT_TGI_IMAGE
        return DEFAULT_VLLM_IMAGE


class GatewayClassName(str, Enum):
    """Gateway implementations the operator can target."""
    KGATEWAY = "kgateway"
    ISTIO = "istio"
    GKE_L7_REGIONAL_EXTERNAL_MANAGED = "gke-l7-regional-external-managed"


class ServiceType(str, Enum):
    """Kubernetes Service exposure types."""
    CLUSTER_IP = "ClusterIP"
    LOAD_BALANCER = "LoadBalancer"
    NODE_PORT = "NodePort"


def _parse_enum(enum_cls, value: Any, default, field_name: str):
    if value is None or value == "":
        return default
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise SpecValidationError(field_name, f"must be one of: {allowed} (got {value!r})")


def _parse_int(value: Any, default: int, field_name: str, minimum: Optional[int] = None) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise SpecValidationError(field_name, f"must be an integer (got {value!r})")
    if minimum is not None and value < minimum:
        raise SpecValidationError(field_name, f"must be >= {minimum} (got {value})")
    return value


def _parse_float(value: Any, default: float, field_name: str) -> float:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SpecValidationError(field_name, f"must be a number (got {value!r})")
    return float(value)


def _parse_bool(value: Any, default: bool, field_name: str) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise SpecValidationError(field_name, f"must be a boolean (got {value!r})")
    return value


def _parse_mapping(value: Any, field_name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise SpecValidationError(field_name, "must be a mapping")
    return dict(value)


def _parse_string_map(value: Any, field_name: str) -> dict[str, str]:
    mapping = _parse_mapping(value, field_name)
    for key, item in mapping.items():
        if not isinstance(item, str):
            raise SpecValidationError(f"{field_name}.{key}", "must be a string")
    return mapping


@dataclass(frozen=True)
class ModelServerSpec:
    """
    Model server (primary workload) configuration.

    Attributes:
        model_name: HuggingFace model identifier passed to the server
        hf_token_secret_name: Secret holding the HuggingFace token under key "token"
        type: Server implementation
        replicas: Desired pod count (>= 1)
        image: Container image
        resources: Opaque container resource requirements
        enable_prefix_caching: Pass --enable-prefix-caching (vLLM only)
        gpu_memory_utilization: Fraction of GPU memory the server may use
        port: HTTP port
        labels: Extra pod labels, merged over the defaults
    """
    model_name: str
    hf_token_secret_name: str
    type: ServerKind = ServerKind.VLLM
    replicas: int = DEFAULT_MODEL_SERVER_REPLICAS
    image: str = DEFAULT_VLLM_IMAGE
    resources: dict[str, Any] = field(default_factory=dict)
    enable_prefix_caching: bool = True
    gpu_memory_utilization: float = DEFAULT_GPU_MEMORY_UTILIZATION
    port: int = DEFAULT_MODEL_SERVER_PORT
    labels: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModelServerSpec":
        model_name = data.get("modelName")
        if not model_name or not isinstance(model_name, str):
            raise SpecValidationError("modelServer.modelName", "is required")
        secret = data.get("hfTokenSecretName")
        if not secret or not isinstance(secret, str):
            raise SpecValidationError("modelServer.hfTokenSecretName", "is required")

        server_kind = _parse_enum(ServerKind, data.get("type"), ServerKind.VLLM, "modelServer.type")
        gpu_util = _parse_float(
            data.get("gpuMemoryUtilization"), DEFAULT_GPU_MEMORY_UTILIZATION, "modelServer.gpuMemoryUtilization"
        )
        if not 0.0 <= gpu_util <= 1.0:
            raise SpecValidationError("modelServer.gpuMemoryUtilization", f"must be within 0.0-1.0 (got {gpu_util})")

        return cls(
            model_name=model_name,
            hf_token_secret_name=secret,
            type=server_kind,
            replicas=_parse_int(data.get("replicas"), DEFAULT_MODEL_SERVER_REPLICAS, "modelServer.replicas", minimum=1),
            image=data.get("image") or server_kind.default_image,
            resources=_parse_mapping(data.get("resources"), "modelServer.resources"),
            enable_prefix_caching=_parse_bool(
                data.get("enablePrefixCaching"), True, "modelServer.enablePrefixCaching"
            ),
            gpu_memory_utilization=gpu_util,
            port=_parse_int(data.get("port"), DEFAULT_MODEL_SERVER_PORT, "modelServer.port", minimum=1),
            labels=_parse_string_map(data.get("labels"), "modelServer.labels"),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": self.type.value,
            "modelName": self.model_name,
            "replicas": self.replicas,
            "image": self.image,
            "enablePrefixCaching": self.enable_prefix_caching,
            "gpuMemoryUtilization": self.gpu_memory_utilization,
            "hfTokenSecretName": self.hf_token_secret_name,
            "port": self.port,
        }
        if self.resources:
            result["resources"] = self.resources
        if self.labels:
            result["labels"] = self.labels
        return result


@dataclass(frozen=True)
class ScorerPlugin:
    """
    A routing scorer configuration.

    Attributes:
        enabled: Whether the scorer is rendered into the routing config
        weight: Relative weight of the scorer
        parameters: Opaque string parameters passed to the scorer
    """
    enabled: bool = False
    weight: float = 1.0
    parameters: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(
        cls,
        data: Optional[dict[str, Any]],
        default_weight: float,
        default_parameters: Optional[dict[str, str]] = None,
        field_name: str = "plugin",
    ) -> "ScorerPlugin":
        """Parse a scorer block. An absent block is disabled; a present one defaults to enabled."""
        if data is None:
            return cls(enabled=False, weight=default_weight, parameters=dict(default_parameters or {}))
        data = _parse_mapping(data, field_name)
        parameters = dict(default_parameters or {})
        parameters.update(_parse_string_map(data.get("parameters"), f"{field_name}.parameters"))
        return cls(
            enabled=_parse_bool(data.get("enabled"), True, f"{field_name}.enabled"),
            weight=_parse_float(data.get("weight"), default_weight, f"{field_name}.weight"),
            parameters=parameters,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"enabled": self.enabled, "weight": self.weight}
        if self.parameters:
            result["parameters"] = self.parameters
        return result


LOAD_AWARE_DEFAULT_WEIGHT = 1.0
PREFIX_CACHE_DEFAULT_WEIGHT = 2.0
KV_CACHE_DEFAULT_WEIGHT = 1.0


@dataclass(frozen=True)
class PluginConfig:
    """The three scorers understood by the endpoint picker."""
    load_aware_scorer: ScorerPlugin = field(default_factory=ScorerPlugin)
    prefix_cache_scorer: ScorerPlugin = field(default_factory=lambda: ScorerPlugin(weight=PREFIX_CACHE_DEFAULT_WEIGHT))
    kv_cache_utilization_scorer: ScorerPlugin = field(default_factory=ScorerPlugin)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PluginConfig":
        return cls(
            load_aware_scorer=ScorerPlugin.from_dict(
                data.get("loadAwareScorer"),
                LOAD_AWARE_DEFAULT_WEIGHT,
                {"queueThreshold": "128"},
                field_name="endpointPicker.plugins.loadAwareScorer",
            ),
            prefix_cache_scorer=ScorerPlugin.from_dict(
                data.get("prefixCacheScorer"),
                PREFIX_CACHE_DEFAULT_WEIGHT,
                {"cacheHitBonus": "1.0"},
                field_name="endpointPicker.plugins.prefixCacheScorer",
            ),
            kv_cache_utilization_scorer=ScorerPlugin.from_dict(
                data.get("kvCacheUtilizationScorer"),
                KV_CACHE_DEFAULT_WEIGHT,
                field_name="endpointPicker.plugins.kvCacheUtilizationScorer",
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "loadAwareScorer": self.load_aware_scorer.to_dict(),
            "prefixCacheScorer": self.prefix_cache_scorer.to_dict(),
            "kvCacheUtilizationScorer": self.kv_cache_utilization_scorer.to_dict(),
        }


@dataclass(frozen=True)
class EndpointPickerSpec:
    """Routing workload (endpoint picker) configuration."""
    image: str = DEFAULT_EPP_IMAGE
    replicas: int = DEFAULT_EPP_REPLICAS
    grpc_port: int = DEFAULT_EPP_GRPC_PORT
    plugins: PluginConfig = field(default_factory=PluginConfig)
    resources: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EndpointPickerSpec":
        return cls(
            image=data.get("image") or DEFAULT_EPP_IMAGE,
            replicas=_parse_int(data.get("replicas"), DEFAULT_EPP_REPLICAS, "endpointPicker.replicas", minimum=1),
            grpc_port=_parse_int(data.get("grpcPort"), DEFAULT_EPP_GRPC_PORT, "endpointPicker.grpcPort", minimum=1),
            plugins=PluginConfig.from_dict(_parse_mapping(data.get("plugins"), "endpointPicker.plugins")),
            resources=_parse_mapping(data.get("resources"), "endpointPicker.resources"),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "image": self.image,
            "replicas": self.replicas,
            "grpcPort": self.grpc_port,
            "plugins": self.plugins.to_dict(),
        }
        if self.resources:
            result["resources"] = self.resources
        return result


@dataclass(frozen=True)
class GatewaySpec:
    """
    Access point configuration.

    Attributes:
        class_name: GatewayClass that must be installed in the cluster
        listener_port: HTTP listener port on the Gateway
        service_type: Exposure type of the model server Service
    """
    class_name: str = GatewayClassName.KGATEWAY.value
    listener_port: int = DEFAULT_GATEWAY_PORT
    service_type: ServiceType = ServiceType.CLUSTER_IP

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GatewaySpec":
        class_name = _parse_enum(
            GatewayClassName, data.get("className"), GatewayClassName.KGATEWAY, "gateway.className"
        )
        return cls(
            class_name=class_name.value,
            listener_port=_parse_int(data.get("listenerPort"), DEFAULT_GATEWAY_PORT, "gateway.listenerPort", minimum=1),
            service_type=_parse_enum(ServiceType, data.get("serviceType"), ServiceType.CLUSTER_IP, "gateway.serviceType"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "className": self.class_name,
            "listenerPort": self.listener_port,
            "serviceType": self.service_type.value,
        }


@dataclass(frozen=True)
class DesiredState:
    """
    The full desired deployment for one InferenceScheduler.

    Immutable for the duration of a reconcile.
    """
    model_server: ModelServerSpec
    endpoint_picker: EndpointPickerSpec = field(default_factory=EndpointPickerSpec)
    gateway: GatewaySpec = field(default_factory=GatewaySpec)

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "DesiredState":
        """
        Parse and default a spec mapping.

        Raises:
            SpecValidationError: If a required field is missing or a value is out of range
        """
        data = _parse_mapping(data, "spec")
        if "modelServer" not in data:
            raise SpecValidationError("modelServer", "is required")
        return cls(
            model_server=ModelServerSpec.from_dict(_parse_mapping(data.get("modelServer"), "modelServer")),
            endpoint_picker=EndpointPickerSpec.from_dict(
                _parse_mapping(data.get("endpointPicker"), "endpointPicker")
            ),
            gateway=GatewaySpec.from_dict(_parse_mapping(data.get("gateway"), "gateway")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize with all defaults materialized."""
        return {
            "modelServer": self.model_server.to_dict(),
            "endpointPicker": self.endpoint_picker.to_dict(),
            "gateway": self.gateway.to_dict(),
        }
