"""
Typed endpoint picker configuration, rendered into the routing ConfigMap.

The picker reads `plugins.yaml` from its mounted config volume. Only enabled
scorers are rendered, in a fixed order.
"""

from dataclasses import dataclass, field
from typing import Any

import yaml

from infsched.schemas import DesiredState, ScorerPlugin


ENDPOINT_PICKER_CONFIG_API_VERSION = "inference.networking.x-k8s.io/v1alpha1"
ENDPOINT_PICKER_CONFIG_KIND = "EndpointPickerConfig"
PLUGINS_FILE = "plugins.yaml"

LOAD_AWARE_SCORER = "load-aware-scorer"
PREFIX_CACHE_SCORER = "prefix-cache-scorer"
KV_CACHE_UTILIZATION_SCORER = "kv-cache-utilization-scorer"


@dataclass(frozen=True)
class PluginEntry:
    """One scorer entry in the picker config."""
    type: str
    weight: float
    parameters: dict[str, str] = field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        entry: dict[str, Any] = {"type": self.type, "weight": self.weight}
        if self.parameters:
            entry["parameters"] = {k: self.parameters[k] for k in sorted(self.parameters)}
        return entry


@dataclass(frozen=True)
class EndpointPickerConfig:
    plugins: tuple[PluginEntry, ...] = ()

    def to_wire(self) -> dict[str, Any]:
        return {
            "apiVersion": ENDPOINT_PICKER_CONFIG_API_VERSION,
            "kind": ENDPOINT_PICKER_CONFIG_KIND,
            "plugins": [p.to_wire() for p in self.plugins],
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_wire(), sort_keys=False)

    @classmethod
    def from_desired(cls, desired: DesiredState) -> "EndpointPickerConfig":
        plugins = desired.endpoint_picker.plugins
        scorers: list[tuple[str, ScorerPlugin]] = [
            (LOAD_AWARE_SCORER, plugins.load_aware_scorer),
            (PREFIX_CACHE_SCORER, plugins.prefix_cache_scorer),
            (KV_CACHE_UTILIZATION_SCORER, plugins.kv_cache_utilization_scorer),
        ]
        return cls(plugins=tuple(
            PluginEntry(type=name, weight=scorer.weight, parameters=dict(scorer.parameters))
            for name, scorer in scorers
            if scorer.enabled
        ))
