"""
infsched.schemas - Data model for the reconciliation engine.

DesiredState -> ResourceDescriptor -> ManagedObject.status

1. DesiredState: Parsed, defaulted InferenceScheduler spec (immutable per reconcile)
2. ManagedObject: The root object with finalizers, deletion marker and status
3. ResourceDescriptor: A child object with its deterministic name
4. ObservedStatus / Condition: Phase, conditions and readiness flags
"""

from .kinds import ResourceKind
from .desired_state import (
    DesiredState,
    ModelServerSpec,
    EndpointPickerSpec,
    GatewaySpec,
    PluginConfig,
    ScorerPlugin,
    ServerKind,
    GatewayClassName,
    ServiceType,
)
from .status import (
    Phase,
    Condition,
    ConditionStatus,
    ObservedStatus,
)
from .managed_object import (
    ManagedObject,
    OwnerReference,
)
from .descriptor import (
    ResourceDescriptor,
    ChildSuffix,
    child_name,
)

__all__ = [
    # Kinds
    "ResourceKind",
    # Desired state
    "DesiredState",
    "ModelServerSpec",
    "EndpointPickerSpec",
    "GatewaySpec",
    "PluginConfig",
    "ScorerPlugin",
    "ServerKind",
    "GatewayClassName",
    "ServiceType",
    # Status
    "Phase",
    "Condition",
    "ConditionStatus",
    "ObservedStatus",
    # Root
    "ManagedObject",
    "OwnerReference",
    # Children
    "ResourceDescriptor",
    "ChildSuffix",
    "child_name",
]
