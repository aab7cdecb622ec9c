"""
Status schemas - the observed state written back to the InferenceScheduler.

ObservedStatus is mutable: the engine accumulates conditions and flags on it
during a reconcile and persists it at each exit point. Conditions are
immutable values replaced by type (see infsched.conditions).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class Phase(str, Enum):
    """Lifecycle phase of an InferenceScheduler."""
    INITIALIZING = "Initializing"
    PREREQUISITES_MISSING = "PrerequisitesMissing"
    DEPLOYING = "Deploying"
    READY = "Ready"


class ConditionStatus(str, Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


# Condition types
PREREQUISITES_VALIDATED = "PrerequisitesValidated"
SPEC_VALID = "SpecValid"
MODEL_SERVER_READY = "ModelServerReady"
EPP_READY = "EPPReady"
INFERENCE_POOL_READY = "InferencePoolReady"
GATEWAY_READY = "GatewayReady"


def _format_time(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def _parse_time(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class Condition:
    """
    A named health signal.

    Attributes:
        type: Condition type, unique within a status
        status: True, False or Unknown
        reason: CamelCase machine-readable reason
        message: Human-readable detail
        last_transition_time: When status last changed value
        observed_generation: Object generation the condition was computed from
    """
    type: str
    status: ConditionStatus
    reason: str
    message: str
    last_transition_time: datetime
    observed_generation: int = 0

    @property
    def is_true(self) -> bool:
        return self.status == ConditionStatus.TRUE

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "status": self.status.value,
            "reason": self.reason,
            "message": self.message,
            "lastTransitionTime": _format_time(self.last_transition_time),
            "observedGeneration": self.observed_generation,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Condition":
        return cls(
            type=data["type"],
            status=ConditionStatus(data["status"]),
            reason=data.get("reason", ""),
            message=data.get("message", ""),
            last_transition_time=_parse_time(data["lastTransitionTime"]),
            observed_generation=data.get("observedGeneration", 0),
        )


@dataclass
class ObservedStatus:
    """
    Observed state of an InferenceScheduler.

    `phase` is set directly by the engine and is not derived from
    `conditions`; callers keep the two consistent.
    """
    phase: Optional[Phase] = None
    conditions: list[Condition] = field(default_factory=list)
    model_server_replicas: int = 0
    epp_replicas: int = 0
    gateway_ready: bool = False
    inference_pool_ready: bool = False
    prerequisites_validated: bool = False
    prerequisite_message: str = ""
    observed_generation: int = 0

    def get_condition(self, condition_type: str) -> Optional[Condition]:
        for condition in self.conditions:
            if condition.type == condition_type:
                return condition
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the status subresource wire format."""
        result: dict[str, Any] = {}
        if self.phase is not None:
            result["phase"] = self.phase.value
        if self.conditions:
            result["conditions"] = [c.to_dict() for c in self.conditions]
        result.update({
            "modelServerReplicas": self.model_server_replicas,
            "eppReplicas": self.epp_replicas,
            "gatewayReady": self.gateway_ready,
            "inferencePoolReady": self.inference_pool_ready,
            "prerequisitesValidated": self.prerequisites_validated,
            "prerequisiteMessage": self.prerequisite_message,
            "observedGeneration": self.observed_generation,
        })
        return result

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "ObservedStatus":
        data = data or {}
        phase = data.get("phase")
        return cls(
            phase=Phase(phase) if phase else None,
            conditions=[Condition.from_dict(c) for c in data.get("conditions", [])],
            model_server_replicas=data.get("modelServerReplicas", 0),
            epp_replicas=data.get("eppReplicas", 0),
            gateway_ready=data.get("gatewayReady", False),
            inference_pool_ready=data.get("inferencePoolReady", False),
            prerequisites_validated=data.get("prerequisitesValidated", False),
            prerequisite_message=data.get("prerequisiteMessage", ""),
            observed_generation=data.get("observedGeneration", 0),
        )
