"""
StatusAggregator - condition upsert and phase.

Conditions are keyed by type and never duplicated. lastTransitionTime changes
only when a condition's status value changes; reason and message updates keep
the previous transition time.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from infsched.schemas import Condition, ConditionStatus, ObservedStatus, Phase


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


class StatusAggregator:
    """
    Args:
        clock: Returns the current time (injectable for tests)
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or utc_now

    def set_condition(
        self,
        status: ObservedStatus,
        condition_type: str,
        value: ConditionStatus,
        reason: str,
        message: str,
        observed_generation: int = 0,
    ) -> Condition:
        """Insert or replace the condition of `condition_type`."""
        existing = status.get_condition(condition_type)
        if existing is not None and existing.status == value:
            transition_time = existing.last_transition_time
        else:
            transition_time = self.clock()

        condition = Condition(
            type=condition_type,
            status=value,
            reason=reason,
            message=message,
            last_transition_time=transition_time,
            observed_generation=observed_generation,
        )
        if existing is None:
            status.conditions.append(condition)
        else:
            status.conditions = [condition if c.type == condition_type else c for c in status.conditions]
        return condition

    def set_true(self, status: ObservedStatus, condition_type: str, reason: str, message: str,
                 observed_generation: int = 0) -> Condition:
        return self.set_condition(status, condition_type, ConditionStatus.TRUE, reason, message, observed_generation)

    def set_false(self, status: ObservedStatus, condition_type: str, reason: str, message: str,
                  observed_generation: int = 0) -> Condition:
        return self.set_condition(status, condition_type, ConditionStatus.FALSE, reason, message, observed_generation)

    @staticmethod
    def set_phase(status: ObservedStatus, phase: Phase) -> None:
        status.phase = phase
