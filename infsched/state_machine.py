"""
Phase state machine.

    Initializing -> PrerequisitesMissing <-> Deploying -> Ready
                                                 ^          |
                                                 +----------+

`transition` is a pure function over (phase, outcome). Any pair outside the
table raises InvalidTransition.
"""

from enum import Enum
from typing import Optional

from infsched.errors import InfschedError
from infsched.schemas import Phase


class Outcome(str, Enum):
    """What a reconcile step observed."""
    FIRST_OBSERVED = "first_observed"
    PREREQS_MISSING = "prereqs_missing"
    PREREQS_SATISFIED = "prereqs_satisfied"
    WORKLOAD_NOT_READY = "workload_not_ready"
    STEP_FAILED = "step_failed"
    ALL_READY = "all_ready"


class InvalidTransition(InfschedError):
    def __init__(self, phase: Optional[Phase], outcome: Outcome):
        self.phase = phase
        self.outcome = outcome
        current = phase.value if phase is not None else "<none>"
        super().__init__(f"Invalid transition from {current} on {outcome.value}")


_TRANSITIONS: dict[tuple[Optional[Phase], Outcome], Phase] = {
    (None, Outcome.FIRST_OBSERVED): Phase.INITIALIZING,
    (Phase.DEPLOYING, Outcome.WORKLOAD_NOT_READY): Phase.DEPLOYING,
    (Phase.DEPLOYING, Outcome.STEP_FAILED): Phase.DEPLOYING,
    (Phase.DEPLOYING, Outcome.ALL_READY): Phase.READY,
}

# Prerequisite outcomes are re-evaluated from every phase
for _phase in Phase:
    _TRANSITIONS[(_phase, Outcome.PREREQS_MISSING)] = Phase.PREREQUISITES_MISSING
    _TRANSITIONS[(_phase, Outcome.PREREQS_SATISFIED)] = Phase.DEPLOYING


def transition(phase: Optional[Phase], outcome: Outcome) -> Phase:
    """
    Next phase for `outcome` observed in `phase`.

    Raises:
        InvalidTransition: If the pair is not in the transition table
    """
    try:
        return _TRANSITIONS[(phase, outcome)]
    except KeyError:
        raise InvalidTransition(phase, outcome) from None


def can_transition(phase: Optional[Phase], outcome: Outcome) -> bool:
    return (phase, outcome) in _TRANSITIONS
