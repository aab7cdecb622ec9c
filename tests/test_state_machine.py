"""Tests for the phase state machine."""

import pytest

from infsched.schemas import Phase
from infsched.state_machine import InvalidTransition, Outcome, can_transition, transition


class TestTransitions:
    """Tests for the transition table."""

    def test_first_observed(self):
        assert transition(None, Outcome.FIRST_OBSERVED) is Phase.INITIALIZING

    @pytest.mark.parametrize("phase", list(Phase))
    def test_prerequisites_missing_from_any_phase(self, phase):
        assert transition(phase, Outcome.PREREQS_MISSING) is Phase.PREREQUISITES_MISSING

    @pytest.mark.parametrize("phase", list(Phase))
    def test_prerequisites_satisfied_from_any_phase(self, phase):
        assert transition(phase, Outcome.PREREQS_SATISFIED) is Phase.DEPLOYING

    def test_deploying_loops(self):
        assert transition(Phase.DEPLOYING, Outcome.WORKLOAD_NOT_READY) is Phase.DEPLOYING
        assert transition(Phase.DEPLOYING, Outcome.STEP_FAILED) is Phase.DEPLOYING

    def test_deploying_to_ready(self):
        assert transition(Phase.DEPLOYING, Outcome.ALL_READY) is Phase.READY


class TestInvalidTransitions:
    """Pairs outside the table are rejected."""

    @pytest.mark.parametrize("phase,outcome", [
        (None, Outcome.PREREQS_SATISFIED),
        (Phase.INITIALIZING, Outcome.ALL_READY),
        (Phase.PREREQUISITES_MISSING, Outcome.WORKLOAD_NOT_READY),
        (Phase.READY, Outcome.FIRST_OBSERVED),
        (Phase.READY, Outcome.ALL_READY),
    ])
    def test_rejected(self, phase, outcome):
        assert not can_transition(phase, outcome)
        with pytest.raises(InvalidTransition):
            transition(phase, outcome)

    def test_message(self):
        with pytest.raises(InvalidTransition, match="Invalid transition from Ready on first_observed"):
            transition(Phase.READY, Outcome.FIRST_OBSERVED)
