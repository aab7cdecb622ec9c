"""Tests for ReconcileLoop retry and requeue handling."""

from unittest.mock import MagicMock

import pytest

from infsched.config import OperatorConfig
from infsched.driver import ReconcileLoop
from infsched.errors import ConflictError, SpecValidationError
from infsched.reconciler import ReconcileResult, ReconciliationEngine
from infsched.utils import backoff_delay

from helpers import NAME, NAMESPACE, mark_ready


def scripted_engine(*results):
    engine = MagicMock(spec=ReconciliationEngine)
    engine.config = OperatorConfig()
    engine.reconcile.side_effect = list(results)
    return engine


class TestNextDelay:
    """Tests for the requeue contract."""

    def test_requeue_after(self):
        loop = ReconcileLoop(scripted_engine(), NAMESPACE, NAME)
        assert loop.next_delay(ReconcileResult.requeue_after(30)) == 30

    def test_done_stops(self):
        loop = ReconcileLoop(scripted_engine(), NAMESPACE, NAME)
        assert loop.next_delay(ReconcileResult.done()) is None

    def test_transient_backs_off(self):
        loop = ReconcileLoop(scripted_engine(), NAMESPACE, NAME)
        failed = ReconcileResult.failed(ConflictError("stale"))
        assert [loop.next_delay(failed) for _ in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_backoff_capped(self):
        assert backoff_delay(20) == 300.0
        assert backoff_delay(0) == 0.0

    def test_success_resets_backoff(self):
        loop = ReconcileLoop(scripted_engine(), NAMESPACE, NAME)
        failed = ReconcileResult.failed(ConflictError("stale"))
        loop.next_delay(failed)
        loop.next_delay(failed)
        loop.next_delay(ReconcileResult.requeue_after(30))
        assert loop.next_delay(failed) == 1.0

    def test_permanent_waits_steady_interval(self):
        loop = ReconcileLoop(scripted_engine(), NAMESPACE, NAME, config=OperatorConfig(requeue_steady_s=120))
        failed = ReconcileResult.failed(SpecValidationError("modelServer", "is required"))
        assert loop.next_delay(failed) == 120


class TestRun:
    """Tests for the loop itself."""

    def test_sleeps_requested_durations(self):
        engine = scripted_engine(
            ReconcileResult.requeue_after(60),
            ReconcileResult.failed(ConflictError("stale")),
            ReconcileResult.requeue_after(300),
            ReconcileResult.done(),
        )
        sleeps = []
        loop = ReconcileLoop(engine, NAMESPACE, NAME, sleep=sleeps.append)

        result = loop.run()

        assert result == ReconcileResult.done()
        assert sleeps == [60, 1.0, 300]
        assert loop.iterations == 4

    def test_context_reason_and_attempt(self):
        engine = scripted_engine(
            ReconcileResult.failed(ConflictError("stale")),
            ReconcileResult.done(),
        )
        loop = ReconcileLoop(engine, NAMESPACE, NAME, sleep=lambda _: None)
        loop.run()
        contexts = [call.args[2] for call in engine.reconcile.call_args_list]
        assert [(c.reason, c.attempt) for c in contexts] == [("startup", 1), ("retry", 2)]

    def test_max_iterations(self):
        engine = scripted_engine(*[ReconcileResult.requeue_after(30)] * 5)
        loop = ReconcileLoop(engine, NAMESPACE, NAME, sleep=lambda _: None)
        loop.run(max_iterations=2)
        assert engine.reconcile.call_count == 2

    def test_stop_from_sleep(self):
        engine = scripted_engine(*[ReconcileResult.requeue_after(30)] * 5)
        loop = ReconcileLoop(engine, NAMESPACE, NAME)
        loop._sleep = lambda _: loop.stop()
        loop.run()
        assert engine.reconcile.call_count == 1

    def test_drives_engine_to_ready(self, store, root, clock):
        engine = ReconciliationEngine(store, clock=clock)

        def sleep(_delay):
            mark_ready(store)

        loop = ReconcileLoop(engine, NAMESPACE, NAME, sleep=sleep)
        result = loop.run(max_iterations=5)

        assert result == ReconcileResult.requeue_after(300.0)
        assert store.get_root(NAMESPACE, NAME).status.phase.value == "Ready"


@pytest.mark.parametrize("failures,expected", [(1, 1.0), (2, 2.0), (9, 256.0), (10, 300.0)])
def test_backoff_schedule(failures, expected):
    assert backoff_delay(failures) == expected
