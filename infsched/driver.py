"""
ReconcileLoop - drives one InferenceScheduler by re-invoking the engine.

Honors the requeue contract:
- requeue_after(s): wait s seconds
- failed(transient error): exponential backoff (1s doubling up to 300s)
- failed(permanent error): wait the steady-state interval
- done: stop (object gone or finalized)
"""

import logging
import threading
from typing import Callable, Optional

from infsched.config import OperatorConfig
from infsched.context import ReconcileContext
from infsched.errors import is_transient
from infsched.reconciler import ReconcileResult, ReconciliationEngine
from infsched.utils import backoff_delay


logger = logging.getLogger(__name__)

BACKOFF_BASE_S = 1.0
BACKOFF_MULTIPLIER = 2.0
BACKOFF_MAX_S = 300.0


class ReconcileLoop:
    """
    Args:
        engine: Engine to invoke
        namespace: Namespace of the object
        name: Name of the object
        config: Supplies the steady-state interval used after permanent errors
        sleep: Called with each delay; returns early when stopped by default
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        namespace: str,
        name: str,
        config: Optional[OperatorConfig] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.engine = engine
        self.namespace = namespace
        self.name = name
        self.config = config or engine.config
        self._stop = threading.Event()
        self._sleep = sleep or self._stop.wait
        self._ctx: Optional[ReconcileContext] = None
        self.failures = 0
        self.iterations = 0

    def stop(self) -> None:
        """Stop after the current invocation; cancels it at its next store call."""
        self._stop.set()
        if self._ctx is not None:
            self._ctx.cancel()

    def next_delay(self, result: ReconcileResult) -> Optional[float]:
        """Delay before the next invocation, or None to stop."""
        if result.error is not None:
            if is_transient(result.error):
                self.failures += 1
                return backoff_delay(self.failures, BACKOFF_BASE_S, BACKOFF_MULTIPLIER, BACKOFF_MAX_S)
            self.failures = 0
            return self.config.requeue_steady_s
        self.failures = 0
        return result.requeue_seconds

    def run(self, max_iterations: Optional[int] = None) -> ReconcileResult:
        """
        Reconcile until done, stopped, or `max_iterations` invocations.

        Returns:
            The last ReconcileResult
        """
        result = ReconcileResult.done()
        reason = "startup"
        while not self._stop.is_set():
            self.iterations += 1
            self._ctx = ReconcileContext(reason=reason, attempt=self.failures + 1)
            result = self.engine.reconcile(self.namespace, self.name, self._ctx)
            self._ctx = None

            delay = self.next_delay(result)
            if delay is None:
                logger.info(f"{self.namespace}/{self.name} reconciled, stopping", extra={"event": "loop.done"})
                break
            if max_iterations is not None and self.iterations >= max_iterations:
                break

            reason = "retry" if result.is_error else "requeue"
            logger.debug(
                f"Next reconcile of {self.namespace}/{self.name} in {delay:g}s",
                extra={"event": "loop.wait", "metadata": {"delay": delay, "failures": self.failures}},
            )
            self._sleep(delay)
        return result
