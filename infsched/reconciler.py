"""
ReconciliationEngine - one reconcile pass for one InferenceScheduler.

Flow:
1. Read the root (absent: done)
2. Deletion requested: finalize and stop
3. Ensure the finalizer marker
4. Parse the desired state
5. First observation: phase Initializing
6. Validate prerequisites (missing: requeue)
7. Run the deployment stages in order, stopping at the first failed upsert
   or not-ready workload
8. Ready: persist and requeue at the steady-state interval

The engine never sleeps or retries. Every exit returns a ReconcileResult and
the driver decides when to call again. Status is persisted at exit points
only; writes on non-final exits are best-effort.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from infsched.builders import (
    Builder,
    build_endpoint_picker_deployment,
    build_endpoint_picker_service,
    build_gateway,
    build_http_route,
    build_inference_pool,
    build_model_server_deployment,
    build_model_server_service,
    build_role,
    build_role_binding,
    build_routing_config,
    build_service_account,
)
from infsched.conditions import StatusAggregator
from infsched.config import OperatorConfig
from infsched.context import CancellableStore, ReconcileContext
from infsched.errors import InfschedError, NotFoundError, ReconcileCancelled, SpecValidationError
from infsched.finalizer import CleanupHook, FinalizerManager, cleanup_hook_for
from infsched.prerequisites import PrerequisiteValidator
from infsched.readiness import ReadinessProbe
from infsched.registry import CapabilityRegistry, default_registry
from infsched.schemas import DesiredState, ManagedObject
from infsched.schemas.kinds import WORKLOAD_KINDS
from infsched.schemas.status import (
    EPP_READY,
    GATEWAY_READY,
    INFERENCE_POOL_READY,
    MODEL_SERVER_READY,
    PREREQUISITES_VALIDATED,
    SPEC_VALID,
)
from infsched.state_machine import Outcome, transition
from infsched.store.base import ResourceStore
from infsched.upsert import upsert


logger = logging.getLogger(__name__)

PREREQUISITES_OK_MESSAGE = "All prerequisites validated successfully"


@dataclass(frozen=True)
class ReconcileResult:
    """
    Outcome of one reconcile pass.

    Attributes:
        requeue_seconds: Delay before the next pass (None: no requeue needed)
        error: Hard error returned by the pass
    """
    requeue_seconds: Optional[float] = None
    error: Optional[BaseException] = None

    @classmethod
    def done(cls) -> "ReconcileResult":
        return cls()

    @classmethod
    def requeue_after(cls, seconds: float) -> "ReconcileResult":
        return cls(requeue_seconds=seconds)

    @classmethod
    def failed(cls, error: BaseException) -> "ReconcileResult":
        return cls(error=error)

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def describe(self) -> str:
        if self.error is not None:
            return f"failed: {self.error}"
        if self.requeue_seconds is not None:
            return f"requeue after {self.requeue_seconds:g}s"
        return "done"


@dataclass(frozen=True)
class Stage:
    """
    One deployment stage.

    Attributes:
        name: Stage name used in logs
        builders: Child builders, upserted in order
        condition: Condition type reporting the stage
        gated: Whether the stage waits for its workload to be ready
        status_field: ObservedStatus field holding ready replicas (gated)
            or the readiness flag (ungated)
        failure_reason: Condition reason when an upsert fails
        ready_message: Condition message once the stage is ready
        not_ready_message: Condition message while the workload is not ready
    """
    name: str
    builders: tuple[Builder, ...]
    condition: str
    gated: bool
    status_field: str
    failure_reason: str
    ready_message: str
    not_ready_message: str = ""


STAGES: tuple[Stage, ...] = (
    Stage(
        name="model-server",
        builders=(build_model_server_deployment, build_model_server_service),
        condition=MODEL_SERVER_READY,
        gated=True,
        status_field="model_server_replicas",
        failure_reason="DeploymentFailed",
        ready_message="All model server pods are running",
        not_ready_message="Model server pods are not ready yet",
    ),
    Stage(
        name="endpoint-picker",
        builders=(
            build_service_account,
            build_role,
            build_role_binding,
            build_routing_config,
            build_endpoint_picker_deployment,
            build_endpoint_picker_service,
        ),
        condition=EPP_READY,
        gated=True,
        status_field="epp_replicas",
        failure_reason="DeploymentFailed",
        ready_message="EPP is running",
        not_ready_message="EPP pods are not ready yet",
    ),
    Stage(
        name="inference-pool",
        builders=(build_inference_pool,),
        condition=INFERENCE_POOL_READY,
        gated=False,
        status_field="inference_pool_ready",
        failure_reason="CreationFailed",
        ready_message="InferencePool created successfully",
    ),
    Stage(
        name="gateway",
        builders=(build_gateway, build_http_route),
        condition=GATEWAY_READY,
        gated=False,
        status_field="gateway_ready",
        failure_reason="CreationFailed",
        ready_message="Gateway and HTTPRoute created successfully",
    ),
)


class ReconciliationEngine:
    """
    Drives one InferenceScheduler toward its desired state.

    Args:
        store: Object store
        registry: Required capabilities (default: Gateway API + Inference Extension)
        config: Requeue durations and cleanup mode
        cleanup: Cleanup hook override (default: from config.cleanup)
        clock: Condition timestamp source
    """

    def __init__(
        self,
        store: ResourceStore,
        registry: Optional[CapabilityRegistry] = None,
        config: Optional[OperatorConfig] = None,
        cleanup: Optional[CleanupHook] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.registry = registry or default_registry()
        self.config = config or OperatorConfig()
        self.cleanup = cleanup or cleanup_hook_for(self.config.cleanup)
        self.aggregator = StatusAggregator(clock)

    def reconcile(self, namespace: str, name: str, ctx: Optional[ReconcileContext] = None) -> ReconcileResult:
        """
        Run one reconcile pass.

        Never raises for store or spec failures; they are returned as
        ReconcileResult.failed(error).
        """
        ctx = ctx or ReconcileContext()
        store = CancellableStore(self.store, ctx)
        logger.info(
            f"Reconciling {namespace}/{name}",
            extra={"event": "reconcile.start", "metadata": {"reason": ctx.reason, "attempt": ctx.attempt}},
        )

        try:
            result = self._reconcile(store, namespace, name)
        except InfschedError as e:
            result = ReconcileResult.failed(e)

        log_extra = {
            "event": "reconcile.result",
            "metadata": {
                "namespace": namespace,
                "name": name,
                "requeue_seconds": result.requeue_seconds,
                "error": str(result.error) if result.error else None,
            },
        }
        if result.is_error:
            logger.warning(f"Reconcile {namespace}/{name} {result.describe()}", extra=log_extra)
        else:
            logger.info(f"Reconcile {namespace}/{name} {result.describe()}", extra=log_extra)
        return result

    def _reconcile(self, store: ResourceStore, namespace: str, name: str) -> ReconcileResult:
        try:
            root = store.get_root(namespace, name)
        except NotFoundError:
            logger.debug(f"{namespace}/{name} not found, nothing to do")
            return ReconcileResult.done()

        finalizers = FinalizerManager(store, self.cleanup)
        if root.deletion_requested:
            finalizers.finalize(root)
            return ReconcileResult.done()

        root = finalizers.ensure(root)
        status = root.status

        try:
            desired = DesiredState.from_dict(root.spec)
        except SpecValidationError as e:
            self.aggregator.set_false(status, SPEC_VALID, "InvalidSpec", str(e), root.generation)
            self._persist_best_effort(store, root)
            return ReconcileResult.failed(e)
        self.aggregator.set_true(status, SPEC_VALID, "Valid", "Spec is valid", root.generation)

        if status.phase is None:
            self.aggregator.set_phase(status, transition(None, Outcome.FIRST_OBSERVED))
            root = store.update_root_status(root)
            status = root.status

        status.observed_generation = root.generation

        try:
            prerequisites = PrerequisiteValidator(store, self.registry).validate(desired)
        except ReconcileCancelled:
            raise
        except InfschedError as e:
            message = f"Prerequisite check failed: {e}"
            logger.error(message, extra={"event": "prerequisites.error"})
            status.prerequisites_validated = False
            self.aggregator.set_false(status, PREREQUISITES_VALIDATED, "ValidationError", message, root.generation)
            self._persist_best_effort(store, root)
            return ReconcileResult.failed(e)
        if not prerequisites.ok:
            status.prerequisites_validated = False
            status.prerequisite_message = prerequisites.message
            self.aggregator.set_false(
                status, PREREQUISITES_VALIDATED, "ValidationFailed", prerequisites.message, root.generation
            )
            self.aggregator.set_phase(status, transition(status.phase, Outcome.PREREQS_MISSING))
            logger.info(
                f"Prerequisites missing for {namespace}/{name}",
                extra={"event": "prerequisites.missing", "metadata": {"missing": list(prerequisites.missing)}},
            )
            self._persist_best_effort(store, root)
            return ReconcileResult.requeue_after(self.config.requeue_prerequisites_s)

        status.prerequisites_validated = True
        status.prerequisite_message = PREREQUISITES_OK_MESSAGE
        self.aggregator.set_true(status, PREREQUISITES_VALIDATED, "Validated", PREREQUISITES_OK_MESSAGE, root.generation)
        self.aggregator.set_phase(status, transition(status.phase, Outcome.PREREQS_SATISFIED))

        probe = ReadinessProbe(store)
        for stage in STAGES:
            result = self._run_stage(store, probe, root, desired, stage)
            if result is not None:
                return result

        self.aggregator.set_phase(status, transition(status.phase, Outcome.ALL_READY))
        store.update_root_status(root)
        return ReconcileResult.requeue_after(self.config.requeue_steady_s)

    def _run_stage(
        self,
        store: ResourceStore,
        probe: ReadinessProbe,
        root: ManagedObject,
        desired: DesiredState,
        stage: Stage,
    ) -> Optional[ReconcileResult]:
        """Upsert a stage's children and evaluate it. Returns a result to stop the pass."""
        status = root.status
        descriptors = [builder(root.name, root.namespace, desired) for builder in stage.builders]

        for descriptor in descriptors:
            try:
                upsert(store, descriptor, root)
            except ReconcileCancelled:
                raise
            except InfschedError as e:
                message = f"Failed to create {descriptor.kind.kind} {descriptor.name}: {e}"
                logger.error(message, extra={"stage": stage.name, "event": "stage.failed"})
                return self._fail_stage(store, root, stage, stage.failure_reason, message, e)

        if not stage.gated:
            setattr(status, stage.status_field, True)
            self.aggregator.set_true(status, stage.condition, "Ready", stage.ready_message, root.generation)
            logger.debug(f"Stage {stage.name} complete", extra={"stage": stage.name, "event": "stage.ready"})
            return None

        workload = next(d for d in descriptors if d.kind in WORKLOAD_KINDS)
        try:
            readiness = probe.check(workload)
        except ReconcileCancelled:
            raise
        except InfschedError as e:
            message = f"Failed to read {workload.kind.kind} {workload.name}: {e}"
            logger.error(message, extra={"stage": stage.name, "event": "stage.failed"})
            return self._fail_stage(store, root, stage, "ProbeFailed", message, e)
        setattr(status, stage.status_field, readiness.ready_replicas)
        if not readiness.ready:
            self.aggregator.set_false(status, stage.condition, "NotReady", stage.not_ready_message, root.generation)
            self.aggregator.set_phase(status, transition(status.phase, Outcome.WORKLOAD_NOT_READY))
            logger.info(
                f"Stage {stage.name} waiting: {readiness.ready_replicas}/{readiness.desired_replicas} ready",
                extra={"stage": stage.name, "event": "stage.not_ready"},
            )
            self._persist_best_effort(store, root)
            return ReconcileResult.requeue_after(self.config.requeue_not_ready_s)

        self.aggregator.set_true(status, stage.condition, "Ready", stage.ready_message, root.generation)
        logger.debug(f"Stage {stage.name} ready", extra={"stage": stage.name, "event": "stage.ready"})
        return None

    def _fail_stage(
        self,
        store: ResourceStore,
        root: ManagedObject,
        stage: Stage,
        reason: str,
        message: str,
        error: InfschedError,
    ) -> ReconcileResult:
        status = root.status
        setattr(status, stage.status_field, 0 if stage.gated else False)
        self.aggregator.set_false(status, stage.condition, reason, message, root.generation)
        self.aggregator.set_phase(status, transition(status.phase, Outcome.STEP_FAILED))
        self._persist_best_effort(store, root)
        return ReconcileResult.failed(error)

    def _persist_best_effort(self, store: ResourceStore, root: ManagedObject) -> None:
        try:
            store.update_root_status(root)
        except ReconcileCancelled:
            raise
        except InfschedError as e:
            logger.warning(
                f"Failed to update status of {root.namespace}/{root.name}: {e}",
                extra={"event": "status.update_failed"},
            )
