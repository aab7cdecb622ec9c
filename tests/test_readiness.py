"""Tests for workload readiness."""

import pytest

from infsched.builders import build_inference_pool, build_model_server_deployment
from infsched.errors import NotFoundError, PermanentError, UnsupportedKindError
from infsched.readiness import ReadinessProbe, workload_readiness
from infsched.schemas import DesiredState, ManagedObject, kinds
from infsched.upsert import upsert

from helpers import BASE_SPEC, NAME, NAMESPACE


class TestWorkloadReadiness:

    def test_all_replicas_ready(self):
        readiness = workload_readiness({"spec": {"replicas": 2}, "status": {"readyReplicas": 2}})
        assert readiness.ready
        assert (readiness.ready_replicas, readiness.desired_replicas) == (2, 2)

    def test_missing_status_counts_as_zero(self):
        readiness = workload_readiness({"spec": {"replicas": 2}})
        assert not readiness.ready
        assert readiness.ready_replicas == 0

    def test_replicas_default_to_one(self):
        assert workload_readiness({"spec": {}, "status": {"readyReplicas": 1}}).ready


class TestReadinessCheck:

    def test_reads_stored_workload(self, store, root):
        descriptor = build_model_server_deployment(NAME, NAMESPACE, DesiredState.from_dict(BASE_SPEC))
        upsert(store, descriptor, ManagedObject.from_dict(root))
        store.set_status(kinds.DEPLOYMENT, NAMESPACE, descriptor.name, {"readyReplicas": 1})

        readiness = ReadinessProbe(store).check(descriptor)

        assert not readiness.ready
        assert readiness.ready_replicas == 1

    def test_missing_workload(self, store):
        descriptor = build_model_server_deployment(NAME, NAMESPACE, DesiredState.from_dict(BASE_SPEC))
        with pytest.raises(NotFoundError):
            ReadinessProbe(store).check(descriptor)

    def test_non_workload_kind(self, store):
        descriptor = build_inference_pool(NAME, NAMESPACE, DesiredState.from_dict(BASE_SPEC))
        with pytest.raises(UnsupportedKindError) as exc_info:
            ReadinessProbe(store).check(descriptor)
        assert isinstance(exc_info.value, PermanentError)
