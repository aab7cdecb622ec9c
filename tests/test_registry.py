"""Tests for the capability registry."""

from infsched.registry import (
    GATEWAY_API_FAMILY,
    INFERENCE_EXTENSION_FAMILY,
    Capability,
    CapabilityRegistry,
    default_registry,
)
from infsched.schemas import kinds


class TestDefaultRegistry:

    def test_probe_order(self):
        assert [c.kind for c in default_registry()] == [kinds.GATEWAY, kinds.HTTP_ROUTE, kinds.INFERENCE_POOL]

    def test_families(self):
        families = {c.kind.kind: c.family for c in default_registry()}
        assert families == {
            "Gateway": GATEWAY_API_FAMILY,
            "HTTPRoute": GATEWAY_API_FAMILY,
            "InferencePool": INFERENCE_EXTENSION_FAMILY,
        }

    def test_gateway_class_kind(self):
        assert default_registry().gateway_class_kind == kinds.GATEWAY_CLASS


class TestCustomRegistry:

    def test_single_capability(self, store):
        from infsched.prerequisites import PrerequisiteValidator
        from infsched.schemas import DesiredState

        from helpers import BASE_SPEC

        registry = CapabilityRegistry(capabilities=(
            Capability(kind=kinds.INFERENCE_POOL, family=INFERENCE_EXTENSION_FAMILY, missing_message="pool CRD"),
        ))
        store.uninstall(kinds.INFERENCE_POOL)
        result = PrerequisiteValidator(store, registry).validate(DesiredState.from_dict(BASE_SPEC))
        assert result.missing == ("pool CRD",)
