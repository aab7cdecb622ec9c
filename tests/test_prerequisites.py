"""Tests for PrerequisiteValidator.

Tests cover:
- Satisfied cluster
- Missing capability types with family dedup
- Gateway class checks
- Fail-closed on probe errors
"""

import pytest

from infsched.errors import TransientStoreError
from infsched.prerequisites import INSTALL_GUIDE_URL, PrerequisiteResult, PrerequisiteValidator
from infsched.registry import GATEWAY_API_FAMILY, Capability, CapabilityRegistry
from infsched.schemas import DesiredState, kinds
from infsched.store.memory import InMemoryStore

from helpers import BASE_SPEC, install_capabilities


GATEWAY_API_MISSING = (
    "Gateway API v1.3.0+ (install: kubectl apply -f "
    "https://github.com/kubernetes-sigs/gateway-api/releases/download/v1.3.0/standard-install.yaml)"
)
INFERENCE_EXTENSION_MISSING = (
    "Gateway API Inference Extension v1.1.0+ (install: kubectl apply -f "
    "https://github.com/kubernetes-sigs/gateway-api-inference-extension/releases/download/v1.1.0/manifests.yaml)"
)


def desired_with_class(class_name="kgateway"):
    return DesiredState.from_dict(dict(BASE_SPEC, gateway={"className": class_name}))


class TestSatisfied:

    def test_all_present(self, store, registry):
        result = PrerequisiteValidator(store, registry).validate(desired_with_class())
        assert result.ok
        assert result.missing == ()
        assert result.message == ""


class TestMissingTypes:
    """Tests for capability type probing."""

    def test_nothing_installed(self, bare_store, registry):
        result = PrerequisiteValidator(bare_store, registry).validate(desired_with_class())
        assert result.missing == (GATEWAY_API_MISSING, INFERENCE_EXTENSION_MISSING, "GatewayClass CRD")

    def test_httproute_deduped_against_gateway(self, registry):
        store = InMemoryStore()
        store.install(kinds.INFERENCE_POOL, kinds.GATEWAY_CLASS)
        result = PrerequisiteValidator(store, registry).validate(desired_with_class())
        assert "Gateway API HTTPRoute CRD" not in result.missing
        assert result.missing.count(GATEWAY_API_MISSING) == 1

    def test_httproute_alone_missing(self, registry):
        store = InMemoryStore()
        install_capabilities(store)
        store.uninstall(kinds.HTTP_ROUTE)
        result = PrerequisiteValidator(store, registry).validate(desired_with_class())
        assert result.missing == ("Gateway API HTTPRoute CRD",)

    def test_inference_extension_missing(self, registry):
        store = InMemoryStore()
        install_capabilities(store)
        store.uninstall(kinds.INFERENCE_POOL)
        result = PrerequisiteValidator(store, registry).validate(desired_with_class())
        assert result.missing == (INFERENCE_EXTENSION_MISSING,)

    def test_message(self):
        result = PrerequisiteResult(missing=("a", "b"))
        assert result.message == f"missing prerequisites: a; b. See installation guide: {INSTALL_GUIDE_URL}"

    def test_registry_is_respected(self, bare_store):
        registry = CapabilityRegistry(capabilities=(
            Capability(kind=kinds.GATEWAY, family=GATEWAY_API_FAMILY, missing_message="only gateways"),
        ))
        bare_store.install(kinds.GATEWAY_CLASS)
        result = PrerequisiteValidator(bare_store, registry).validate(desired_with_class())
        assert result.missing == ("only gateways", "GatewayClass 'kgateway' (install gateway implementation: kgateway, istio, or gke)")


class TestGatewayClass:
    """Tests for the named gateway class check."""

    def test_requested_class_absent(self, store, registry):
        result = PrerequisiteValidator(store, registry).validate(desired_with_class("istio"))
        assert result.missing == (
            "GatewayClass 'istio' (install gateway implementation: kgateway, istio, or gke)",
        )

    def test_requested_class_present(self, registry):
        store = InMemoryStore()
        install_capabilities(store, gateway_classes=("kgateway", "istio"))
        assert PrerequisiteValidator(store, registry).validate(desired_with_class("istio")).ok


class TestFailClosed:
    """Probe failures propagate instead of reporting missing."""

    def test_probe_error_propagates(self, store, registry):
        store.inject_error("list", TransientStoreError("unavailable", status=503))
        with pytest.raises(TransientStoreError):
            PrerequisiteValidator(store, registry).validate(desired_with_class())
