"""
PrerequisiteValidator - checks the cluster before anything is deployed.

Required capability types are probed by listing one instance. A type that is
not registered is reported as missing; any other store failure propagates so
the caller retries instead of treating the cluster as incomplete. Missing
entries of the same capability family are reported once.
"""

import logging
from dataclasses import dataclass

from infsched.errors import NoKindMatchError
from infsched.registry import CapabilityRegistry
from infsched.schemas import DesiredState
from infsched.store.base import ResourceStore


logger = logging.getLogger(__name__)

INSTALL_GUIDE_URL = "https://github.com/aneeshkp/inference-scheduler-operator/blob/main/README.md#prerequisites"
GATEWAY_CLASS_CRD_MISSING = "GatewayClass CRD"


def gateway_class_missing_message(class_name: str) -> str:
    return f"GatewayClass '{class_name}' (install gateway implementation: kgateway, istio, or gke)"


@dataclass(frozen=True)
class PrerequisiteResult:
    """
    Validator outcome.

    Attributes:
        missing: Ordered, de-duplicated missing entries (empty when satisfied)
    """
    missing: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.missing

    @property
    def message(self) -> str:
        if self.ok:
            return ""
        return f"missing prerequisites: {'; '.join(self.missing)}. See installation guide: {INSTALL_GUIDE_URL}"


class PrerequisiteValidator:
    """
    Probes the store for required capability types and the gateway class.

    Args:
        store: Store to probe
        registry: Capabilities to require
    """

    def __init__(self, store: ResourceStore, registry: CapabilityRegistry):
        self.store = store
        self.registry = registry

    def validate(self, desired: DesiredState) -> PrerequisiteResult:
        """
        Check every prerequisite for `desired`.

        Raises:
            StoreError: If a probe fails for any reason other than an
                unregistered type
        """
        missing: list[str] = []
        missing_families: set[str] = set()

        for capability in self.registry:
            if capability.family in missing_families:
                continue
            try:
                self.store.list(capability.kind, limit=1)
            except NoKindMatchError:
                logger.debug(f"Capability type not installed: {capability.kind}")
                missing_families.add(capability.family)
                missing.append(capability.missing_message)

        class_entry = self._check_gateway_class(desired.gateway.class_name)
        if class_entry:
            missing.append(class_entry)

        return PrerequisiteResult(missing=tuple(dict.fromkeys(missing)))

    def _check_gateway_class(self, class_name: str) -> str:
        """Return a missing entry for the gateway class, or "" if it exists."""
        try:
            classes = self.store.list(self.registry.gateway_class_kind)
        except NoKindMatchError:
            return GATEWAY_CLASS_CRD_MISSING
        names = {(c.get("metadata") or {}).get("name") for c in classes}
        if class_name not in names:
            return gateway_class_missing_message(class_name)
        return ""
