import pytest

from infsched.config import OperatorConfig
from infsched.reconciler import ReconciliationEngine
from infsched.registry import default_registry
from infsched.schemas import kinds
from infsched.store.memory import InMemoryStore

from helpers import FakeClock, install_capabilities, make_root


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def operator_config():
    return OperatorConfig()


@pytest.fixture
def store():
    """A store with every capability installed and the kgateway class present."""
    s = InMemoryStore()
    install_capabilities(s)
    return s


@pytest.fixture
def bare_store():
    """A store with only built-in kinds (no capability CRDs)."""
    return InMemoryStore()


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def engine(store, registry, operator_config, clock):
    return ReconciliationEngine(store, registry=registry, config=operator_config, clock=clock)


@pytest.fixture
def root(store):
    return store.create(kinds.INFERENCE_SCHEDULER, make_root())
