import pytest
import yaml
from click.testing import CliRunner

from infsched.cli import main
from infsched.schemas import kinds
from infsched.store.memory import InMemoryStore

from helpers import BASE_SPEC, NAME, NAMESPACE, install_capabilities, make_root, mark_ready


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def home(runner, tmp_path, monkeypatch):
    home = tmp_path / "infsched_home"
    monkeypatch.setenv("INFSCHED_HOME", str(home))
    monkeypatch.delenv("INFSCHED_NAMESPACE", raising=False)
    monkeypatch.delenv("INFSCHED_LOG_LEVEL", raising=False)
    return home


@pytest.fixture
def configured(runner, home):
    result = runner.invoke(main, ["init"])
    assert result.exit_code == 0
    return home


@pytest.fixture
def cluster(monkeypatch):
    store = InMemoryStore()
    install_capabilities(store)
    store.create(kinds.INFERENCE_SCHEDULER, make_root())
    monkeypatch.setattr("infsched.cli._make_store", lambda config: store)
    monkeypatch.setattr("infsched.utils.setup_logging", lambda **kwargs: None)
    return store


@pytest.fixture
def manifest(tmp_path):
    path = tmp_path / "scheduler.yaml"
    path.write_text(yaml.safe_dump(make_root()))
    return path


# =============================================================================
# init
# =============================================================================


def test_init_creates_files(runner, home):
    result = runner.invoke(main, ["init"])
    assert result.exit_code == 0
    assert "Initialized infsched config" in result.output

    cfg = yaml.safe_load((home / "config.yaml").read_text())
    assert cfg["namespace"] == "default"
    assert cfg["cleanup"] == "cascade"
    assert cfg["env_file"] == str(home / ".env")
    assert (home / ".env").exists()


def test_init_does_not_overwrite_without_force(runner, home):
    home.mkdir(parents=True)
    (home / "config.yaml").write_text("namespace: mine\n")

    result = runner.invoke(main, ["init"])
    assert result.exit_code == 1
    assert "Config already exists" in result.output
    assert (home / "config.yaml").read_text() == "namespace: mine\n"


def test_init_force_overwrites(runner, home):
    home.mkdir(parents=True)
    (home / "config.yaml").write_text("namespace: mine\n")

    result = runner.invoke(main, ["init", "--force"])
    assert result.exit_code == 0
    assert yaml.safe_load((home / "config.yaml").read_text())["namespace"] == "default"


def test_version(runner, home):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "infsched" in result.output


# =============================================================================
# render
# =============================================================================


def test_render_prints_children_in_order(runner, home, manifest):
    result = runner.invoke(main, ["render", str(manifest)])
    assert result.exit_code == 0

    docs = list(yaml.safe_load_all(result.output))
    assert [(d["kind"], d["metadata"]["name"]) for d in docs] == [
        ("Deployment", "llama-model-server"),
        ("Service", "llama-model-server-svc"),
        ("ServiceAccount", "llama-epp-identity"),
        ("Role", "llama-epp-identity"),
        ("RoleBinding", "llama-epp-identity"),
        ("ConfigMap", "llama-epp-config"),
        ("Deployment", "llama-epp"),
        ("Service", "llama-epp-svc"),
        ("InferencePool", "llama-pool"),
        ("Gateway", "llama-gateway"),
        ("HTTPRoute", "llama-route"),
    ]
    assert all(d["metadata"]["namespace"] == NAMESPACE for d in docs)


def test_render_namespace_override(runner, home, manifest):
    result = runner.invoke(main, ["render", str(manifest), "-n", "other"])
    assert result.exit_code == 0
    assert {d["metadata"]["namespace"] for d in yaml.safe_load_all(result.output)} == {"other"}


def test_render_invalid_spec(runner, home, tmp_path):
    spec = dict(BASE_SPEC)
    del spec["modelServer"]
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.safe_dump(make_root(spec=spec)))

    result = runner.invoke(main, ["render", str(path)])
    assert result.exit_code == 1
    assert "Invalid spec" in result.output


def test_render_rejects_other_kinds(runner, home, tmp_path):
    path = tmp_path / "cm.yaml"
    path.write_text(yaml.safe_dump({"kind": "ConfigMap", "metadata": {"name": "x"}}))

    result = runner.invoke(main, ["render", str(path)])
    assert result.exit_code != 0
    assert "not an InferenceScheduler manifest" in result.output


# =============================================================================
# Cluster commands
# =============================================================================


def test_cluster_commands_require_config(runner, home):
    result = runner.invoke(main, ["check", NAME, "-n", NAMESPACE])
    assert result.exit_code == 1
    assert "Config not loaded" in result.output
    assert "infsched init" in result.output


def test_check_ok(runner, configured, cluster):
    result = runner.invoke(main, ["check", NAME, "-n", NAMESPACE])
    assert result.exit_code == 0
    assert f"All prerequisites satisfied for {NAMESPACE}/{NAME}" in result.output


def test_check_missing(runner, configured, cluster):
    cluster.uninstall(kinds.INFERENCE_POOL)

    result = runner.invoke(main, ["check", NAME, "-n", NAMESPACE])
    assert result.exit_code == 1
    assert "Missing prerequisites" in result.output
    assert "Gateway API Inference Extension v1.1.0+" in result.output


def test_check_unknown_object(runner, configured, cluster):
    result = runner.invoke(main, ["check", "nope", "-n", NAMESPACE])
    assert result.exit_code == 1
    assert "Check failed" in result.output


def test_reconcile_one_pass(runner, configured, cluster):
    result = runner.invoke(main, ["reconcile", NAME, "-n", NAMESPACE])
    assert result.exit_code == 0
    assert f"{NAMESPACE}/{NAME} requeue after 30s" in result.output
    assert "phase: Deploying" in result.output


def test_reconcile_reports_failure(runner, configured, cluster):
    root = cluster.get(kinds.INFERENCE_SCHEDULER, NAMESPACE, NAME)
    root["spec"]["modelServer"]["type"] = "llamacpp"
    cluster.update(kinds.INFERENCE_SCHEDULER, root)

    result = runner.invoke(main, ["reconcile", NAME, "-n", NAMESPACE])
    assert result.exit_code == 1
    assert "failed" in result.output


def test_run_until_max_iterations(runner, configured, cluster):
    result = runner.invoke(main, ["run", NAME, "-n", NAMESPACE, "--max-iterations", "1"])
    assert result.exit_code == 0
    assert f"{NAMESPACE}/{NAME}: requeue after 30s after 1 pass(es)" in result.output


def test_run_reaches_ready(runner, configured, cluster, monkeypatch):
    monkeypatch.setattr("infsched.driver.ReconcileLoop.run", _run_marking_ready(cluster))

    result = runner.invoke(main, ["run", NAME, "-n", NAMESPACE, "--max-iterations", "5"])
    assert result.exit_code == 0
    assert "requeue after 300s" in result.output
    assert cluster.get_root(NAMESPACE, NAME).status.phase.value == "Ready"


def _run_marking_ready(store):
    from infsched.driver import ReconcileLoop

    original = ReconcileLoop.run

    def run(self, max_iterations=None):
        self._sleep = lambda _delay: mark_ready(store)
        return original(self, max_iterations=max_iterations)

    return run
