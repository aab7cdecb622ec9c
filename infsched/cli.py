"""
CLI interface for the infsched operator.

Commands:
- init: write a default config.yaml and .env
- render: print the child objects of a manifest (no cluster access)
- check: validate cluster prerequisites for an InferenceScheduler
- reconcile: run one reconcile pass
- run: drive one InferenceScheduler until interrupted
"""

from pathlib import Path

import click
import yaml

from infsched import __version__


@click.group()
@click.version_option(version=__version__, prog_name="infsched")
@click.pass_context
def main(ctx):
    """
    infsched - InferenceScheduler reconciliation engine.

    Deploys and converges model server, endpoint picker, InferencePool and
    Gateway objects for InferenceScheduler custom resources.
    """
    from infsched.config import load_config

    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = load_config()
    except Exception as e:
        # init and render work without a config; cluster commands check for it
        ctx.obj["config_error"] = str(e)


def _require_config(ctx):
    if "config" not in ctx.obj:
        click.echo(f"✗ Config not loaded: {ctx.obj.get('config_error', 'Unknown error')}", err=True)
        click.echo("Run 'infsched init' to create a configuration file.", err=True)
        raise SystemExit(1)
    return ctx.obj["config"]


def _make_store(config):
    """Store for cluster commands."""
    from infsched.store.kubernetes import KubernetesStore

    return KubernetesStore.from_config(config)


def _load_manifest(path: Path) -> dict:
    try:
        manifest = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise click.ClickException(f"Invalid YAML in {path}: {e}")
    if not isinstance(manifest, dict) or manifest.get("kind") != "InferenceScheduler":
        raise click.ClickException(f"{path} is not an InferenceScheduler manifest")
    return manifest


@main.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(force: bool):
    """Initialize infsched configuration."""
    from infsched.config import OperatorConfig, get_infsched_home

    home = get_infsched_home()
    if not home.exists():
        home.mkdir(parents=True)

    cfg_path = home / "config.yaml"
    if cfg_path.exists() and not force:
        click.echo(f"Config already exists at {cfg_path}. Use --force to overwrite.", err=True)
        raise SystemExit(1)

    default_cfg = OperatorConfig(env_file=str(home / ".env")).to_dict()
    cfg_path.write_text(yaml.safe_dump(default_cfg, sort_keys=False))

    env_path = home / ".env"
    if not env_path.exists():
        env_path.write_text("# KUBECONFIG=...\n# INFSCHED_NAMESPACE=...\n# INFSCHED_LOG_LEVEL=...\n")

    click.echo(f"Initialized infsched config at {cfg_path}")


@main.command("render")
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-n", "--namespace", default=None, help="Namespace (default: manifest namespace)")
def render(manifest: Path, namespace):
    """Print every child object of MANIFEST in creation order."""
    from infsched.builders import build_all
    from infsched.errors import SpecValidationError
    from infsched.schemas import DesiredState

    data = _load_manifest(manifest)
    metadata = data.get("metadata") or {}
    name = metadata.get("name")
    if not name:
        raise click.ClickException("metadata.name is required")
    namespace = namespace or metadata.get("namespace") or "default"

    try:
        desired = DesiredState.from_dict(data.get("spec"))
    except SpecValidationError as e:
        click.echo(f"✗ Invalid spec: {e}", err=True)
        raise SystemExit(1)

    objects = [d.to_object() for d in build_all(name, namespace, desired)]
    click.echo(yaml.safe_dump_all(objects, sort_keys=False), nl=False)


@main.command("check")
@click.argument("name")
@click.option("-n", "--namespace", default=None, help="Namespace (default: from config)")
@click.pass_context
def check(ctx, name: str, namespace):
    """Check cluster prerequisites for InferenceScheduler NAME."""
    from infsched.errors import InfschedError
    from infsched.prerequisites import PrerequisiteValidator
    from infsched.registry import default_registry
    from infsched.schemas import DesiredState

    config = _require_config(ctx)
    namespace = namespace or config.namespace
    store = _make_store(config)

    try:
        root = store.get_root(namespace, name)
        desired = DesiredState.from_dict(root.spec)
        result = PrerequisiteValidator(store, default_registry()).validate(desired)
    except InfschedError as e:
        click.echo(f"✗ Check failed: {e}", err=True)
        raise SystemExit(1)

    if result.ok:
        click.echo(f"✓ All prerequisites satisfied for {namespace}/{name}")
        return

    click.echo(f"✗ Missing prerequisites for {namespace}/{name}:", err=True)
    for entry in result.missing:
        click.echo(f"  - {entry}", err=True)
    raise SystemExit(1)


@main.command("reconcile")
@click.argument("name")
@click.option("-n", "--namespace", default=None, help="Namespace (default: from config)")
@click.pass_context
def reconcile(ctx, name: str, namespace):
    """Run one reconcile pass for InferenceScheduler NAME."""
    from infsched.errors import NotFoundError
    from infsched.reconciler import ReconciliationEngine

    config = _require_config(ctx)
    namespace = namespace or config.namespace
    store = _make_store(config)

    result = ReconciliationEngine(store, config=config).reconcile(namespace, name)
    try:
        status = store.get_root(namespace, name).status.to_dict()
    except NotFoundError:
        status = None

    if status is not None:
        click.echo(yaml.safe_dump({"status": status}, sort_keys=False), nl=False)

    if result.is_error:
        click.echo(f"✗ {namespace}/{name} {result.describe()}", err=True)
        raise SystemExit(1)
    click.echo(f"✓ {namespace}/{name} {result.describe()}")


@main.command("run")
@click.argument("name")
@click.option("-n", "--namespace", default=None, help="Namespace (default: from config)")
@click.option("--max-iterations", type=int, default=None, help="Stop after N reconcile passes")
@click.pass_context
def run(ctx, name: str, namespace, max_iterations):
    """Keep InferenceScheduler NAME reconciled until interrupted."""
    from infsched.driver import ReconcileLoop
    from infsched.reconciler import ReconciliationEngine
    from infsched.utils import setup_logging

    config = _require_config(ctx)
    namespace = namespace or config.namespace
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
    )
    store = _make_store(config)

    loop = ReconcileLoop(ReconciliationEngine(store, config=config), namespace, name, config=config)
    try:
        result = loop.run(max_iterations=max_iterations)
    except KeyboardInterrupt:
        loop.stop()
        click.echo("Interrupted")
        return

    click.echo(f"{namespace}/{name}: {result.describe()} after {loop.iterations} pass(es)")
    if result.is_error:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
