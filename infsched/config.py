"""
Configuration management for the infsched operator.

Loads config.yaml from $INFSCHED_HOME (default ~/.config/infsched).
"""

import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv


CLEANUP_MODES = ("cascade", "sweep")
LOG_FORMATS = ("structured", "pretty")


class ConfigError(Exception):
    """Configuration validation error."""
    pass


def get_infsched_home() -> Path:
    """Return the configuration directory, honoring INFSCHED_HOME."""
    home = os.environ.get("INFSCHED_HOME")
    if home:
        return Path(home).expanduser()
    return Path("~/.config/infsched").expanduser()


def get_config_path() -> Path:
    return get_infsched_home() / "config.yaml"


@dataclass
class OperatorConfig:
    """
    Operator configuration.

    Attributes:
        namespace: Default namespace for CLI commands
        kubeconfig: Path to a kubeconfig file (None = in-cluster, then default kubeconfig)
        context: kubeconfig context to use
        request_timeout_s: Per-call timeout for store requests
        requeue_prerequisites_s: Requeue delay while prerequisites are missing
        requeue_not_ready_s: Requeue delay while a workload is not ready
        requeue_steady_s: Requeue delay once the object is Ready
        cleanup: Deletion cleanup hook ("cascade" or "sweep")
        log_level: Logging level
        log_format: "structured" (JSON) or "pretty"
        log_file: Optional log file path
        env_file: Optional .env file loaded into the process environment
    """
    namespace: str = "default"
    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    request_timeout_s: float = 30.0
    requeue_prerequisites_s: float = 60.0
    requeue_not_ready_s: float = 30.0
    requeue_steady_s: float = 300.0
    cleanup: str = "cascade"
    log_level: str = "INFO"
    log_format: str = "structured"
    log_file: Optional[str] = None
    env_file: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OperatorConfig":
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
        config = cls(**data)
        config.validate()
        return config

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def validate(self) -> None:
        """Validate field values."""
        if self.cleanup not in CLEANUP_MODES:
            raise ConfigError(f"cleanup must be one of {', '.join(CLEANUP_MODES)} (got {self.cleanup!r})")
        if self.log_format not in LOG_FORMATS:
            raise ConfigError(f"log_format must be one of {', '.join(LOG_FORMATS)} (got {self.log_format!r})")
        for name in ("request_timeout_s", "requeue_prerequisites_s", "requeue_not_ready_s", "requeue_steady_s"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ConfigError(f"{name} must be a positive number (got {value!r})")
        if not self.namespace:
            raise ConfigError("namespace must not be empty")

    def get_log_file_path(self) -> Optional[Path]:
        if not self.log_file:
            return None
        return Path(self.log_file).expanduser()


def load_config(config_path: Optional[Path] = None) -> OperatorConfig:
    """
    Load operator configuration.

    Args:
        config_path: Path to config.yaml (default: $INFSCHED_HOME/config.yaml)

    Returns:
        Validated OperatorConfig

    Raises:
        FileNotFoundError: If the config file does not exist
        ConfigError: If the config file is invalid
    """
    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(
            f"infsched config.yaml not found at {config_path}. Run 'infsched init' to create one."
        )

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")

    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a mapping")

    env_file = data.get("env_file")
    if env_file:
        load_dotenv(Path(env_file).expanduser(), override=False)

    # Environment overrides
    if os.environ.get("INFSCHED_NAMESPACE"):
        data["namespace"] = os.environ["INFSCHED_NAMESPACE"]
    if os.environ.get("INFSCHED_LOG_LEVEL"):
        data["log_level"] = os.environ["INFSCHED_LOG_LEVEL"]

    return OperatorConfig.from_dict(data)
