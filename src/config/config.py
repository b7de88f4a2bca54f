"""Token broker configuration from environment and an optional YAML file.

Settings are read from a ``broker:`` section of a YAML file (if one is given
or found at the default location) and then overridden by environment
variables, so container deployments can rely on the environment alone.

Environment variables ARE supported using ${VAR_NAME} syntax in YAML files.
"""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from core.errors.exceptions import ConfigurationError

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_PORT = 1982
DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_PROVIDER = "google"

# Default config file: config/config.yaml in src/ directory
DEFAULT_CONFIG_FILE = Path(__file__).parent / "config.yaml"

# Field name -> environment variable
ENV_VARS = {
    "api_key": "ARCADE_API_KEY",
    "config_directory": "ARCADE_CONFIG_DIRECTORY",
    "host": "ARCADE_HOST",
    "port": "PORT",
    "timeout_seconds": "ARCADE_TIMEOUT_SECONDS",
    "default_provider": "ARCADE_DEFAULT_PROVIDER",
    "log_level": "LOG_LEVEL",
    "log_format": "LOG_FORMAT",
    "log_file": "LOG_FILE",
}

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
VALID_LOG_FORMATS = ["json", "console"]

# Left behind by _expand_env_vars when a variable is unset and has no default
_UNRESOLVED_VAR = re.compile(r"\$\{([^}:]+)")


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        # Support both ${VAR} and ${VAR:-default} syntax
        pattern = r"\$\{([^}:]+)(?::-(([^}]*))?)?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


@dataclass
class BrokerConfig:
    """Token broker process configuration.

    Configuration structure (YAML):
        broker:
          api_key: ${ARCADE_API_KEY}
          config_directory: /etc/arcade/providers
          host: 0.0.0.0
          port: 1982
          timeout_seconds: 30
          default_provider: google
          log_level: INFO
          log_format: json
    """

    api_key: str = ""
    config_directory: str = ""
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    default_provider: str = DEFAULT_PROVIDER
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = None

    def validate(self) -> None:
        """Validate required fields and ranges.

        Raises:
            ConfigurationError: Naming the offending field
        """
        for field_name in ("api_key", "config_directory"):
            unresolved = _UNRESOLVED_VAR.search(getattr(self, field_name) or "")
            if unresolved:
                raise ConfigurationError(
                    f"{field_name} references unset environment variable {unresolved.group(1)}"
                )
        if not self.api_key:
            raise ConfigurationError(
                f"api_key is required (set {ENV_VARS['api_key']})"
            )
        if not self.config_directory:
            raise ConfigurationError(
                f"config_directory is required (set {ENV_VARS['config_directory']})"
            )
        if not 0 <= self.port <= 65535:
            raise ConfigurationError(f"port must be between 0 and 65535, got {self.port}")
        if self.timeout_seconds <= 0:
            raise ConfigurationError(
                f"timeout_seconds must be > 0, got {self.timeout_seconds}"
            )
        if not self.default_provider:
            raise ConfigurationError("default_provider cannot be empty")
        if self.log_level.upper() not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"log_level must be one of {VALID_LOG_LEVELS}, got '{self.log_level}'"
            )
        if self.log_format not in VALID_LOG_FORMATS:
            raise ConfigurationError(
                f"log_format must be one of {VALID_LOG_FORMATS}, got '{self.log_format}'"
            )


def _coerce(field_name: str, value: Any) -> Any:
    try:
        if field_name == "port":
            return int(value)
        if field_name == "timeout_seconds":
            return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{field_name} must be a number, got '{value}'") from e
    return value


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> BrokerConfig:
    """Load broker configuration.

    Precedence (lowest to highest): dataclass defaults, YAML ``broker:``
    section, environment variables, ``overrides``.

    Args:
        config_path: YAML file (default: config/config.yaml next to this
            module, skipped when absent)
        overrides: Explicit values, e.g. from command-line flags

    Raises:
        FileNotFoundError: If an explicit ``config_path`` does not exist
        ConfigurationError: If the resulting configuration is invalid
    """
    if config_path is not None and not Path(config_path).exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_FILE
    values: Dict[str, Any] = {}

    yaml_data = _expand_env_vars(load_yaml(path))
    if yaml_data:
        logger.info(f"Loading configuration from file: {path}")
        if not isinstance(yaml_data.get("broker"), dict):
            raise ConfigurationError(
                f"Invalid config file {path}: missing 'broker:' section"
            )
        values.update(
            {k: v for k, v in yaml_data["broker"].items() if k in ENV_VARS}
        )

    for field_name, env_var in ENV_VARS.items():
        env_value = os.getenv(env_var)
        if env_value:
            values[field_name] = env_value

    if overrides:
        logger.debug(f"Applying overrides: {list(overrides.keys())}")
        values.update({k: v for k, v in overrides.items() if v is not None})

    config = BrokerConfig(
        **{name: _coerce(name, value) for name, value in values.items()}
    )

    logger.debug("Validating configuration...")
    config.validate()
    logger.debug("Configuration validation passed")

    return config
