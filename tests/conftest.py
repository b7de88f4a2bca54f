"""
pytest configuration for token broker tests.

Adds src directory to Python path for imports and keeps the process
environment from leaking into configuration tests.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

BROKER_ENV_VARS = [
    "ARCADE_API_KEY",
    "ARCADE_CONFIG_DIRECTORY",
    "ARCADE_HOST",
    "ARCADE_TIMEOUT_SECONDS",
    "ARCADE_DEFAULT_PROVIDER",
    "PORT",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_FILE",
    "GCE_METADATA_HOST",
    "VAULT_K8S_PATH_PATTERN",
]


@pytest.fixture(autouse=True)
def clean_broker_env(monkeypatch):
    """Unset broker environment variables for every test."""
    for name in BROKER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def clear_logging_context():
    """Reset logging context variables between tests."""
    from core.logging.context import clear_log_context

    clear_log_context()
    yield
    clear_log_context()
