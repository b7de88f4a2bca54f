"""Configuration loading for the token broker.

Process settings come from environment variables, optionally seeded by a
``broker:`` section in config/config.yaml (``${VAR}`` expansion supported).

Usage Examples
--------------

    from config import load_config

    config = load_config()
    config.port               # 1982 unless PORT is set
    config.config_directory   # directory of provider descriptor files
"""

from config.config import BrokerConfig, load_config

__all__ = [
    "BrokerConfig",
    "load_config",
]
