"""
Token broker service.

Loads provider descriptors, builds one tokenizer per provider and serves
tokens over HTTP.

Modules:
    registry  - Descriptor model, registry construction and lookup
    server    - aiohttp application (/tokens, /healthz)
    client    - Client for services calling a running broker
"""

from token_broker.client import BrokerClient
from token_broker.registry import (
    ProviderDescriptor,
    ProviderRegistry,
    build_from_descriptors,
    load_descriptors_from_dir,
    load_registry_from_dir,
)
from token_broker.server import TokenBrokerServer

__all__ = [
    "BrokerClient",
    "ProviderDescriptor",
    "ProviderRegistry",
    "TokenBrokerServer",
    "build_from_descriptors",
    "load_descriptors_from_dir",
    "load_registry_from_dir",
]
