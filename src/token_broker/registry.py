"""
Provider registry: descriptors in, live tokenizers out.

Each provider is declared by one JSON descriptor file. The registry is built
once at startup, all-or-nothing, and is read-only afterwards.

Descriptor example (oauth2-client-credentials):
    {
        "name": "azure",
        "type": "oauth2-client-credentials",
        "clientId": "...",
        "clientSecret": "...",
        "resource": "https://management.azure.com/",
        "loginEndpoint": "https://login.microsoftonline.com/<tenant>/oauth2/token"
    }
"""

import json
import logging
import os
from collections.abc import Iterable
from pathlib import Path
from types import MappingProxyType
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from core.errors.exceptions import ConfigurationError
from core.tokens import (
    GoogleTokenizer,
    MicrosoftTokenizer,
    RancherTokenizer,
    VaultK8sTokenizer,
)
from core.tokens.base import DEFAULT_TIMEOUT_SECONDS, BaseTokenizer
from core.types import Tokenizer

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "google"

PROVIDER_TYPES = {
    "metadata-service": "metadata-service",
    "oauth2-client-credentials": "oauth2-client-credentials",
    "proprietary-login": "proprietary-login",
    "secret-store": "secret-store",
    # Deployment names used by existing descriptor files
    "google": "metadata-service",
    "microsoft": "oauth2-client-credentials",
    "rancher": "proprietary-login",
    "vault-k8s": "secret-store",
}


class ProviderDescriptor(BaseModel):
    """
    Declarative configuration of one token provider.

    Field names follow the camelCase JSON keys of descriptor files; unknown
    keys are ignored. ``source`` records where the descriptor came from and is
    only used in error messages.
    """

    name: str = Field(default="", description="Unique (case-insensitive) provider name")
    type: str = Field(default="", description="Provider type or deployment alias")

    # oauth2-client-credentials
    client_id: Optional[str] = Field(default=None, alias="clientId")
    client_secret: Optional[str] = Field(default=None, alias="clientSecret")
    resource: Optional[str] = None
    login_endpoint: Optional[str] = Field(default=None, alias="loginEndpoint")

    # proprietary-login / secret-store
    username: Optional[str] = None
    password: Optional[str] = None
    url: Optional[str] = None
    root_ca: Optional[str] = Field(default=None, alias="rootCA")
    short_expiration: Optional[int] = Field(
        default=None,
        alias="shortExpiration",
        description="Seconds that replace the upstream-declared token lifetime",
    )

    source: str = Field(default="", exclude=True)

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }

    @field_validator("short_expiration")
    @classmethod
    def validate_short_expiration(cls, v: Optional[int]) -> Optional[int]:
        """Zero means no override."""
        if v is not None and v < 0:
            raise ValueError("shortExpiration cannot be negative")
        return v or None

    @property
    def canonical_type(self) -> Optional[str]:
        return PROVIDER_TYPES.get(self.type.strip().lower())

    def describe_source(self) -> str:
        return self.source or "<unknown source>"


def build_tokenizer(
    descriptor: ProviderDescriptor, timeout: float = DEFAULT_TIMEOUT_SECONDS
) -> BaseTokenizer:
    """
    Construct the tokenizer for one descriptor.

    Raises:
        ConfigurationError: On an unknown type or a missing required attribute
    """
    kind = descriptor.canonical_type
    name = descriptor.name

    if kind == "metadata-service":
        return GoogleTokenizer(name, timeout=timeout)

    if kind == "oauth2-client-credentials":
        return MicrosoftTokenizer(
            name,
            client_id=descriptor.client_id or "",
            client_secret=descriptor.client_secret or "",
            resource=descriptor.resource or "",
            login_endpoint=descriptor.login_endpoint or "",
            timeout=timeout,
        )

    if kind == "proprietary-login":
        return RancherTokenizer(
            name,
            username=descriptor.username or "",
            password=descriptor.password or "",
            url=descriptor.url or "",
            root_ca=descriptor.root_ca,
            short_expiration=descriptor.short_expiration,
            timeout=timeout,
        )

    if kind == "secret-store":
        return VaultK8sTokenizer(
            name,
            url=descriptor.url or "",
            password=descriptor.password or "",
            timeout=timeout,
        )

    raise ConfigurationError(
        f"unsupported token provider type: {descriptor.type}",
        context={"provider": name, "source": descriptor.source},
    )


class ProviderRegistry:
    """
    Immutable provider name -> tokenizer mapping.

    Lookup tries the exact requested name first. Tokenizers that accept
    subnames (``accepts_subnames``) also serve ``<name>-<suffix>`` requests;
    the longest registered name wins.
    """

    def __init__(
        self,
        tokenizers: dict[str, Tokenizer],
        default_provider: str = DEFAULT_PROVIDER,
    ):
        self._tokenizers = MappingProxyType(dict(tokenizers))
        self.default_provider = default_provider
        self._prefixed = tuple(
            sorted(
                ((name, tok) for name, tok in self._tokenizers.items() if tok.accepts_subnames),
                key=lambda item: len(item[0]),
                reverse=True,
            )
        )

    @property
    def tokenizers(self) -> MappingProxyType:
        return self._tokenizers

    def names(self) -> list[str]:
        return sorted(self._tokenizers)

    def resolve_name(self, name: Optional[str]) -> str:
        """Requested name with the default applied."""
        return name or self.default_provider

    def lookup(self, name: Optional[str]) -> Optional[Tokenizer]:
        """
        Find the tokenizer serving ``name``.

        Args:
            name: Requested provider name; empty or None selects the default

        Returns:
            Tokenizer, or None if no provider serves the name
        """
        name = self.resolve_name(name)

        tokenizer = self._tokenizers.get(name)
        if tokenizer is not None:
            return tokenizer

        for registered, candidate in self._prefixed:
            if name.startswith(registered + "-"):
                return candidate
        return None

    async def close(self) -> None:
        """Close every tokenizer's HTTP session."""
        for name, tokenizer in self._tokenizers.items():
            try:
                await tokenizer.close()
            except Exception as e:
                logger.warning(f"Error closing token provider '{name}': {e}")

    def __len__(self) -> int:
        return len(self._tokenizers)

    def __contains__(self, name: object) -> bool:
        return name in self._tokenizers

    def __repr__(self) -> str:
        return f"ProviderRegistry(providers={self.names()!r})"


def build_from_descriptors(
    descriptors: Iterable[ProviderDescriptor],
    default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
    default_provider: str = DEFAULT_PROVIDER,
) -> ProviderRegistry:
    """
    Build a registry from descriptors.

    Any invalid descriptor aborts the whole build.

    Args:
        descriptors: Provider descriptors
        default_timeout: Upper bound in seconds for each upstream call
        default_provider: Name served when a request names no provider

    Raises:
        ConfigurationError: If the set is empty, a name is missing or
            duplicated (case-insensitive), or a descriptor is invalid
    """
    descriptors = list(descriptors)
    if not descriptors:
        raise ConfigurationError("no token providers found")

    tokenizers: dict[str, Tokenizer] = {}
    seen: dict[str, str] = {}

    for index, descriptor in enumerate(descriptors):
        source = descriptor.source or f"descriptor #{index}"

        if not descriptor.name.strip():
            raise ConfigurationError(
                f'no "name" found in token provider config {source}',
                context={"source": source},
            )

        folded = descriptor.name.casefold()
        if folded in seen:
            raise ConfigurationError(
                f"duplicate token provider listed: {descriptor.name} "
                f"(conflicts with {seen[folded]})",
                context={"provider": descriptor.name, "source": source},
            )

        tokenizers[descriptor.name] = build_tokenizer(descriptor, default_timeout)
        seen[folded] = descriptor.name

        logger.debug(
            f"Configured token provider '{descriptor.name}'",
            extra={
                "provider": descriptor.name,
                "provider_type": tokenizers[descriptor.name].provider_type,
                "source": source,
            },
        )

    if not tokenizers:
        raise ConfigurationError("no usable token providers")

    registry = ProviderRegistry(tokenizers, default_provider=default_provider)
    logger.info(
        f"Built provider registry with {len(registry)} providers",
        extra={"provider_count": len(registry), "providers": registry.names()},
    )
    return registry


def parse_descriptor(raw: bytes | str, source: str = "") -> ProviderDescriptor:
    """
    Parse one descriptor document.

    Raises:
        ConfigurationError: If the document is not a valid descriptor object
    """
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ConfigurationError(f"parse provider config {source}: {e}", cause=e) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"parse provider config {source}: expected a JSON object"
        )

    try:
        descriptor = ProviderDescriptor.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"parse provider config {source}: {e}", cause=e) from e

    descriptor.source = source
    return descriptor


def load_descriptors_from_dir(directory: str | Path) -> list[ProviderDescriptor]:
    """
    Read every descriptor file in a directory.

    Sub-directories are skipped and symlinks are followed (Kubernetes
    ConfigMap mounts link each key to a hidden data directory). Entries that
    cannot be read are skipped.

    Raises:
        OSError: If the directory itself cannot be listed
        ConfigurationError: If it is empty or a file is not a valid descriptor
    """
    directory = Path(directory)
    entries = sorted(os.scandir(directory), key=lambda entry: entry.name)

    if not entries:
        raise ConfigurationError(
            f"no token providers found in directory: {directory}"
        )

    descriptors = []
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            continue

        path = Path(os.path.realpath(entry.path))
        try:
            raw = path.read_bytes()
        except OSError as e:
            # ConfigMap symlinks may point at directories
            logger.debug(f"Skipping unreadable provider config {path}: {e}")
            continue

        descriptors.append(parse_descriptor(raw, source=str(path)))

    if not descriptors:
        raise ConfigurationError(
            f"no usable token providers found in directory: {directory}"
        )
    return descriptors


def load_registry_from_dir(
    directory: str | Path,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    default_provider: str = DEFAULT_PROVIDER,
) -> ProviderRegistry:
    """Load descriptors from ``directory`` and build the registry."""
    logger.info(
        f"Loading token providers from {directory}",
        extra={"config_directory": str(directory)},
    )
    descriptors = load_descriptors_from_dir(directory)
    return build_from_descriptors(
        descriptors, default_timeout=timeout, default_provider=default_provider
    )


__all__ = [
    "DEFAULT_PROVIDER",
    "PROVIDER_TYPES",
    "ProviderDescriptor",
    "ProviderRegistry",
    "build_from_descriptors",
    "build_tokenizer",
    "load_descriptors_from_dir",
    "load_registry_from_dir",
    "parse_descriptor",
]
