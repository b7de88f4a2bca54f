"""Vault secret-store provider for per-cluster kubeconfig tokens."""

import json
import logging
import os

import aiohttp

from core.errors.exceptions import (
    BrokerError,
    ContextCancelledError,
    UpstreamMalformedError,
    UpstreamRejectedError,
    UpstreamUnreachableError,
)
from core.tokens.base import (
    DEFAULT_TIMEOUT_SECONDS,
    CachingTokenizer,
    require_fields,
    status_line,
)
from core.tokens.context import DEADLINE_EXCEEDED, RequestContext
from core.tokens.models import IssuedToken

logger = logging.getLogger(__name__)

PROVIDER_TYPE = "secret-store"

# Requested names look like "<provider>-XX-<cluster>" where XX is a
# two-character lifecycle code and <provider> is the registered name,
# normally "vault-k8s".
NAME_PREFIX = "vault-k8s"
LIFECYCLE_WITH_DASH = 3  # "-XX"
PREFIX_TO_STRIP = 4  # "-XX-"

DEFAULT_PATH_PATTERN = "secret/data/[CLUSTER]/kubeconfig"
PATH_PATTERN_ENV = "VAULT_K8S_PATH_PATTERN"


def parse_cluster_name(requested: str | None, prefix: str = NAME_PREFIX) -> str:
    """
    Recover the cluster name from a requested provider name.

    ``vault-k8s-np-my-cluster`` -> ``my-cluster``. ``prefix`` is the name the
    serving provider is registered under.

    Raises:
        BrokerError: If no name was requested or it does not match
            ``<prefix>-XX-<cluster>``
    """
    if requested is None:
        raise BrokerError("cluster name not found in context")

    if len(requested) < len(prefix) + LIFECYCLE_WITH_DASH or not requested.startswith(prefix + "-"):
        raise BrokerError("invalid cluster name format")

    cluster = requested[len(prefix) + PREFIX_TO_STRIP :]
    if not cluster or requested[len(prefix) + LIFECYCLE_WITH_DASH] != "-":
        raise BrokerError("invalid cluster name format")
    return cluster


class VaultK8sTokenizer(CachingTokenizer):
    """
    Secret-store provider reading kubeconfig user tokens from Vault KV.

    Serves every ``<name>-XX-<cluster>`` request: the cluster is parsed out of
    the requested provider name and substituted into the secret path
    pattern. The first kubeconfig user's token is returned.

    Reads are serialized by the instance lock and cached per cluster for the
    secret's ``lease_duration``; KV secrets report 0, so those are read on
    every call.
    """

    provider_type = PROVIDER_TYPE
    accepts_subnames = True

    def __init__(
        self,
        provider_name: str,
        url: str,
        password: str,
        path_pattern: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """
        Initialize secret-store provider.

        Args:
            provider_name: Unique identifier for this provider
            url: Vault address
            password: Vault token used as X-Vault-Token
            path_pattern: Secret path with a [CLUSTER] placeholder
                (default: $VAULT_K8S_PATH_PATTERN or secret/data/[CLUSTER]/kubeconfig)
            timeout: Upper bound in seconds for each read

        Raises:
            ConfigurationError: If a required attribute is missing
        """
        require_fields(
            self.provider_type,
            provider_name,
            [("url", url), ("password", password)],
        )
        super().__init__(provider_name, timeout)

        self.url = url.rstrip("/")
        self.password = password
        self.path_pattern = (
            path_pattern or os.getenv(PATH_PATTERN_ENV) or DEFAULT_PATH_PATTERN
        )

        logger.debug(
            f"Initialized secret-store provider '{provider_name}'",
            extra={"provider": provider_name, "url": self.url},
        )

    def cache_key(self, ctx: RequestContext | None) -> str:
        return parse_cluster_name(ctx.provider if ctx else None, self.provider_name)

    def secret_path(self, cluster: str) -> str:
        return self.path_pattern.replace("[CLUSTER]", cluster).lstrip("/")

    async def fetch_token(self, ctx: RequestContext | None) -> IssuedToken:
        cluster = self.cache_key(ctx)
        path = self.secret_path(cluster)
        session = await self._ensure_session()

        try:
            async with session.get(
                f"{self.url}/v1/{path}",
                headers={"X-Vault-Token": self.password},
                timeout=self._client_timeout(),
            ) as response:
                if response.status == 404:
                    raise UpstreamRejectedError(
                        f"secret not found at {path}", status=response.status
                    )
                if not 200 <= response.status < 300:
                    raise UpstreamRejectedError(
                        "error reading kubeconfig from vault: "
                        f"{status_line(response)}",
                        status=response.status,
                    )
                body = await response.read()
        except TimeoutError as e:
            raise ContextCancelledError(
                f"error reading kubeconfig from vault: {DEADLINE_EXCEEDED}", cause=e
            ) from e
        except (aiohttp.ClientError, ValueError) as e:
            raise UpstreamUnreachableError(
                f"error reading kubeconfig from vault: {e}", cause=e
            ) from e

        try:
            payload = json.loads(body)
        except ValueError as e:
            raise UpstreamMalformedError(
                f"error unmarshalling secret data: {e}", cause=e
            ) from e

        secret = payload.get("data") if isinstance(payload, dict) else None
        if not secret:
            raise UpstreamRejectedError(f"secret not found at {path}")

        token = _first_user_token(secret)
        logger.debug(
            f"Read kubeconfig token for cluster '{cluster}'",
            extra={"provider": self.provider_name, "cluster": cluster},
        )
        return IssuedToken(
            value=token,
            lifetime_seconds=_lease_duration(payload),
        )


def _first_user_token(secret: dict) -> str:
    data = secret.get("data") if isinstance(secret, dict) else None
    users = data.get("users") if isinstance(data, dict) else None
    if users is not None and not isinstance(users, list):
        raise UpstreamMalformedError("error unmarshalling secret data: users is not a list")
    if not users:
        raise UpstreamMalformedError("no users found in kubeconfig token")

    first = users[0] if isinstance(users[0], dict) else {}
    user = first.get("user") if isinstance(first.get("user"), dict) else {}
    token = user.get("token")
    if not token:
        raise UpstreamMalformedError("no token found for first kubeconfig user")
    return str(token)


def _lease_duration(payload: dict) -> float:
    try:
        return max(float(payload.get("lease_duration") or 0), 0)
    except (TypeError, ValueError):
        return 0


__all__ = ["VaultK8sTokenizer", "parse_cluster_name"]
