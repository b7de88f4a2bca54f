"""SSL/TLS utilities for upstreams behind private certificate authorities."""

import os
import ssl

from core.errors.exceptions import ConfigurationError


def get_ca_bundle_path() -> str | None:
    """Return the custom CA bundle configured in the environment, if any."""
    return (
        os.getenv("SSL_CERT_FILE")
        or os.getenv("REQUESTS_CA_BUNDLE")
        or os.getenv("CURL_CA_BUNDLE")
    )


def build_ssl_context(root_ca: str | None) -> ssl.SSLContext | None:
    """
    Build an SSL context trusting ``root_ca`` in addition to the system store.

    Args:
        root_ca: PEM-encoded certificate(s), or None/empty for the defaults

    Returns:
        SSLContext, or None when no extra trust anchor is configured

    Raises:
        ConfigurationError: If the PEM data holds no usable certificate
    """
    if not root_ca:
        return None

    context = ssl.create_default_context(cafile=get_ca_bundle_path())
    try:
        context.load_verify_locations(cadata=root_ca)
    except (ssl.SSLError, ValueError) as e:
        raise ConfigurationError('invalid "rootCA" PEM', cause=e) from e
    return context
