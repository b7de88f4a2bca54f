"""
Security helpers.

Provides TLS trust configuration for upstreams signed by private CAs.
"""

from core.security.ssl_utils import build_ssl_context, get_ca_bundle_path

__all__ = [
    "build_ssl_context",
    "get_ca_bundle_path",
]
