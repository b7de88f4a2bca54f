"""
Token acquisition with per-provider caching and refresh.

Every provider implements ``token(ctx) -> str``. Caching providers keep the
last token until it expires and collapse concurrent refreshes into a single
upstream call.

Basic Usage:
    from core.tokens import MicrosoftTokenizer, RequestContext

    tokenizer = MicrosoftTokenizer(
        provider_name="azure",
        client_id=os.getenv("AZURE_CLIENT_ID"),
        client_secret=os.getenv("AZURE_CLIENT_SECRET"),
        resource="https://graph.microsoft.com",
        login_endpoint="https://login.microsoftonline.com/<tenant>/oauth2/token",
    )

    # Cached until expires_in elapses
    token = await tokenizer.token()

    # Bounded by a deadline
    token = await tokenizer.token(RequestContext.with_timeout(5))
"""

from core.tokens.base import (
    DEFAULT_TIMEOUT_SECONDS,
    BaseTokenizer,
    CachingTokenizer,
)
from core.tokens.context import RequestContext, run_in_context
from core.tokens.models import CachedToken, IssuedToken
from core.tokens.providers import (
    GoogleTokenizer,
    MicrosoftTokenizer,
    RancherTokenizer,
    VaultK8sTokenizer,
)

__all__ = [
    # Base
    "BaseTokenizer",
    "CachingTokenizer",
    "DEFAULT_TIMEOUT_SECONDS",
    # Context
    "RequestContext",
    "run_in_context",
    # Models
    "CachedToken",
    "IssuedToken",
    # Providers
    "GoogleTokenizer",
    "MicrosoftTokenizer",
    "RancherTokenizer",
    "VaultK8sTokenizer",
]
