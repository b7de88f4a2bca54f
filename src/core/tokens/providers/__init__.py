"""Token provider implementations."""

from core.tokens.providers.google import GoogleTokenizer
from core.tokens.providers.microsoft import MicrosoftTokenizer
from core.tokens.providers.rancher import RancherTokenizer
from core.tokens.providers.vault import VaultK8sTokenizer

__all__ = [
    "GoogleTokenizer",
    "MicrosoftTokenizer",
    "RancherTokenizer",
    "VaultK8sTokenizer",
]
