"""
Core library: reusable, transport-agnostic components of the token broker.

Modules:
    tokens      - Tokenizer base classes, cache/refresh unit, provider adapters
    logging     - Structured JSON logging with request context
    errors      - Exception hierarchy and error classification
    security    - TLS trust configuration for private CAs

Design Principles:
    - No dependency on the HTTP server layer
    - All modules are independently testable
    - Async-first
    - Type hints throughout
"""

from .types import ErrorCategory, Tokenizer

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
    "Tokenizer",
]
