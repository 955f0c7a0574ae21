"""
Relay Package

Forwards user text to the external classifier and returns its raw
response envelope, or a typed error.
"""

from talk_ledger.relay.errors import (
    ConfigurationError,
    RelayError,
    UpstreamError,
    UpstreamFormatError,
    ValidationError,
)
from talk_ledger.relay.gemini import GeminiRelay, RelayClient
from talk_ledger.relay.interface import ClassifierRelay

__all__ = [
    # Interface
    "ClassifierRelay",
    # Implementations
    "GeminiRelay",
    "RelayClient",
    # Exceptions
    "ConfigurationError",
    "RelayError",
    "UpstreamError",
    "UpstreamFormatError",
    "ValidationError",
]
