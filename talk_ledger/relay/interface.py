"""
Abstract Relay Interface

A relay takes one raw text string, sends it to the classifier together
with the extraction contract, and returns the classifier's raw response
envelope. It never interprets the envelope; that is the extraction
agent's job.

Implementations:
- GeminiRelay: calls the Gemini REST API directly (used by the relay server)
- RelayClient: calls a deployed /api/gemini endpoint
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Optional


class ClassifierRelay(ABC):
    """Forwards text to the external classifier."""

    @abstractmethod
    async def forward(self, text: Any, today: Optional[date] = None) -> dict:
        """
        Send `text` to the classifier.

        Args:
            text: The user's sentence. Anything but a non-blank string
                  is rejected with ValidationError.
            today: Anchor date for relative dates (defaults to the real date)

        Returns:
            The classifier's raw response envelope

        Raises:
            ValidationError, ConfigurationError, UpstreamError,
            UpstreamFormatError
        """
        pass
