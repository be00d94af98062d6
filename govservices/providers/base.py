"""Base response provider interface."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Sequence

from govservices.errors import ProviderError

logger = logging.getLogger(__name__)


@dataclass
class ProviderResponse:
    """An answer ready for the chat layer."""

    content: str
    provider: str
    confidence: str = "medium"
    services: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "provider": self.provider,
            "confidence": self.confidence,
            "services": list(self.services),
        }


class ResponseProvider(Protocol):
    """Protocol for services that answer a chat query."""

    name: str

    async def respond(self, query: str, language: str = "en") -> ProviderResponse:
        """Answer a free-text query.

        Args:
            query: The user's question
            language: ``en`` or ``ar``

        Raises:
            ProviderError: If the provider cannot answer
        """
        ...


class ProviderChain:
    """Tries each provider in order until one answers."""

    def __init__(self, providers: Sequence[ResponseProvider]):
        if not providers:
            raise ValueError("At least one response provider is required")
        self.providers = list(providers)

    async def respond(self, query: str, language: str = "en") -> ProviderResponse:
        failures = []
        for provider in self.providers:
            try:
                return await provider.respond(query, language)
            except ProviderError as exc:
                logger.warning("Provider %s failed: %s", provider.name, exc)
                failures.append(f"{provider.name}: {exc}")

        raise ProviderError("All response providers failed (" + "; ".join(failures) + ")")
