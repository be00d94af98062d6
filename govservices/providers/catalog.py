"""Responder that answers from the indexed service catalog."""

from typing import TYPE_CHECKING

from govservices.errors import GovServicesError, ProviderError
from govservices.indexer.models import SearchOptions

from .base import ProviderResponse

if TYPE_CHECKING:
    from govservices.orchestrator import SearchOrchestrator

MESSAGES = {
    "en": {
        "no_matches": "I couldn't find specific information about that service.",
        "intro": "Here are the services that match your question:",
    },
    "ar": {
        "no_matches": "لم أتمكن من العثور على معلومات محددة حول هذه الخدمة.",
        "intro": "إليك الخدمات التي تطابق سؤالك:",
    },
}


class CatalogResponder:
    """Summarizes the top catalog search results for a query."""

    name = "catalog"

    def __init__(self, orchestrator: "SearchOrchestrator", max_results: int = 3):
        self.orchestrator = orchestrator
        self.max_results = max_results

    async def respond(self, query: str, language: str = "en") -> ProviderResponse:
        messages = MESSAGES.get(language, MESSAGES["en"])
        try:
            results = await self.orchestrator.search(
                query, SearchOptions(language=language, max_results=self.max_results)
            )
        except (GovServicesError, ValueError) as exc:
            raise ProviderError(f"Catalog search failed: {exc}") from exc

        if not results:
            return ProviderResponse(
                content=messages["no_matches"], provider=self.name, confidence="low"
            )

        lines = [messages["intro"], ""]
        for result in results:
            record = result.record
            line = f"- {record.title}"
            if record.authority:
                line += f" ({record.authority})"
            if record.url:
                line += f": {record.url}"
            lines.append(line)

        return ProviderResponse(
            content="\n".join(lines),
            provider=self.name,
            confidence="high",
            services=[result.to_dict() for result in results],
        )
