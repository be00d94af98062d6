"""Tests for response providers and the provider chain."""

import pytest

from govservices.catalog import sample_services
from govservices.errors import ProviderError
from govservices.providers import (
    CatalogResponder,
    ProviderChain,
    ProviderResponse,
    StaticResponder,
    build_providers,
)


class FailingResponder:
    name = "failing"

    def __init__(self):
        self.calls = 0

    async def respond(self, query: str, language: str = "en") -> ProviderResponse:
        self.calls += 1
        raise ProviderError("upstream unavailable")


@pytest.fixture
def seeded(make_orchestrator):
    orchestrator = make_orchestrator()
    orchestrator.initialize(sample_services())
    return orchestrator


@pytest.mark.asyncio
async def test_catalog_responder_lists_matches(seeded) -> None:
    response = await CatalogResponder(seeded).respond("business license")

    assert response.provider == "catalog"
    assert response.confidence == "high"
    assert "Business License Application (Ministry of Economy)" in response.content
    assert response.services[0]["service"]["id"] == "business-001"


@pytest.mark.asyncio
async def test_catalog_responder_reports_no_matches(seeded) -> None:
    """Empty results become a "no matches" answer, not an error."""
    response = await CatalogResponder(seeded).respond("submarine")

    assert response.confidence == "low"
    assert response.services == []
    assert "couldn't find" in response.content


@pytest.mark.asyncio
async def test_catalog_responder_arabic_no_matches(seeded) -> None:
    response = await CatalogResponder(seeded).respond("غواصة", "ar")
    assert response.content.startswith("لم أتمكن")


@pytest.mark.asyncio
async def test_chain_falls_through_to_next_provider() -> None:
    failing = FailingResponder()
    chain = ProviderChain([failing, StaticResponder()])

    response = await chain.respond("anything")

    assert failing.calls == 1
    assert response.provider == "static"
    assert "https://u.ae" in response.content


@pytest.mark.asyncio
async def test_chain_raises_when_every_provider_fails() -> None:
    chain = ProviderChain([FailingResponder(), FailingResponder()])

    with pytest.raises(ProviderError, match="upstream unavailable"):
        await chain.respond("anything")


def test_chain_requires_providers() -> None:
    with pytest.raises(ValueError):
        ProviderChain([])


def test_build_providers_preserves_order(seeded) -> None:
    providers = build_providers(["static", "catalog"], seeded)

    assert [provider.name for provider in providers] == ["static", "catalog"]
    assert isinstance(providers[1], CatalogResponder)

    with pytest.raises(ValueError, match="gemini"):
        build_providers(["gemini"], seeded)


def test_provider_response_to_dict() -> None:
    response = ProviderResponse(content="hi", provider="static", confidence="low")
    assert response.to_dict() == {
        "content": "hi",
        "provider": "static",
        "confidence": "low",
        "services": [],
    }
