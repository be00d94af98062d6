"""Pytest configuration and fixtures."""

from typing import Any, Callable, Optional

import pytest

from govservices.catalog import sample_services
from govservices.config import GovServicesSettings
from govservices.indexer.core import ServiceSearchEngine
from govservices.orchestrator import SearchOrchestrator
from tests.service_stubs import TODAY, StubExtractor


@pytest.fixture
def settings() -> GovServicesSettings:
    """Settings isolated from the environment and any .env file."""
    return GovServicesSettings(
        _env_file=None,
        cache_enabled=True,
        cache_ttl_ms=900_000,
        max_concurrent_requests=5,
        default_language="en",
        request_delay_ms=0,
        respect_robots_txt=True,
        catalog_file=None,
        response_providers=["catalog"],
    )


@pytest.fixture
def engine() -> ServiceSearchEngine:
    """Engine seeded with the bundled catalog and a fixed clock."""
    return ServiceSearchEngine(sample_services(), today=lambda: TODAY)


@pytest.fixture
def extractor() -> StubExtractor:
    return StubExtractor()


@pytest.fixture
def make_orchestrator(
    settings: GovServicesSettings,
) -> Callable[..., SearchOrchestrator]:
    """Factory building an orchestrator around a stub extractor."""

    def _make(
        extractor: Optional[StubExtractor] = None,
        engine: Optional[ServiceSearchEngine] = None,
        **setting_overrides: Any,
    ) -> SearchOrchestrator:
        current = settings.model_copy(update=setting_overrides)
        return SearchOrchestrator(
            engine=engine or ServiceSearchEngine(today=lambda: TODAY),
            extractor=extractor or StubExtractor(),
            settings=current,
            today=lambda: TODAY,
        )

    return _make
