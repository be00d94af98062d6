"""Response providers consumed by the chat layer."""

from typing import TYPE_CHECKING, Iterable, List

from .base import ProviderChain, ProviderResponse, ResponseProvider
from .catalog import CatalogResponder
from .static import StaticResponder

if TYPE_CHECKING:
    from govservices.orchestrator import SearchOrchestrator


def build_providers(
    names: Iterable[str], orchestrator: "SearchOrchestrator"
) -> List[ResponseProvider]:
    """Instantiate providers by configured name, preserving order."""
    providers: List[ResponseProvider] = []
    for name in names:
        if name == "catalog":
            providers.append(CatalogResponder(orchestrator))
        elif name == "static":
            providers.append(StaticResponder())
        else:
            raise ValueError(f"Unknown response provider {name!r}")
    return providers


__all__ = [
    "CatalogResponder",
    "ProviderChain",
    "ProviderResponse",
    "ResponseProvider",
    "StaticResponder",
    "build_providers",
]
