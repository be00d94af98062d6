"""GovServices indexing and search engine package."""

from .core import ServiceSearchEngine
from .models import (
    ContactInfo,
    FeeItem,
    SearchOptions,
    SearchResult,
    ServiceRecord,
)
from .text import QueryExpander, normalize, tokenize

__all__ = [
    "ContactInfo",
    "FeeItem",
    "QueryExpander",
    "SearchOptions",
    "SearchResult",
    "ServiceRecord",
    "ServiceSearchEngine",
    "normalize",
    "tokenize",
]
