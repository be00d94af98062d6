"""Core indexing and ranking logic for GovServices."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Set

from govservices.errors import DuplicateRecordError, RecordNotFoundError
from govservices.indexer.models import SearchOptions, SearchResult, ServiceRecord
from govservices.indexer.text import QueryExpander, analyze, normalize

logger = logging.getLogger(__name__)

NATIONAL_PREFIXES = ("UAE_",)
SUBNATIONAL_PREFIXES = ("DXB_", "AD_")

TOKEN_WEIGHT = 1
FIELD_WEIGHTS = {
    "title": 3,
    "description": 2,
    "category": 2,
}
AUTHORITY_WEIGHTS = {
    "national": 3,
    "subnational": 2,
    "other": 1,
}
RECENCY_WINDOWS = (
    (30, 2),
    (90, 1),
)

# Field name reported in matched_fields -> accessor returning its texts
MATCHABLE_FIELDS: Dict[str, Callable[[ServiceRecord], List[str]]] = {
    "title": lambda record: [record.title],
    "description": lambda record: [record.description],
    "category": lambda record: [record.category],
    "subcategory": lambda record: [record.subcategory] if record.subcategory else [],
    "authority": lambda record: [record.authority],
    "eligibility": lambda record: list(record.eligibility),
    "requiredDocuments": lambda record: list(record.required_documents),
    "steps": lambda record: list(record.steps),
}


def authority_tier(authority_code: Optional[str]) -> str:
    """Classify an authority code as national, subnational or other."""
    authority_code = authority_code or ""
    if authority_code.startswith(NATIONAL_PREFIXES):
        return "national"
    if authority_code.startswith(SUBNATIONAL_PREFIXES):
        return "subnational"
    return "other"


class ServiceSearchEngine:
    """In-memory catalog with inverted and entity indices.

    Every mutation other than a plain add rebuilds all indices from the catalog.
    A re-entrant lock serializes mutations and searches so threaded callers never
    observe a partially rebuilt index.
    """

    def __init__(
        self,
        records: Iterable[ServiceRecord] = (),
        default_language: str = "en",
        expander: Optional[QueryExpander] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.default_language = default_language
        self.expander = expander or QueryExpander()
        self._today = today or (lambda: datetime.now(timezone.utc).date())
        self._lock = threading.RLock()

        self._records: Dict[str, ServiceRecord] = {}
        self._record_tokens: Dict[str, Set[str]] = {}
        self._inverted_index: Dict[str, Set[str]] = defaultdict(set)
        self._entity_index: Dict[str, Set[str]] = defaultdict(set)

        for record in records:
            self.add_record(record)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def add_record(self, record: ServiceRecord) -> None:
        """Index a record whose id is not yet in the catalog."""
        with self._lock:
            if record.id in self._records:
                raise DuplicateRecordError(record.id)
            self._records[record.id] = record
            self._index_record(record)
        logger.debug("Indexed service %s (%s)", record.id, record.language)

    def update_record(self, record: ServiceRecord) -> None:
        """Replace an existing record and rebuild every index."""
        with self._lock:
            if record.id not in self._records:
                raise RecordNotFoundError(record.id)
            self._records[record.id] = record
            self._rebuild_indices()
        logger.debug("Re-indexed service %s", record.id)

    def upsert_record(self, record: ServiceRecord) -> bool:
        """Add or update; returns True when the record was new."""
        with self._lock:
            if record.id in self._records:
                self.update_record(record)
                return False
            self.add_record(record)
            return True

    def remove_record(self, record_id: str) -> ServiceRecord:
        """Drop a record from the catalog and rebuild every index."""
        with self._lock:
            record = self._records.pop(record_id, None)
            if record is None:
                raise RecordNotFoundError(record_id)
            self._rebuild_indices()
        logger.debug("Removed service %s", record_id)
        return record

    def get_record(self, record_id: str) -> Optional[ServiceRecord]:
        return self._records.get(record_id)

    def records(self) -> List[ServiceRecord]:
        with self._lock:
            return list(self._records.values())

    def tokens_for(self, record_id: str) -> Set[str]:
        return set(self._record_tokens.get(record_id, ()))

    def postings(self, token: str) -> Set[str]:
        """Ids of records whose document contains ``token``."""
        with self._lock:
            return set(self._inverted_index.get(normalize(token), ()))

    def lookup_entity(self, entity_type: str, value: str) -> Set[str]:
        """Ids of records exhibiting the entity, e.g. ``("authority", "Ministry of Economy")``."""
        with self._lock:
            return set(self._entity_index.get(self._entity_key(entity_type, value), ()))

    def search(
        self, query: str, options: Optional[SearchOptions] = None
    ) -> List[SearchResult]:
        """Match, score and rank records for a free-text query.

        An empty list is returned when nothing matches.
        """
        options = options or SearchOptions()
        language = options.language or self.default_language

        with self._lock:
            tokens = self.expander.expand(analyze(query), language)

            candidate_ids: Set[str] = set()
            for token in tokens:
                candidate_ids.update(self._inverted_index.get(token, ()))

            results: List[SearchResult] = []
            # Catalog order keeps the relevance sort stable between identical calls
            for record_id, record in self._records.items():
                if record_id not in candidate_ids:
                    continue
                if not self._passes_filters(record, language, options):
                    continue
                results.append(
                    SearchResult(
                        record=record,
                        relevance_score=self._score(record, tokens),
                        matched_fields=self._matched_fields(record, tokens),
                    )
                )

        self._sort_results(results, options.sort_by)
        logger.debug(
            "Query %r (%s) expanded to %s tokens, %s candidates, %s results",
            query,
            language,
            len(tokens),
            len(candidate_ids),
            len(results),
        )
        return results[: options.max_results]

    # ------------------------------------------------------------------
    # Indexing helpers
    # ------------------------------------------------------------------
    def _rebuild_indices(self) -> None:
        self._record_tokens.clear()
        self._inverted_index.clear()
        self._entity_index.clear()
        for record in self._records.values():
            self._index_record(record)

    def _index_record(self, record: ServiceRecord) -> None:
        tokens = set(analyze(self._searchable_text(record)))
        self._record_tokens[record.id] = tokens
        for token in tokens:
            self._inverted_index[token].add(record.id)

        self._add_entity("authority", record.authority, record.id)
        self._add_entity("category", record.category, record.id)
        if record.subcategory:
            self._add_entity("subcategory", record.subcategory, record.id)
        for document in record.required_documents:
            self._add_entity("document", document, record.id)

    def _searchable_text(self, record: ServiceRecord) -> str:
        parts = [
            record.title,
            record.description,
            record.authority,
            record.category,
            record.subcategory or "",
            *record.eligibility,
            *record.required_documents,
            *record.steps,
        ]
        return " ".join(part for part in parts if part)

    def _add_entity(self, entity_type: str, value: Optional[str], record_id: str) -> None:
        if not value:
            return
        self._entity_index[self._entity_key(entity_type, value)].add(record_id)

    def _entity_key(self, entity_type: str, value: str) -> str:
        return f"{entity_type}:{normalize(value)}"

    # ------------------------------------------------------------------
    # Ranking helpers
    # ------------------------------------------------------------------
    def _passes_filters(
        self, record: ServiceRecord, language: str, options: SearchOptions
    ) -> bool:
        if record.language != language:
            return False
        if not options.include_expired and record.status == "expired":
            return False
        if options.category and record.category != options.category:
            return False
        return True

    def _score(self, record: ServiceRecord, tokens: List[str]) -> float:
        score = 0
        record_tokens = self._record_tokens.get(record.id, set())
        fields = {
            "title": normalize(record.title),
            "description": normalize(record.description),
            "category": normalize(record.category),
        }

        for token in tokens:
            if token not in record_tokens:
                continue
            score += TOKEN_WEIGHT
            for field_name, weight in FIELD_WEIGHTS.items():
                if token in fields[field_name]:
                    score += weight

        score += AUTHORITY_WEIGHTS[authority_tier(record.authority_code)]

        if record.last_updated:
            age_days = (self._today() - record.last_updated).days
            for window, bonus in RECENCY_WINDOWS:
                if age_days < window:
                    score += bonus
                    break

        return float(score)

    def _matched_fields(self, record: ServiceRecord, tokens: List[str]) -> List[str]:
        matched: List[str] = []
        for field_name, accessor in MATCHABLE_FIELDS.items():
            texts = [normalize(text) for text in accessor(record)]
            if any(token in text for token in tokens for text in texts):
                matched.append(field_name)
        return matched

    def _sort_results(self, results: List[SearchResult], sort_by: str) -> None:
        if sort_by == "relevance":
            results.sort(key=lambda result: result.relevance_score, reverse=True)
        elif sort_by == "date":
            results.sort(
                key=lambda result: result.record.last_updated or date.min,
                reverse=True,
            )
        elif sort_by == "authority":
            tier_rank = {"national": 0, "subnational": 1, "other": 2}
            results.sort(
                key=lambda result: (
                    tier_rank[authority_tier(result.record.authority_code)],
                    -result.relevance_score,
                )
            )
