"""Data models used by the GovServices search engine."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

SUPPORTED_LANGUAGES = ("en", "ar")
SORT_ORDERS = ("relevance", "date", "authority")

# camelCase keys used by the chat layer, keyed by dataclass attribute
_JSON_KEYS = {
    "authority_code": "authorityCode",
    "required_documents": "requiredDocuments",
    "processing_time": "processingTime",
    "contact_info": "contactInfo",
    "last_updated": "lastUpdated",
}
_ATTR_KEYS = {value: key for key, value in _JSON_KEYS.items()}


def parse_date(value: Any) -> Optional[date]:
    """Coerce an ISO string, datetime or date into a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        try:
            return datetime.strptime(text[:10], "%Y-%m-%d").date()
        except ValueError:
            return None


@dataclass
class FeeItem:
    """A single fee line item."""

    amount: float
    currency: str = "AED"
    description: str = ""


@dataclass
class ContactInfo:
    """Contact channels published for a service."""

    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None


@dataclass
class ServiceRecord:
    """A government service description ready for indexing."""

    id: str
    title: str
    description: str
    authority: str
    authority_code: str
    category: str
    url: str
    language: str = "en"
    subcategory: Optional[str] = None
    eligibility: List[str] = field(default_factory=list)
    required_documents: List[str] = field(default_factory=list)
    fees: List[FeeItem] = field(default_factory=list)
    processing_time: Optional[str] = None
    steps: List[str] = field(default_factory=list)
    contact_info: Optional[ContactInfo] = None
    last_updated: Optional[date] = None
    status: Optional[str] = None

    def __post_init__(self) -> None:
        if self.language not in SUPPORTED_LANGUAGES:
            raise ValueError(
                f"Unsupported language {self.language!r}; "
                f"expected one of {SUPPORTED_LANGUAGES}"
            )
        self.last_updated = parse_date(self.last_updated)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceRecord":
        """Build a record from its JSON representation (camel or snake case)."""
        values: Dict[str, Any] = {}
        for key, value in data.items():
            values[_ATTR_KEYS.get(key, key)] = value

        fees = [
            fee if isinstance(fee, FeeItem) else FeeItem(**fee)
            for fee in values.pop("fees", None) or []
        ]
        contact = values.pop("contact_info", None)
        if isinstance(contact, dict):
            contact = ContactInfo(**contact)

        known = set(cls.__dataclass_fields__)
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown service fields: {sorted(unknown)}")

        for list_field in ("eligibility", "required_documents", "steps"):
            values[list_field] = list(values.get(list_field) or [])
        values.setdefault("authority", "")
        values.setdefault("authority_code", "")
        values.setdefault("description", "")

        return cls(fees=fees, contact_info=contact, **values)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase shape consumed by the chat layer."""
        payload: Dict[str, Any] = {}
        for key, value in asdict(self).items():
            if isinstance(value, date):
                value = value.isoformat()
            payload[_JSON_KEYS.get(key, key)] = value
        return payload


# Fields extracted from a page; keys missing from the mapping were not found.
PartialServiceRecord = Dict[str, Any]


@dataclass
class SearchOptions:
    """Knobs accepted by ``ServiceSearchEngine.search``."""

    language: Optional[str] = None
    category: Optional[str] = None
    max_results: int = 10
    include_expired: bool = False
    sort_by: str = "relevance"

    def __post_init__(self) -> None:
        if self.sort_by not in SORT_ORDERS:
            raise ValueError(
                f"Unsupported sort order {self.sort_by!r}; expected one of {SORT_ORDERS}"
            )
        if self.language is not None and self.language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language {self.language!r}")
        if self.max_results < 0:
            raise ValueError("max_results must not be negative")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SearchResult:
    """A ranked match for a query."""

    record: ServiceRecord
    relevance_score: float
    matched_fields: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service": self.record.to_dict(),
            "relevanceScore": self.relevance_score,
            "matchedFields": list(self.matched_fields),
        }
