"""Query analysis: entity hints, intents, category classification and expansion.

The analyzer works on gazetteers keyed by language. All phrases pass through the
same :func:`govservices.indexer.text.normalize` used by the index so Arabic
spelling variants line up with indexed tokens.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from govservices.indexer.text import SYNONYMS, normalize

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.9

SERVICE_TYPES: Dict[str, List[Tuple[str, float]]] = {
    "en": [
        ("visa", 0.9),
        ("passport", 0.9),
        ("emirates id", 0.9),
        ("driving license", 0.9),
        ("business license", 0.9),
        ("marriage certificate", 0.9),
        ("birth certificate", 0.9),
        ("death certificate", 0.9),
        ("vehicle registration", 0.9),
        ("traffic fine", 0.9),
        ("golden visa", 0.95),
        ("residence visa", 0.9),
        ("tourist visa", 0.9),
        ("visit visa", 0.9),
        ("work permit", 0.9),
    ],
    "ar": [
        ("تأشيرة", 0.9),
        ("جواز سفر", 0.9),
        ("هوية إماراتية", 0.9),
        ("رخصة قيادة", 0.9),
        ("رخصة تجارية", 0.9),
        ("شهادة زواج", 0.9),
        ("شهادة ميلاد", 0.9),
        ("شهادة وفاة", 0.9),
        ("تسجيل مركبة", 0.9),
        ("مخالفة مرورية", 0.9),
        ("التأشيرة الذهبية", 0.95),
        ("تأشيرة إقامة", 0.9),
        ("تأشيرة سياحية", 0.9),
        ("تأشيرة زيارة", 0.9),
        ("تصريح عمل", 0.9),
    ],
}

DOCUMENT_TYPES: Dict[str, List[str]] = {
    "en": [
        "passport",
        "emirates id",
        "driving license",
        "birth certificate",
        "death certificate",
        "marriage certificate",
        "divorce certificate",
        "educational certificate",
        "medical certificate",
    ],
    "ar": [
        "جواز سفر",
        "هوية إماراتية",
        "رخصة قيادة",
        "شهادة ميلاد",
        "شهادة وفاة",
        "شهادة زواج",
        "شهادة طلاق",
        "شهادة تعليمية",
        "شهادة طبية",
    ],
}

LOCATIONS: Dict[str, List[str]] = {
    "en": [
        "dubai",
        "abu dhabi",
        "sharjah",
        "ajman",
        "fujairah",
        "ras al khaimah",
        "umm al quwain",
        "uae",
        "united arab emirates",
    ],
    "ar": [
        "دبي",
        "أبوظبي",
        "الشارقة",
        "عجمان",
        "الفجيرة",
        "رأس الخيمة",
        "أم القيوين",
        "الإمارات",
        "الإمارات العربية المتحدة",
    ],
}

AUTHORITIES: Dict[str, List[Tuple[str, str]]] = {
    "en": [
        ("ministry of interior", "MINISTRY"),
        ("ministry of foreign affairs", "MINISTRY"),
        ("ministry of finance", "MINISTRY"),
        ("ministry of economy", "MINISTRY"),
        ("federal authority for identity", "AUTHORITY"),
        ("federal tax authority", "AUTHORITY"),
        ("dubai police", "AUTHORITY"),
        ("abu dhabi police", "AUTHORITY"),
        ("roads and transport authority", "AUTHORITY"),
    ],
    "ar": [
        ("وزارة الداخلية", "MINISTRY"),
        ("وزارة الخارجية", "MINISTRY"),
        ("وزارة المالية", "MINISTRY"),
        ("وزارة الاقتصاد", "MINISTRY"),
        ("الهيئة الاتحادية للهوية", "AUTHORITY"),
        ("الهيئة الاتحادية للضرائب", "AUTHORITY"),
        ("شرطة دبي", "AUTHORITY"),
        ("شرطة أبوظبي", "AUTHORITY"),
        ("هيئة الطرق والمواصلات", "AUTHORITY"),
    ],
}

ACTION_INTENTS: Dict[str, List[Tuple[str, str]]] = {
    "en": [
        ("apply", "APPLICATION"),
        ("renew", "RENEWAL"),
        ("cancel", "CANCELLATION"),
        ("check", "STATUS_CHECK"),
        ("status", "STATUS_CHECK"),
        ("track", "STATUS_CHECK"),
        ("pay", "PAYMENT"),
        ("fee", "PAYMENT"),
        ("cost", "PAYMENT"),
        ("price", "PAYMENT"),
        ("download", "DOCUMENT_DOWNLOAD"),
        ("print", "DOCUMENT_DOWNLOAD"),
        ("replace", "REPLACEMENT"),
        ("lost", "REPLACEMENT"),
        ("damaged", "REPLACEMENT"),
    ],
    "ar": [
        ("تقديم", "APPLICATION"),
        ("تجديد", "RENEWAL"),
        ("إلغاء", "CANCELLATION"),
        ("تحقق", "STATUS_CHECK"),
        ("حالة", "STATUS_CHECK"),
        ("تتبع", "STATUS_CHECK"),
        ("دفع", "PAYMENT"),
        ("رسوم", "PAYMENT"),
        ("تكلفة", "PAYMENT"),
        ("سعر", "PAYMENT"),
        ("تنزيل", "DOCUMENT_DOWNLOAD"),
        ("طباعة", "DOCUMENT_DOWNLOAD"),
        ("استبدال", "REPLACEMENT"),
        ("فقدان", "REPLACEMENT"),
        ("تالف", "REPLACEMENT"),
    ],
}

CATEGORY_KEYWORDS: Dict[str, Dict[str, List[str]]] = {
    "en": {
        "visa": ["visa", "entry", "residence", "permit", "immigration", "travel", "tourist", "visit"],
        "identity": ["emirates id", "identity", "identification", "personal", "biometric"],
        "business": ["business", "company", "trade", "license", "commercial", "corporate", "entrepreneur"],
        "traffic": ["traffic", "vehicle", "car", "driving", "license", "fine", "road", "transport"],
        "health": ["health", "medical", "insurance", "hospital", "clinic", "doctor", "treatment"],
        "education": ["education", "school", "university", "college", "student", "academic", "certificate"],
        "property": ["property", "real estate", "land", "building", "rent", "lease", "ownership"],
    },
    "ar": {
        "visa": ["تأشيرة", "دخول", "إقامة", "تصريح", "هجرة", "سفر", "سياحة", "زيارة"],
        "identity": ["هوية إماراتية", "هوية", "تعريف", "شخصية", "بيومترية"],
        "business": ["أعمال", "شركة", "تجارة", "رخصة", "تجارية", "شركات", "ريادة أعمال"],
        "traffic": ["مرور", "مركبة", "سيارة", "قيادة", "رخصة", "مخالفة", "طريق", "نقل"],
        "health": ["صحة", "طبي", "تأمين", "مستشفى", "عيادة", "طبيب", "علاج"],
        "education": ["تعليم", "مدرسة", "جامعة", "كلية", "طالب", "أكاديمي", "شهادة"],
        "property": ["عقار", "عقارات", "أرض", "بناء", "إيجار", "تأجير", "ملكية"],
    },
}

SUBCATEGORY_KEYWORDS: Dict[str, Dict[str, Dict[str, List[str]]]] = {
    "en": {
        "visa": {
            "tourist": ["tourist", "visit", "short term", "vacation"],
            "residence": ["residence", "long term", "living", "stay"],
            "work": ["work", "employment", "job", "labor"],
            "student": ["student", "study", "education", "university"],
            "golden": ["golden", "investor", "investment", "talent"],
        },
        "identity": {
            "new": ["new", "first time", "application", "apply"],
            "renewal": ["renewal", "renew", "extend", "update"],
            "replacement": ["replacement", "replace", "lost", "damaged"],
        },
        "business": {
            "mainland": ["mainland", "local", "onshore"],
            "freezone": ["free zone", "freezone", "offshore"],
            "renewal": ["renewal", "renew", "extend"],
            "amendment": ["amendment", "change", "modify"],
        },
        "traffic": {
            "license": ["license", "driving", "driver"],
            "registration": ["registration", "register", "plate"],
            "fines": ["fine", "penalty", "violation", "ticket"],
            "inspection": ["inspection", "test", "check"],
        },
    },
    "ar": {
        "visa": {
            "tourist": ["سياحية", "زيارة", "قصيرة المدى", "عطلة"],
            "residence": ["إقامة", "طويلة المدى", "معيشة", "بقاء"],
            "work": ["عمل", "توظيف", "وظيفة", "عمالة"],
            "student": ["طالب", "دراسة", "تعليم", "جامعة"],
            "golden": ["ذهبية", "مستثمر", "استثمار", "موهبة"],
        },
        "identity": {
            "new": ["جديدة", "أول مرة", "طلب", "تقديم"],
            "renewal": ["تجديد", "تمديد", "تحديث"],
            "replacement": ["استبدال", "فقدان", "تالف"],
        },
        "business": {
            "mainland": ["البر الرئيسي", "محلي", "داخلي"],
            "freezone": ["منطقة حرة", "خارجي"],
            "renewal": ["تجديد", "تمديد"],
            "amendment": ["تعديل", "تغيير"],
        },
        "traffic": {
            "license": ["رخصة", "قيادة", "سائق"],
            "registration": ["تسجيل", "لوحة"],
            "fines": ["مخالفة", "غرامة", "عقوبة"],
            "inspection": ["فحص", "اختبار", "تفتيش"],
        },
    },
}


@dataclass
class RecognizedEntity:
    """An entity mention found in a normalized query."""

    text: str
    type: str
    confidence: float
    start: int
    end: int


@dataclass
class Classification:
    category: str
    confidence: float
    subcategories: List[Tuple[str, float]] = field(default_factory=list)


@dataclass
class QueryAnalysis:
    """Everything the orchestrator derives from a query before searching."""

    original_query: str
    normalized_query: str
    expanded_query: str
    language: str
    entities: List[RecognizedEntity] = field(default_factory=list)
    intents: List[Tuple[str, float]] = field(default_factory=list)
    category: str = "general"
    confidence: float = 0.5
    subcategories: List[Tuple[str, float]] = field(default_factory=list)

    @property
    def primary_intent(self) -> str:
        return self.intents[0][0] if self.intents else "INFORMATION"

    def entity_values(self, entity_type: str) -> List[str]:
        return [entity.text for entity in self.entities if entity.type == entity_type]


class QueryAnalyzer:
    """Rule-based analyzer for English and Arabic service queries."""

    def analyze(self, query: str, language: str = "en") -> QueryAnalysis:
        normalized = normalize(query)
        classification = self.classify(normalized, language)
        analysis = QueryAnalysis(
            original_query=query,
            normalized_query=normalized,
            expanded_query=self.expand_query(normalized, language),
            language=language,
            entities=self.extract_entities(normalized, language),
            intents=self.detect_intents(normalized, language),
            category=classification.category,
            confidence=classification.confidence,
            subcategories=classification.subcategories,
        )
        logger.debug(
            "Analyzed %r: category=%s (%.2f) intents=%s entities=%s",
            query,
            analysis.category,
            analysis.confidence,
            analysis.intents,
            len(analysis.entities),
        )
        return analysis

    # ------------------------------------------------------------------
    # Entities and intents
    # ------------------------------------------------------------------
    def extract_entities(self, text: str, language: str = "en") -> List[RecognizedEntity]:
        text = normalize(text)
        candidates: List[Tuple[str, str, float]] = []
        candidates.extend(
            (phrase, "SERVICE_TYPE", confidence)
            for phrase, confidence in SERVICE_TYPES.get(language, [])
        )
        candidates.extend(
            (phrase, "DOCUMENT_TYPE", DEFAULT_CONFIDENCE)
            for phrase in DOCUMENT_TYPES.get(language, [])
        )
        candidates.extend(
            (phrase, "LOCATION", DEFAULT_CONFIDENCE) for phrase in LOCATIONS.get(language, [])
        )
        candidates.extend(
            (phrase, entity_type, DEFAULT_CONFIDENCE)
            for phrase, entity_type in AUTHORITIES.get(language, [])
        )

        entities: List[RecognizedEntity] = []
        for phrase, entity_type, confidence in candidates:
            needle = normalize(phrase)
            start = text.find(needle)
            if start < 0:
                continue
            entities.append(
                RecognizedEntity(
                    text=needle,
                    type=entity_type,
                    confidence=confidence,
                    start=start,
                    end=start + len(needle),
                )
            )
        return entities

    def detect_intents(self, text: str, language: str = "en") -> List[Tuple[str, float]]:
        text = normalize(text)
        intents: Dict[str, float] = {}
        for action, intent in ACTION_INTENTS.get(language, []):
            if normalize(action) in text:
                intents[intent] = max(intents.get(intent, 0.0), DEFAULT_CONFIDENCE)

        if not intents:
            return [("INFORMATION", 0.7)]
        return list(intents.items())

    # ------------------------------------------------------------------
    # Expansion and classification
    # ------------------------------------------------------------------
    def expand_query(self, text: str, language: str = "en") -> str:
        """Append a head term when the query only mentions one of its synonyms."""
        text = normalize(text)
        expanded = text
        for term, synonyms in SYNONYMS.get(language, {}).items():
            head = normalize(term)
            if head in text:
                continue
            if any(normalize(synonym) in text for synonym in synonyms):
                expanded = f"{expanded} {head}"
        return expanded

    def classify(self, text: str, language: str = "en") -> Classification:
        text = normalize(text)
        scores: Dict[str, int] = {}
        for category, keywords in CATEGORY_KEYWORDS.get(language, {}).items():
            score = 0
            for keyword in keywords:
                needle = normalize(keyword)
                if needle not in text:
                    continue
                score += 1
                if text == needle:
                    score += 3
                if text.startswith(needle + " "):
                    score += 2
            scores[category] = score

        total = sum(scores.values())
        top_category, top_score = "", 0
        for category, score in scores.items():
            if score > top_score:
                top_category, top_score = category, score

        if not top_category:
            return Classification(category="general", confidence=0.5)

        confidence = min(0.5 + (top_score / (total + 1)) * 0.5, 0.95)
        return Classification(
            category=top_category,
            confidence=confidence,
            subcategories=self._subcategories(top_category, text, language),
        )

    def _subcategories(
        self, category: str, text: str, language: str
    ) -> List[Tuple[str, float]]:
        options = SUBCATEGORY_KEYWORDS.get(language, {}).get(category, {})
        ranked: List[Tuple[str, float]] = []
        for name, keywords in options.items():
            matches = sum(1 for keyword in keywords if normalize(keyword) in text)
            if not matches:
                continue
            ranked.append((name, min(0.6 + (matches / len(keywords)) * 0.35, 0.95)))
        return ranked
