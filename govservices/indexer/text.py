"""Text normalization, tokenization and synonym expansion for English and Arabic."""

from __future__ import annotations

import re
import unicodedata
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

# Arabic harakat and tatweel carry no lexical meaning for search
ARABIC_DIACRITICS = re.compile(r"[\u064B-\u0652\u0640]")
ARABIC_LETTER_FOLDS = str.maketrans(
    {
        "أ": "ا",  # alef with hamza above
        "إ": "ا",  # alef with hamza below
        "آ": "ا",  # alef with madda
        "ى": "ي",  # alef maqsura -> ya
    }
)
DISALLOWED_CHARS = re.compile(r"[^\u0621-\u064A\u0660-\u0669 a-z0-9]")
WHITESPACE = re.compile(r"\s+")

# Domain synonyms, keyed by language then head term
SYNONYMS: Dict[str, Dict[str, List[str]]] = {
    "en": {
        "visa": ["permit", "entry", "residence"],
        "id": ["identity", "emirates id", "identification"],
        "license": ["permit", "authorization", "certificate"],
        "business": ["company", "trade", "commercial"],
        "traffic": ["vehicle", "car", "driving"],
    },
    "ar": {
        "تأشيرة": ["إقامة", "دخول", "زيارة"],
        "هوية": ["بطاقة", "إماراتية", "شخصية"],
        "رخصة": ["تصريح", "إذن", "شهادة"],
        "أعمال": ["شركة", "تجارة", "مؤسسة"],
        "مرور": ["مركبة", "سيارة", "قيادة"],
    },
}


def normalize(text: Optional[str]) -> str:
    """Fold case and script variants, drop punctuation, collapse whitespace.

    Only Latin letters, ASCII digits, the Arabic letter block and Arabic-Indic
    digits survive; everything else becomes a separator.
    """
    if not text:
        return ""

    normalized = unicodedata.normalize("NFKC", text).casefold()
    normalized = ARABIC_DIACRITICS.sub("", normalized)
    normalized = normalized.translate(ARABIC_LETTER_FOLDS)
    normalized = DISALLOWED_CHARS.sub(" ", normalized)
    return WHITESPACE.sub(" ", normalized).strip()


def tokenize(text: str) -> List[str]:
    """Split normalized text into tokens longer than one character."""
    return [token for token in text.split(" ") if len(token) > 1]


def analyze(text: Optional[str]) -> List[str]:
    """Normalize then tokenize."""
    return tokenize(normalize(text))


class QueryExpander:
    """Expands query tokens with the per-language synonym table.

    Table keys and values pass through :func:`normalize` once at construction
    so they line up with indexed tokens.
    """

    def __init__(self, synonyms: Optional[Mapping[str, Mapping[str, Sequence[str]]]] = None):
        table = synonyms if synonyms is not None else SYNONYMS
        self._table: Dict[str, Dict[str, List[str]]] = {}
        for language, entries in table.items():
            compiled: Dict[str, List[str]] = {}
            for head, related in entries.items():
                tokens: List[str] = []
                for phrase in related:
                    for token in analyze(phrase):
                        if token not in tokens:
                            tokens.append(token)
                compiled[normalize(head)] = tokens
            self._table[language] = compiled

    def synonyms_for(self, token: str, language: str) -> List[str]:
        return list(self._table.get(language, {}).get(token, []))

    def expand(self, tokens: Iterable[str], language: str) -> List[str]:
        """Return the original tokens followed by their synonyms, deduplicated."""
        originals = list(tokens)
        expanded: List[str] = []
        seen = set()
        for token in originals:
            if token not in seen:
                seen.add(token)
                expanded.append(token)
        for token in originals:
            for synonym in self.synonyms_for(token, language):
                if synonym not in seen:
                    seen.add(synonym)
                    expanded.append(synonym)
        return expanded
