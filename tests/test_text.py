"""Tests for normalization, tokenization and synonym expansion."""

from govservices.indexer.text import QueryExpander, analyze, normalize, tokenize


def test_normalize_folds_case_and_punctuation() -> None:
    """Latin text is casefolded and punctuation becomes whitespace."""
    assert normalize("  Emirates-ID   Renewal!! ") == "emirates id renewal"
    assert normalize("Visa (30 days)") == "visa 30 days"


def test_normalize_handles_empty_values() -> None:
    assert normalize("") == ""
    assert normalize(None) == ""


def test_normalize_strips_arabic_diacritics_and_tatweel() -> None:
    """Harakat and tatweel do not change the normalized form."""
    assert normalize("تَأْشِيرَة") == normalize("تأشيرة")
    assert normalize("تـأشـيرة") == normalize("تأشيرة")


def test_normalize_folds_alef_variants() -> None:
    """Hamza-carrying alefs and alef maqsura fold to their base letters."""
    assert normalize("إقامة") == "اقامة"
    assert normalize("أعمال") == "اعمال"
    assert normalize("مستشفى") == "مستشفي"


def test_normalize_keeps_arabic_indic_digits() -> None:
    assert normalize("رسوم ٣٠٠ درهم") == "رسوم ٣٠٠ درهم"


def test_tokenize_drops_single_characters() -> None:
    """Tokens must be longer than one character."""
    assert tokenize("a visa x id") == ["visa", "id"]


def test_analyze_mixed_script_query() -> None:
    assert analyze("Visa تأشيرة, 2024") == ["visa", "تاشيرة", "2024"]


def test_expand_appends_synonyms_after_originals() -> None:
    """Originals keep their order; synonyms follow without duplicates."""
    expander = QueryExpander()
    expanded = expander.expand(["visa", "permit"], "en")

    assert expanded[:2] == ["visa", "permit"]
    assert "entry" in expanded
    assert "residence" in expanded
    assert expanded.count("permit") == 1


def test_expand_unknown_token_is_retained() -> None:
    expander = QueryExpander()
    assert expander.expand(["passport"], "en") == ["passport"]


def test_expand_splits_multi_word_synonyms() -> None:
    """Multi-word synonyms contribute their individual tokens."""
    expander = QueryExpander()
    assert expander.synonyms_for("id", "en") == [
        "identity",
        "emirates",
        "id",
        "identification",
    ]


def test_expand_is_language_scoped() -> None:
    """English synonyms are not applied to Arabic queries."""
    expander = QueryExpander()
    assert expander.expand(["visa"], "ar") == ["visa"]


def test_arabic_synonyms_match_normalized_heads() -> None:
    """Table heads are normalized so a folded query token finds them."""
    expander = QueryExpander()
    expanded = expander.expand(analyze("تأشيرة"), "ar")

    assert expanded[0] == "تاشيرة"
    assert "اقامة" in expanded
    assert "دخول" in expanded


def test_custom_synonym_table() -> None:
    expander = QueryExpander({"en": {"Car": ["Vehicle", "Automobile"]}})
    assert expander.expand(["car"], "en") == ["car", "vehicle", "automobile"]
