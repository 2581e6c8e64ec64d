"""Tests for text preprocessing."""

from src.nlp.preprocessing import (
    normalize_query,
    normalize_whitespace,
    remove_accents,
    split_words,
)


class TestPreprocessing:
    """Tests for preprocessing utilities."""

    def test_remove_accents(self):
        assert remove_accents("Milano") == "Milano"
        assert remove_accents("Università") == "Universita"
        assert remove_accents("Cantù") == "Cantu"
        assert remove_accents("metrò") == "metro"

    def test_normalize_whitespace(self):
        assert normalize_whitespace("  Via   Roma \t 1 ") == "Via Roma 1"

    def test_normalize_query(self):
        assert normalize_query("Università Bocconi, Milano") == "universita bocconi milano"
        assert normalize_query("Piazzale  Susa (M4)") == "piazzale susa m4"

    def test_normalize_query_empty(self):
        assert normalize_query("  ,, ") == ""

    def test_split_words(self):
        assert split_words("Via Roma, 10 Milano") == ["via", "roma", "10", "milano"]
        assert split_words(" , ") == []
