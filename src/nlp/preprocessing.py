"""Text preprocessing utilities."""

import re
import unicodedata

NON_ALPHANUMERIC = re.compile(r"[^a-z0-9\s]")


def remove_accents(text: str) -> str:
    """Remove accents from text while preserving case."""
    nfkd = unicodedata.normalize("NFKD", text)
    return "".join(c for c in nfkd if not unicodedata.combining(c))


def normalize_whitespace(text: str) -> str:
    """Normalize whitespace (collapse multiple spaces, strip)."""
    return " ".join(text.split())


def normalize_query(text: str) -> str:
    """
    Normalize a place query for keyword matching.

    Lowercases, removes accents, replaces punctuation with spaces and
    collapses whitespace.

    Examples:
        "Università Bocconi, Milano" -> "universita bocconi milano"
        "Piazzale  Susa (M4)" -> "piazzale susa m4"
    """
    text = remove_accents(text.lower())
    text = NON_ALPHANUMERIC.sub(" ", text)
    return normalize_whitespace(text)


def split_words(text: str) -> list[str]:
    """Lowercase a query and split it on whitespace and commas."""
    return [w for w in re.split(r"[\s,]+", text.lower()) if w]
