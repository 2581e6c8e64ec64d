"""Detect a public transport line (subway, tram or bus) mentioned in text."""

import re
from dataclasses import dataclass
from enum import Enum


class TransitRouteType(str, Enum):
    """Kind of transit route."""

    SUBWAY = "subway"
    TRAM = "tram"
    BUS = "bus"


@dataclass(frozen=True)
class ParsedTransitLine:
    """A transit line found in text."""

    route_type: TransitRouteType
    ref: str  # Line identifier exactly as written, e.g. "2" for "M2"

    def to_dict(self) -> dict[str, str]:
        return {"routeType": self.route_type.value, "ref": self.ref}


@dataclass(frozen=True)
class TransitLineRule:
    """One row of the rule table: a pattern whose group 1 is the line ref."""

    pattern: re.Pattern
    route_type: TransitRouteType

    def match(self, text: str) -> str | None:
        match = self.pattern.search(text)
        return match.group(1) if match else None


# English and Italian phrasings. Order matters: the first rule that matches wins.
SUBWAY_PATTERNS = [
    r"\b(?:metro|metrò|metropolitana|subway|linea?\s+metro)\s*[:\s]*(?:linea?\s+)?(\d+)\b",
    r"\b(?:metro|metrò|metropolitana)\s+m?\s*(\d+)\b",  # metro M4
    r"\bm(\d+)\b",  # M2, m14
    r"\b(?:linea?\s+)?(\d+)\s*(?:della\s+)?metropolitana\b",  # linea 2 della metropolitana
]

TRAM_PATTERNS = [
    r"\btram\s*[:\s]*(?:linea?\s+)?(\d+)\b",
    r"\b(?:linea?\s+)?(\d+)\s*(?:del\s+)?tram\b",  # 9 del tram
]

BUS_PATTERNS = [
    r"\bbus\s*[:\s]*(?:linea?\s+)?(\d+)\b",
    r"\b(?:linea?\s+)?(\d+)\s*(?:del\s+)?bus\b",  # linea 90 del bus
    r"\bautobus\s*[:\s]*(?:linea?\s+)?(\d+)\b",
]


def build_rules(
    patterns: list[tuple[list[str], TransitRouteType]],
) -> tuple[TransitLineRule, ...]:
    """Compile (patterns, route type) groups into a flat, ordered rule table."""
    return tuple(
        TransitLineRule(re.compile(p, re.IGNORECASE), route_type)
        for group, route_type in patterns
        for p in group
    )


# Subway rules first, then tram, then bus
TRANSIT_LINE_RULES = build_rules(
    [
        (SUBWAY_PATTERNS, TransitRouteType.SUBWAY),
        (TRAM_PATTERNS, TransitRouteType.TRAM),
        (BUS_PATTERNS, TransitRouteType.BUS),
    ]
)


class TransitLineParser:
    """
    Find the transit line mentioned in free text.

    Rules are evaluated top to bottom and evaluation stops at the first
    match, so a text mentioning both "M2" and "bus 14" yields the subway.
    """

    def __init__(self, rules: tuple[TransitLineRule, ...] = TRANSIT_LINE_RULES):
        self.rules = rules

    def parse(self, text: str | None) -> ParsedTransitLine | None:
        """
        Extract the first transit line mentioned in text.

        Args:
            text: Free text, e.g. "near linea 2 della metropolitana"

        Returns:
            ParsedTransitLine, or None if no line is mentioned
        """
        if not text or not isinstance(text, str):
            return None
        text = text.strip()
        if not text:
            return None

        for rule in self.rules:
            ref = rule.match(text)
            if ref is not None:
                return ParsedTransitLine(route_type=rule.route_type, ref=ref)
        return None


_default_parser = TransitLineParser()


def parse_transit_line(text: str | None) -> ParsedTransitLine | None:
    """Parse text with the default rule table."""
    return _default_parser.parse(text)
