"""NLP module for extracting location facts from free text."""

from .preprocessing import normalize_query, remove_accents
from .transit_line import (
    TRANSIT_LINE_RULES,
    ParsedTransitLine,
    TransitLineParser,
    TransitLineRule,
    TransitRouteType,
    parse_transit_line,
)

__all__ = [
    "TRANSIT_LINE_RULES",
    "ParsedTransitLine",
    "TransitLineParser",
    "TransitLineRule",
    "TransitRouteType",
    "normalize_query",
    "parse_transit_line",
    "remove_accents",
]
