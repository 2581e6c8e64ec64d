"""Transit module: route geometry from OpenStreetMap via Overpass."""

from .overpass import OverpassClient, OverpassError, build_route_query, ref_expression
from .route_fetcher import (
    InvalidTransitRequestError,
    TransitRouteFetchError,
    TransitRouteFetcher,
    features_from_elements,
    validate_route_request,
)

__all__ = [
    "OverpassClient",
    "OverpassError",
    "build_route_query",
    "ref_expression",
    "InvalidTransitRequestError",
    "TransitRouteFetchError",
    "TransitRouteFetcher",
    "features_from_elements",
    "validate_route_request",
]
