"""Geolocation module: geocoding, distances and distance filtering."""

from .cache import GeocodeCache
from .distance import haversine, haversine_many
from .distance_filter import DistanceResult, coordinates_of, filter_by_distance
from .geocoding import GeocodeApiClient, GeocodeResolver, GeocodingError, Point
from .nominatim import NominatimGeocoder

__all__ = [
    "haversine",
    "haversine_many",
    "GeocodeCache",
    "GeocodeApiClient",
    "GeocodeResolver",
    "GeocodingError",
    "NominatimGeocoder",
    "Point",
    "DistanceResult",
    "coordinates_of",
    "filter_by_distance",
]
