"""Resolve free-text place queries to coordinates, with negative caching."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import requests

from .cache import MISSING, GeocodeCache
from .distance import as_coordinate

logger = logging.getLogger(__name__)

DEFAULT_GEOCODE_TIMEOUT = 10.0


@dataclass(frozen=True)
class Point:
    """A named geographic point."""

    name: str
    latitude: float
    longitude: float


class GeocodingError(Exception):
    """The geocoding provider answered with a non-success status or a malformed payload."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GeocodeProvider(Protocol):
    """
    External place-name lookup.

    ``geocode`` returns a mapping with ``latitude``, ``longitude`` and an
    optional ``name``, or None when the place is unknown. Transport failures
    raise ``requests.RequestException``; non-success or malformed answers
    raise ``GeocodingError``.
    """

    def geocode(self, query: str) -> dict[str, Any] | None: ...


def normalize_cache_key(query: str) -> str:
    """Cache key for a query: trimmed and case-folded."""
    return query.strip().casefold()


class GeocodeApiClient:
    """Client for the ``/api/geocode`` endpoint of the location service."""

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_GEOCODE_TIMEOUT,
    ):
        self.url = base_url.rstrip("/") + "/api/geocode"
        self.session = session or requests.Session()
        self.timeout = timeout

    def geocode(self, query: str) -> dict[str, Any] | None:
        response = self.session.get(self.url, params={"q": query}, timeout=self.timeout)
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise GeocodingError(
                f"Geocode endpoint returned status {response.status_code}",
                status_code=response.status_code,
            )

        data = response.json()
        if not isinstance(data, dict):
            raise GeocodingError(f"Unexpected geocode payload: {type(data).__name__}")
        return data


class GeocodeResolver:
    """
    Resolve place queries to points.

    Every resolved query is cached, including failures, so a query that
    could not be resolved is not sent to the provider again while its cache
    entry lives. Failures are logged and returned as None, never raised.
    """

    def __init__(self, provider: GeocodeProvider, cache: GeocodeCache | None = None):
        """
        Initialize the resolver.

        Args:
            provider: External geocoding provider
            cache: Cache shared between resolutions (a fresh one if omitted)
        """
        self.provider = provider
        self.cache = cache if cache is not None else GeocodeCache()

    def resolve(self, query: str | None) -> Point | None:
        """
        Resolve a place query.

        Args:
            query: Free-text place name or address

        Returns:
            Point, or None if the query is empty or could not be resolved
        """
        if not query or not query.strip():
            return None

        key = normalize_cache_key(query)
        cached = self.cache.get(key)
        if cached is not MISSING:
            return cached

        point = self._lookup(query)
        self.cache.set(key, point)
        return point

    def _lookup(self, query: str) -> Point | None:
        try:
            data = self.provider.geocode(query)
        except (requests.RequestException, GeocodingError, ValueError) as e:
            logger.warning(f"Geocoding failed for {query!r}: {e}")
            return None
        except Exception:
            logger.exception(f"Unexpected geocoding error for {query!r}")
            return None

        if not data:
            logger.info(f"No geocoding result for {query!r}")
            return None
        if not isinstance(data, Mapping):
            logger.warning(f"Geocoding result for {query!r} is not a mapping")
            return None

        latitude = as_coordinate(data.get("latitude"))
        longitude = as_coordinate(data.get("longitude"))
        if latitude is None or longitude is None:
            logger.warning(f"Geocoding result for {query!r} has no usable coordinates")
            return None

        return Point(
            name=str(data.get("name") or query),
            latitude=latitude,
            longitude=longitude,
        )
