"""Fetch transit line geometry as GeoJSON."""

import logging
from collections.abc import Iterable
from typing import Any

from ..geo.geocoding import Point
from ..nlp.transit_line import TransitLineParser, TransitRouteType
from .overpass import OverpassClient, OverpassError, build_route_query

logger = logging.getLogger(__name__)

DEFAULT_CENTER = Point(name="Milano", latitude=45.4642, longitude=9.19)
SEARCH_RADIUS_M = 50_000

Center = Point | tuple[float, float]
BBox = tuple[float, float, float, float]  # min_lon, min_lat, max_lon, max_lat


class InvalidTransitRequestError(ValueError):
    """Route type or ref missing or invalid."""


class TransitRouteFetchError(Exception):
    """The routing-data provider could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: int | None = None, details: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


def validate_route_request(route_type: str | None, ref: str | None) -> tuple[TransitRouteType, str]:
    """
    Validate a route request.

    Returns:
        Tuple of (route type, ref)

    Raises:
        InvalidTransitRequestError: if the route type is not subway, tram or
            bus, or the ref is empty
    """
    try:
        parsed_type = TransitRouteType(route_type)
    except ValueError:
        raise InvalidTransitRequestError(
            f"Invalid routeType {route_type!r}, expected one of subway, tram, bus"
        ) from None
    if not ref or not ref.strip():
        raise InvalidTransitRequestError("Missing ref")
    return parsed_type, ref


def empty_feature_collection() -> dict[str, Any]:
    return {"type": "FeatureCollection", "features": []}


def features_from_elements(elements: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Build LineString features from Overpass elements.

    Only ways with a geometry are used. Nodes missing a coordinate are
    dropped and ways left with fewer than two points are skipped.
    Coordinates are ``[lon, lat]`` in the order received.
    """
    features = []
    for element in elements:
        if element.get("type") != "way":
            continue
        geometry = element.get("geometry")
        if not isinstance(geometry, list) or len(geometry) < 2:
            continue

        coordinates = [
            [node["lon"], node["lat"]]
            for node in geometry
            if isinstance(node, dict) and node.get("lon") is not None and node.get("lat") is not None
        ]
        if len(coordinates) < 2:
            continue

        features.append(
            {
                "type": "Feature",
                "properties": {},
                "geometry": {"type": "LineString", "coordinates": coordinates},
            }
        )
    return features


def center_of_bbox(bbox: BBox) -> tuple[float, float]:
    """Midpoint of a ``[min_lon, min_lat, max_lon, max_lat]`` box as (lat, lon)."""
    min_lon, min_lat, max_lon, max_lat = bbox
    return (min_lat + max_lat) / 2, (min_lon + max_lon) / 2


class TransitRouteFetcher:
    """
    Look up the geometry of a transit line around a point.

    Each call issues exactly one Overpass query. Failing to reach Overpass
    raises TransitRouteFetchError, while a line without usable geometry is
    an empty result.
    """

    def __init__(
        self,
        client: OverpassClient | None = None,
        default_center: Point = DEFAULT_CENTER,
        radius_m: int = SEARCH_RADIUS_M,
        parser: TransitLineParser | None = None,
    ):
        self.client = client or OverpassClient()
        self.default_center = default_center
        self.radius_m = radius_m
        self.parser = parser or TransitLineParser()

    def _center(self, center: Center | None) -> tuple[float, float]:
        if center is None:
            return self.default_center.latitude, self.default_center.longitude
        if isinstance(center, Point):
            return center.latitude, center.longitude
        return center

    def fetch_route_geometry(
        self,
        route_type: TransitRouteType | str,
        ref: str,
        center: Center | None = None,
    ) -> dict[str, Any]:
        """
        Fetch a line as a GeoJSON FeatureCollection of LineStrings.

        Args:
            route_type: subway, tram or bus
            ref: Line identifier, e.g. "2"
            center: Search center, defaults to the configured city center

        Returns:
            FeatureCollection, with no features if nothing usable was found

        Raises:
            TransitRouteFetchError: if the Overpass request failed
        """
        lat, lon = self._center(center)
        query = build_route_query(route_type, ref, lat, lon, self.radius_m)
        logger.debug(f"Overpass query for {route_type} {ref!r} around ({lat}, {lon})")

        try:
            data = self.client.query(query)
        except OverpassError as e:
            raise TransitRouteFetchError(
                str(e), status_code=e.status_code, details=e.details
            ) from e

        elements = data.get("elements") or []
        features = features_from_elements(elements)
        logger.info(
            f"Transit route {route_type} {ref!r}: {len(features)} line(s) "
            f"from {len(elements)} element(s)"
        )
        collection = empty_feature_collection()
        collection["features"] = features
        return collection

    def fetch_line_geometry(
        self,
        route_type: TransitRouteType | str,
        ref: str,
        bbox: BBox | None = None,
    ) -> dict[str, Any] | None:
        """
        Fetch a line's geometry, centered on a map bounding box.

        Returns:
            FeatureCollection, or None if no geometry could be resolved
            (no matching ways, or only degenerate ones)

        Raises:
            TransitRouteFetchError: if the Overpass request failed
        """
        center = center_of_bbox(bbox) if bbox else None
        collection = self.fetch_route_geometry(route_type, ref, center)
        if not collection["features"]:
            return None
        return collection

    def fetch_for_text(self, text: str | None, center: Center | None = None) -> dict[str, Any] | None:
        """
        Fetch the geometry of the line mentioned in free text.

        Returns:
            FeatureCollection, or None if the text mentions no transit line
        """
        line = self.parser.parse(text)
        if line is None:
            return None
        return self.fetch_route_geometry(line.route_type, line.ref, center)
