"""
FastAPI web interface for the location engine.

Exposes geocoding, transit line parsing, transit route geometry and
distance filtering over HTTP.
"""

import logging
from typing import Any, Literal

from fastapi import Depends, FastAPI, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from src.config import Settings, get_settings
from src.geo import GeocodeCache, GeocodeResolver, NominatimGeocoder, Point, filter_by_distance
from src.logging_config import setup_logging
from src.nlp import parse_transit_line
from src.transit import (
    InvalidTransitRequestError,
    OverpassClient,
    TransitRouteFetchError,
    TransitRouteFetcher,
    validate_route_request,
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Flatlist Location Engine",
    description="Geocoding, distance filtering and transit line geometry",
    version="0.1.0",
)

# Global instances (created on startup, or lazily on first use)
resolver: GeocodeResolver | None = None
fetcher: TransitRouteFetcher | None = None


def build_resolver(settings: Settings) -> GeocodeResolver:
    provider = NominatimGeocoder(
        url=settings.nominatim_url,
        user_agent=settings.nominatim_user_agent,
        timeout=settings.nominatim_timeout_seconds,
    )
    cache = GeocodeCache(
        capacity=settings.geocode_cache_capacity,
        ttl_seconds=settings.geocode_cache_ttl_seconds,
    )
    return GeocodeResolver(provider, cache)


def build_fetcher(settings: Settings) -> TransitRouteFetcher:
    client = OverpassClient(url=settings.overpass_url, timeout=settings.overpass_timeout_seconds)
    center = Point(
        name="default",
        latitude=settings.default_center_lat,
        longitude=settings.default_center_lon,
    )
    return TransitRouteFetcher(client, default_center=center, radius_m=settings.transit_search_radius_m)


@app.on_event("startup")
async def startup_event():
    """Configure logging and create the shared resolver and fetcher."""
    global resolver, fetcher

    settings = get_settings()
    setup_logging(settings.log_level)
    resolver = build_resolver(settings)
    fetcher = build_fetcher(settings)
    logger.info("Location engine started")


def get_resolver() -> GeocodeResolver:
    global resolver
    if resolver is None:
        resolver = build_resolver(get_settings())
    return resolver


def get_fetcher() -> TransitRouteFetcher:
    global fetcher
    if fetcher is None:
        fetcher = build_fetcher(get_settings())
    return fetcher


class GeocodeResponse(BaseModel):
    """Resolved place."""

    name: str
    latitude: float
    longitude: float


class TransitLineResponse(BaseModel):
    """Transit line found in text."""

    model_config = ConfigDict(populate_by_name=True)

    route_type: Literal["subway", "tram", "bus"] = Field(alias="routeType")
    ref: str


class TransitLineParseResponse(BaseModel):
    line: TransitLineResponse | None = None


class NearbyRequest(BaseModel):
    """Request for entities near a place or a point."""

    model_config = ConfigDict(populate_by_name=True)

    query: str | None = None  # Place to geocode, used when no coordinates are given
    latitude: float | None = None
    longitude: float | None = None
    max_distance_km: float = Field(alias="maxDistanceKm", ge=0)
    entities: list[dict[str, Any]] = Field(default_factory=list)


class NearbyResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    entity: dict[str, Any]
    distance_km: float = Field(alias="distanceKm")


class NearbyResponse(BaseModel):
    reference: GeocodeResponse
    results: list[NearbyResult]


def error_response(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    content = {"error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


@app.get("/api/geocode", response_model=GeocodeResponse)
def api_geocode(
    q: str | None = Query(default=None),
    resolver: GeocodeResolver = Depends(get_resolver),
):
    """Geocode a place name; failed lookups are remembered and answered with 404."""
    if not q or not q.strip():
        return error_response(400, 'Missing query parameter "q"')

    point = resolver.resolve(q)
    if point is None:
        return error_response(404, "Location not found")
    return GeocodeResponse(name=point.name, latitude=point.latitude, longitude=point.longitude)


@app.get("/api/transit-route")
def api_transit_route(
    route_type: str | None = Query(default=None, alias="routeType"),
    ref: str | None = Query(default=None),
    lat: float | None = Query(default=None),
    lon: float | None = Query(default=None),
    fetcher: TransitRouteFetcher = Depends(get_fetcher),
):
    """Geometry of a transit line as a GeoJSON FeatureCollection."""
    try:
        parsed_type, parsed_ref = validate_route_request(route_type, ref)
    except InvalidTransitRequestError as e:
        return error_response(400, "Missing or invalid routeType or ref", str(e))

    center = (lat, lon) if lat is not None and lon is not None else None
    try:
        return fetcher.fetch_route_geometry(parsed_type, parsed_ref, center)
    except TransitRouteFetchError as e:
        logger.error(f"Transit route fetch failed for {parsed_type.value} {parsed_ref!r}: {e}")
        return error_response(502, "Overpass request failed", e.details or str(e))
    except Exception as e:
        logger.exception("Transit route fetch error")
        return error_response(500, "Failed to fetch transit route", str(e))


@app.get("/api/transit-line", response_model=TransitLineParseResponse)
async def api_transit_line(text: str | None = Query(default=None)) -> TransitLineParseResponse:
    """Detect the transit line mentioned in text."""
    line = parse_transit_line(text)
    if line is None:
        return TransitLineParseResponse(line=None)
    return TransitLineParseResponse(
        line=TransitLineResponse(route_type=line.route_type.value, ref=line.ref)
    )


@app.post("/api/nearby", response_model=NearbyResponse)
def api_nearby(
    request: NearbyRequest,
    resolver: GeocodeResolver = Depends(get_resolver),
):
    """Entities within a distance of a place or point, nearest first."""
    if request.latitude is not None and request.longitude is not None:
        reference = Point(
            name=request.query or "reference",
            latitude=request.latitude,
            longitude=request.longitude,
        )
    elif request.query and request.query.strip():
        reference = resolver.resolve(request.query)
        if reference is None:
            return error_response(404, "Location not found")
    else:
        return error_response(400, "Provide a query or latitude and longitude")

    results = filter_by_distance(request.entities, reference, request.max_distance_km)
    return NearbyResponse(
        reference=GeocodeResponse(
            name=reference.name, latitude=reference.latitude, longitude=reference.longitude
        ),
        results=[NearbyResult(entity=r.entity, distance_km=r.distance_km) for r in results],
    )


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "resolver_loaded": resolver is not None,
        "fetcher_loaded": fetcher is not None,
    }
