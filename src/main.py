"""
Flatlist Location Engine - command line entry point.

Usage:
    python -m src.main geocode "Bocconi University, Milano"
    python -m src.main parse-line "near linea 2 della metropolitana"
    python -m src.main route subway 2 --output m2.geojson
    cat listings.csv | python -m src.main nearby "Piazza Duomo, Milano" --max-km 2
    python -m src.main --help
"""

import argparse
import csv
import json
import sys
from pathlib import Path

from src.config import Settings, get_settings
from src.geo import (
    GeocodeApiClient,
    GeocodeCache,
    GeocodeResolver,
    NominatimGeocoder,
    Point,
    filter_by_distance,
)
from src.logging_config import setup_logging
from src.nlp import parse_transit_line
from src.transit import (
    InvalidTransitRequestError,
    OverpassClient,
    TransitRouteFetchError,
    TransitRouteFetcher,
    validate_route_request,
)


def build_resolver(settings: Settings, api_url: str | None = None) -> GeocodeResolver:
    """
    Resolver backed by the location service when ``api_url`` is given, else Nominatim.

    An empty ``api_url`` selects the configured service URL.
    """
    if api_url is not None:
        provider = GeocodeApiClient(
            api_url or settings.geocode_api_base_url,
            timeout=settings.geocode_timeout_seconds,
        )
    else:
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


def read_entities(input_file) -> list[dict[str, str]]:
    """
    Read ``id,latitude,longitude`` rows, skipping the header and short rows.

    Empty coordinates are kept as None so the entity is reported as
    lacking a location.
    """
    entities = []
    for row in csv.reader(input_file):
        if len(row) < 3:
            continue
        entity_id = row[0].strip()
        if entity_id.lower() == "id":
            continue
        entities.append(
            {
                "id": entity_id,
                "latitude": row[1].strip() or None,
                "longitude": row[2].strip() or None,
            }
        )
    return entities


def cmd_geocode(args, settings: Settings) -> int:
    resolver = build_resolver(settings, args.api_url)
    point = resolver.resolve(args.query)
    if point is None:
        print("NOT_FOUND")
        return 1
    print(f'"{point.name}",{point.latitude},{point.longitude}')
    return 0


def cmd_parse_line(args, settings: Settings) -> int:
    line = parse_transit_line(args.text)
    if line is None:
        print("NONE")
        return 0
    print(f"{line.route_type.value},{line.ref}")
    return 0


def cmd_route(args, settings: Settings) -> int:
    try:
        route_type, ref = validate_route_request(args.route_type, args.ref)
    except InvalidTransitRequestError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    fetcher = TransitRouteFetcher(
        OverpassClient(url=settings.overpass_url, timeout=settings.overpass_timeout_seconds),
        default_center=Point("default", settings.default_center_lat, settings.default_center_lon),
        radius_m=settings.transit_search_radius_m,
    )
    center = (args.lat, args.lon) if args.lat is not None and args.lon is not None else None
    try:
        collection = fetcher.fetch_route_geometry(route_type, ref, center)
    except TransitRouteFetchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    output = json.dumps(collection)
    if args.output:
        args.output.write_text(output, encoding="utf-8")
    else:
        print(output)
    return 0


def cmd_nearby(args, settings: Settings) -> int:
    resolver = build_resolver(settings, args.api_url)
    reference = resolver.resolve(args.query)
    if reference is None:
        print(f"Error: could not geocode {args.query!r}", file=sys.stderr)
        return 1

    if args.input:
        with open(args.input, encoding="utf-8") as f:
            entities = read_entities(f)
    else:
        entities = read_entities(sys.stdin)

    for result in filter_by_distance(entities, reference, args.max_km):
        print(f"{result.entity['id']},{result.distance_km:.3f}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Flatlist Location Engine - geocoding, distances and transit lines"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: from settings)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    geocode = subparsers.add_parser("geocode", help="Resolve a place name to coordinates")
    geocode.add_argument("query", help="Place name or address")
    geocode.add_argument(
        "--api-url",
        nargs="?",
        const="",
        default=None,
        help="Use the location service (at this URL, or the configured one) instead of Nominatim",
    )
    geocode.set_defaults(func=cmd_geocode)

    parse_line = subparsers.add_parser("parse-line", help="Detect a transit line in text")
    parse_line.add_argument("text", help="Free text")
    parse_line.set_defaults(func=cmd_parse_line)

    route = subparsers.add_parser("route", help="Fetch a transit line as GeoJSON")
    route.add_argument("route_type", help="subway, tram or bus")
    route.add_argument("ref", help="Line identifier, e.g. 2")
    route.add_argument("--lat", type=float, default=None, help="Search center latitude")
    route.add_argument("--lon", type=float, default=None, help="Search center longitude")
    route.add_argument("--output", type=Path, default=None, help="Write GeoJSON to file")
    route.set_defaults(func=cmd_route)

    nearby = subparsers.add_parser("nearby", help="Rank CSV entities by distance from a place")
    nearby.add_argument("query", help="Reference place")
    nearby.add_argument("input", nargs="?", help="Input CSV file (default: stdin)")
    nearby.add_argument("--max-km", type=float, required=True, help="Maximum distance in km")
    nearby.add_argument(
        "--api-url",
        nargs="?",
        const="",
        default=None,
        help="Use the location service (at this URL, or the configured one) instead of Nominatim",
    )
    nearby.set_defaults(func=cmd_nearby)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(args.log_level or settings.log_level)
    return args.func(args, settings)


if __name__ == "__main__":
    sys.exit(main())
