"""Overpass API queries for transit route relations."""

import logging
from typing import Any

import requests

from ..nlp.transit_line import TransitRouteType

logger = logging.getLogger(__name__)

OVERPASS_URL = "https://overpass-api.de/api/interpreter"
OVERPASS_TIMEOUT = 15  # seconds, also passed to the server as [timeout:15]

# OpenStreetMap "route" tag value for each route type
OSM_ROUTE_TAGS = {
    TransitRouteType.SUBWAY: "subway",
    TransitRouteType.TRAM: "tram",
    TransitRouteType.BUS: "bus",
}


class OverpassError(Exception):
    """The Overpass request failed in transport or returned a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None, details: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


def osm_route_tag(route_type: TransitRouteType | str) -> str:
    return OSM_ROUTE_TAGS[TransitRouteType(route_type)]


def ref_expression(route_type: TransitRouteType | str, ref: str) -> str:
    """
    Regular expression matching a route's ``ref`` tag.

    Subway lines are also matched with an "M" prefix, since data for line 2
    is often tagged "M2".
    """
    escaped = ref.replace('"', '\\"')
    if TransitRouteType(route_type) is TransitRouteType.SUBWAY:
        return f"^{escaped}$|^M{escaped}$"
    return f"^{escaped}$"


def build_route_query(
    route_type: TransitRouteType | str,
    ref: str,
    lat: float,
    lon: float,
    radius_m: int,
) -> str:
    """Overpass QL selecting the ways of matching route relations near a point."""
    route = osm_route_tag(route_type)
    ref_regex = ref_expression(route_type, ref)
    return f"""
[out:json][timeout:{OVERPASS_TIMEOUT}];
(
  relation["type"="route"]["route"="{route}"](around:{radius_m},{lat},{lon})["ref"~"{ref_regex}"];
)->.r;
way(r);
out geom;
"""


class OverpassClient:
    """Minimal Overpass API client: one POST per query, no retries."""

    def __init__(
        self,
        url: str = OVERPASS_URL,
        session: requests.Session | None = None,
        timeout: float = OVERPASS_TIMEOUT,
    ):
        self.url = url
        self.session = session or requests.Session()
        self.timeout = timeout

    def query(self, ql: str) -> dict[str, Any]:
        """
        Submit an Overpass QL query.

        Returns:
            Decoded JSON response

        Raises:
            OverpassError: on transport failure, non-2xx status or invalid JSON
        """
        try:
            response = self.session.post(
                self.url,
                data=ql.encode("utf-8"),
                headers={"Content-Type": "text/plain"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise OverpassError(f"Overpass request failed: {e}", details=str(e)) from e

        if not 200 <= response.status_code < 300:
            logger.error(f"Overpass API error {response.status_code}: {response.text[:200]}")
            raise OverpassError(
                f"Overpass returned status {response.status_code}",
                status_code=response.status_code,
                details=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise OverpassError(f"Invalid Overpass response: {e}", details=str(e)) from e
