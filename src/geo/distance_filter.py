"""Filter and rank geo-tagged entities by distance from a reference point."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np

from .distance import as_coordinate, haversine_many
from .geocoding import Point

logger = logging.getLogger(__name__)


@dataclass
class DistanceResult:
    """An entity together with its distance from the reference point."""

    entity: Any
    distance_km: float


def _field(source: Any, *names: str) -> Any:
    for name in names:
        if isinstance(source, Mapping):
            if name in source:
                return source[name]
        elif hasattr(source, name):
            return getattr(source, name)
    return None


def coordinates_of(entity: Any) -> tuple[float, float] | None:
    """
    Extract (latitude, longitude) from an entity.

    Accepts mappings or objects exposing ``latitude``/``longitude`` (or
    ``lat``/``lon``), and listings whose first ``listing_metadata`` item
    carries the coordinates.

    Returns:
        Tuple of floats, or None if either coordinate is missing or invalid
    """
    metadata = _field(entity, "listing_metadata")
    if isinstance(metadata, list | tuple):
        source = metadata[0] if metadata else None
    else:
        source = entity
    if source is None:
        return None

    lat = as_coordinate(_field(source, "latitude", "lat"))
    lon = as_coordinate(_field(source, "longitude", "lon"))
    if lat is None or lon is None:
        return None
    return lat, lon


def _label(entity: Any) -> str:
    label = _field(entity, "address", "name", "id")
    return str(label) if label is not None else repr(entity)


def filter_by_distance(
    entities: Iterable[Any],
    reference_point: Point,
    max_distance_km: float,
) -> list[DistanceResult]:
    """
    Keep entities within ``max_distance_km`` of a point, nearest first.

    Entities without usable coordinates are skipped. The boundary is
    inclusive, and entities at equal distance keep their input order.

    Args:
        entities: Geo-tagged entities
        reference_point: Point to measure from
        max_distance_km: Maximum distance in kilometers

    Returns:
        List of DistanceResult sorted by ascending distance
    """
    entities = list(entities)
    candidates = []
    coordinates = []
    for entity in entities:
        coords = coordinates_of(entity)
        if coords is None:
            logger.debug(f"Skipping {_label(entity)!r}: no coordinates")
            continue
        candidates.append(entity)
        coordinates.append(coords)

    if not candidates:
        logger.info(
            f"Distance filter: 0/{len(entities)} entities within "
            f"{max_distance_km} km of {reference_point.name}"
        )
        return []

    coords_array = np.array(coordinates, dtype=float)
    distances = haversine_many(
        reference_point.latitude,
        reference_point.longitude,
        coords_array[:, 0],
        coords_array[:, 1],
    )

    within = np.flatnonzero(distances <= max_distance_km)
    order = within[np.argsort(distances[within], kind="stable")]
    results = [DistanceResult(entity=candidates[i], distance_km=float(distances[i])) for i in order]

    logger.info(
        f"Distance filter: {len(results)}/{len(entities)} entities within "
        f"{max_distance_km} km of {reference_point.name}"
    )
    return results
