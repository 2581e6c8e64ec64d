"""Tests for geo distance utilities and the distance filter."""

import math
from dataclasses import dataclass

import numpy as np
import pytest

from src.geo.distance import as_coordinate, haversine, haversine_many
from src.geo.distance_filter import coordinates_of, filter_by_distance
from src.geo.geocoding import Point


class TestHaversine:
    """Tests for Haversine distance calculation."""

    def test_same_point(self):
        distance = haversine(45.4642, 9.19, 45.4642, 9.19)
        assert distance == 0.0

    def test_symmetric(self):
        milan = (45.4642, 9.19)
        rome = (41.9028, 12.4964)
        assert haversine(*milan, *rome) == pytest.approx(haversine(*rome, *milan), abs=1e-12)

    def test_milan_rome(self):
        # Milan: 45.4642, 9.19 / Rome: 41.9028, 12.4964
        distance = haversine(45.4642, 9.19, 41.9028, 12.4964)
        # Should be around 475-485 km
        assert 470 < distance < 490

    def test_paris_lyon(self):
        distance = haversine(48.8566, 2.3522, 45.7640, 4.8357)
        assert 380 < distance < 420

    def test_one_degree_of_latitude(self):
        # 1 degree along a meridian is R * pi / 180
        distance = haversine(0.0, 0.0, 1.0, 0.0)
        assert distance == pytest.approx(111.195, abs=0.01)

    def test_nearly_antipodal_points(self):
        # Rounding pushes the intermediate term past 1 for this pair
        distance = haversine(0.8189, 10.0, -0.8189, -170.0)
        assert distance == pytest.approx(math.pi * 6371.0, rel=1e-6)

    def test_antipodal(self):
        assert haversine(0.0, 0.0, 0.0, 180.0) == pytest.approx(math.pi * 6371.0)


class TestHaversineMany:
    """Tests for the vectorized Haversine."""

    def test_matches_scalar(self):
        lats = np.array([45.46, 46.0, 41.9028])
        lons = np.array([9.19, 9.0, 12.4964])
        distances = haversine_many(45.4642, 9.19, lats, lons)
        expected = [haversine(45.4642, 9.19, la, lo) for la, lo in zip(lats, lons)]
        assert distances.tolist() == pytest.approx(expected, rel=1e-9)

    def test_nearly_antipodal_points(self):
        distances = haversine_many(0.8189, 10.0, [-0.8189], [-170.0])
        assert not np.isnan(distances).any()
        assert distances[0] == pytest.approx(math.pi * 6371.0, rel=1e-6)

    def test_accepts_lists(self):
        distances = haversine_many(0.0, 0.0, [0.0], [0.0])
        assert distances.shape == (1,)
        assert distances[0] == pytest.approx(0.0, abs=1e-9)


@dataclass
class Listing:
    """Entity exposing coordinates as attributes."""

    name: str
    latitude: float | None
    longitude: float | None


class TestAsCoordinate:
    """Tests for coordinate parsing."""

    def test_numbers_and_numeric_strings(self):
        assert as_coordinate(45) == 45.0
        assert as_coordinate(" 9.19 ") == 9.19
        assert as_coordinate(0.0) == 0.0

    @pytest.mark.parametrize(
        "value", [None, True, "north", "", float("inf"), float("nan"), [45.0], 10**400]
    )
    def test_unusable(self, value):
        assert as_coordinate(value) is None


class TestCoordinatesOf:
    """Tests for coordinate extraction from entities."""

    def test_mapping(self):
        assert coordinates_of({"latitude": 45.0, "longitude": 9.0}) == (45.0, 9.0)

    def test_short_keys(self):
        assert coordinates_of({"lat": "45.5", "lon": "9.1"}) == (45.5, 9.1)

    def test_attributes(self):
        assert coordinates_of(Listing("a", 45.0, 9.0)) == (45.0, 9.0)

    def test_listing_metadata(self):
        listing = {"id": 1, "listing_metadata": [{"latitude": 45.0, "longitude": 9.0}]}
        assert coordinates_of(listing) == (45.0, 9.0)

    def test_empty_listing_metadata(self):
        assert coordinates_of({"id": 1, "listing_metadata": []}) is None

    def test_missing_coordinates(self):
        assert coordinates_of({"latitude": None, "longitude": None}) is None
        assert coordinates_of({"latitude": 45.0}) is None
        assert coordinates_of(Listing("a", None, 9.0)) is None

    def test_invalid_coordinates(self):
        assert coordinates_of({"latitude": "north", "longitude": 9.0}) is None
        assert coordinates_of({"latitude": float("nan"), "longitude": 9.0}) is None
        assert coordinates_of({"latitude": True, "longitude": 9.0}) is None

    def test_zero_is_a_coordinate(self):
        assert coordinates_of({"latitude": 0.0, "longitude": 0.0}) == (0.0, 0.0)


class TestFilterByDistance:
    """Tests for distance filtering and ranking."""

    @pytest.fixture
    def duomo(self):
        return Point(name="Duomo", latitude=45.4642, longitude=9.19)

    def test_end_to_end(self, duomo):
        entities = [
            {"lat": 45.46, "lon": 9.19},
            {"lat": 46.00, "lon": 9.00},
            {"lat": None, "lon": None},
        ]
        results = filter_by_distance(entities, duomo, 10)
        assert len(results) == 1
        assert results[0].entity is entities[0]
        assert results[0].distance_km == pytest.approx(0.0, abs=0.5)

    def test_sorted_nearest_first(self, duomo):
        entities = [
            {"id": "far", "latitude": 45.50, "longitude": 9.19},
            {"id": "near", "latitude": 45.465, "longitude": 9.19},
            {"id": "mid", "latitude": 45.48, "longitude": 9.19},
        ]
        results = filter_by_distance(entities, duomo, 50)
        assert [r.entity["id"] for r in results] == ["near", "mid", "far"]
        distances = [r.distance_km for r in results]
        assert distances == sorted(distances)

    def test_never_exceeds_max(self, duomo):
        entities = [
            {"id": i, "latitude": 45.4642 + i * 0.01, "longitude": 9.19} for i in range(30)
        ]
        results = filter_by_distance(entities, duomo, 5)
        assert results
        assert all(r.distance_km <= 5 for r in results)
        assert len(results) < len(entities)

    def test_boundary_is_inclusive(self, duomo):
        entity = {"latitude": duomo.latitude, "longitude": duomo.longitude}
        results = filter_by_distance([entity], duomo, 0)
        assert len(results) == 1
        assert results[0].distance_km == 0.0

    def test_ties_keep_input_order(self, duomo):
        entities = [
            {"id": "first", "latitude": 45.47, "longitude": 9.19},
            {"id": "second", "latitude": 45.47, "longitude": 9.19},
            {"id": "third", "latitude": 45.47, "longitude": 9.19},
        ]
        results = filter_by_distance(entities, duomo, 5)
        assert [r.entity["id"] for r in results] == ["first", "second", "third"]

    def test_entities_without_coordinates_excluded(self, duomo):
        entities = [
            Listing("no-lat", None, 9.19),
            {"listing_metadata": []},
            {"address": "Via Roma 1"},
        ]
        assert filter_by_distance(entities, duomo, 1000) == []

    def test_empty_input(self, duomo):
        assert filter_by_distance([], duomo, 10) == []

    def test_accepts_generators(self, duomo):
        entities = ({"latitude": 45.4642, "longitude": 9.19} for _ in range(2))
        assert len(filter_by_distance(entities, duomo, 1)) == 2

    def test_does_not_mutate_input(self, duomo):
        entities = [
            {"latitude": 45.50, "longitude": 9.19},
            {"latitude": 45.47, "longitude": 9.19},
        ]
        snapshot = [dict(e) for e in entities]
        filter_by_distance(entities, duomo, 50)
        assert entities == snapshot

    def test_nearly_antipodal_entity_kept(self):
        reference = Point(name="x", latitude=0.8189, longitude=10.0)
        entity = {"latitude": -0.8189, "longitude": -170.0}
        results = filter_by_distance([entity], reference, 30000)
        assert len(results) == 1
        assert results[0].distance_km == pytest.approx(math.pi * 6371.0, rel=1e-6)

    def test_overflowing_coordinate_excluded(self, duomo):
        assert filter_by_distance([{"latitude": 10**400, "longitude": 9.19}], duomo, 1000) == []
