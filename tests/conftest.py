"""Shared fixtures: fake HTTP sessions so no test touches the network."""

import json as jsonlib

import pytest
import requests


class FakeResponse:
    """Stand-in for requests.Response."""

    def __init__(self, status_code=200, json=None, text=None):
        self.status_code = status_code
        self._json = json
        self.text = text if text is not None else jsonlib.dumps(json)

    def json(self):
        if self._json is None:
            raise requests.JSONDecodeError("Expecting value", self.text or "", 0)
        return self._json


class FakeSession:
    """
    Records requests and replays queued responses.

    Queue items are FakeResponse instances or exceptions to raise.
    """

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def _next(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"Unexpected {method} {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def get(self, url, **kwargs):
        return self._next("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._next("POST", url, **kwargs)


class FakeProvider:
    """Geocoding provider returning canned answers and counting calls."""

    def __init__(self, answers=None, error=None):
        self.answers = answers or {}
        self.error = error
        self.queries = []

    def geocode(self, query):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.answers.get(query)


@pytest.fixture
def milan_duomo():
    return {"latitude": 45.4642, "longitude": 9.19, "name": "Duomo di Milano"}


@pytest.fixture
def overpass_elements():
    """Overpass answer: two usable ways, one degenerate way, one node."""
    return {
        "elements": [
            {"type": "relation", "id": 1},
            {
                "type": "way",
                "id": 10,
                "geometry": [{"lat": 45.48, "lon": 9.20}, {"lat": 45.49, "lon": 9.21}],
            },
            {"type": "way", "id": 11, "geometry": [{"lat": 45.50, "lon": 9.22}]},
            {
                "type": "way",
                "id": 12,
                "geometry": [
                    {"lat": 45.51, "lon": 9.23},
                    {"lat": None, "lon": 9.24},
                    {"lat": 45.52, "lon": 9.25},
                ],
            },
            {"type": "node", "id": 20, "lat": 45.5, "lon": 9.2},
        ]
    }
