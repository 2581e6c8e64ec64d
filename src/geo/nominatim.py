"""
OpenStreetMap Nominatim geocoding.

Place queries coming from search text are often verbose ("Susa metro
station, Milan, Italy"). Nominatim matches better on short phrasings, so
queries are first simplified per region and then retried as a list of
alternative phrasings until one resolves.
"""

import logging
import re
from typing import Any

import requests

from ..nlp.preprocessing import normalize_query, normalize_whitespace, split_words
from .geocoding import GeocodingError

logger = logging.getLogger(__name__)

US_ZIP = re.compile(r"\b\d{5}(-\d{4})?\b")
US_STATE = re.compile(
    r"\b(CA|NY|TX|FL|IL|PA|OH|GA|NC|MI|NJ|VA|WA|AZ|MA|TN|IN|MO|MD|WI|CO|MN|SC|AL|LA|KY|OR|OK|CT"
    r"|IA|UT|AR|NV|MS|KS|NM|NE|WV|ID|HI|NH|ME|MT|RI|DE|SD|ND|AK|DC|VT|WY)\b"
)
US_UNIT = re.compile(r"\s*(?:#|\b(?:Apt|Apartment|Unit|Suite|Ste)\b)\s*[A-Z0-9]+\s*", re.IGNORECASE)
UK_POSTCODE = re.compile(r"\b([A-Z]{1,2}\d{1,2}[A-Z]?\s?\d[A-Z]{2})\b", re.IGNORECASE)
IT_STREET = re.compile(r"\b(Via|Viale|Piazza|Piazzale|Corso|Vicolo|Largo)\b", re.IGNORECASE)
IT_CITY = re.compile(
    r"\b(Milano|Roma|Firenze|Torino|Napoli|Bologna|Genova|Palermo|Venezia)\b", re.IGNORECASE
)

IT_STOP_WORDS = {
    "di", "della", "del", "degli", "delle", "dei", "dello",
    "station", "stazione", "metro", "line", "linea",
    "university", "università", "universita",
    "italy", "italia",
}
CAMPUS_INDICATORS = {"campus", "sede", "location", "site"}
UNIVERSITIES = ("politecnico", "bocconi", "cattolica")
METRO_LINES = ("m1", "m2", "m3", "m4", "m5")
ITALIAN_CITIES = ("milan", "milano", "rome", "roma")
KNOWN_CITIES = ITALIAN_CITIES + (
    "paris", "london", "berlin", "madrid", "barcelona", "amsterdam", "vienna",
)


def detect_region(query: str) -> str | None:
    """
    Guess which address convention a query follows.

    Returns:
        "us", "uk", "it", or None when no convention is recognized
    """
    upper = query.upper()
    if (
        US_ZIP.search(query)
        or US_STATE.search(upper)
        or "USA" in upper
        or "UNITED STATES" in upper
    ):
        return "us"
    if UK_POSTCODE.search(query) or re.search(r"\bUK\b", upper) or "UNITED KINGDOM" in upper:
        return "uk"
    if (
        IT_STREET.search(query)
        or "ITALIA" in upper
        or "ITALY" in upper
        or IT_CITY.search(query)
    ):
        return "it"
    return None


def _index_of(words: list[str], candidates: tuple[str, ...]) -> int:
    for i, word in enumerate(words):
        if word in candidates:
            return i
    return -1


def _index_containing(words: list[str], fragments: tuple[str, ...]) -> int:
    for i, word in enumerate(words):
        if any(fragment in word for fragment in fragments):
            return i
    return -1


def _optimize_italian(query: str) -> str:
    all_words = split_words(query)

    campus_name = None
    for i, word in enumerate(all_words[:-1]):
        if word in CAMPUS_INDICATORS:
            campus_name = all_words[i + 1]
            break

    words = [
        w
        for w in all_words
        if w == campus_name
        or (len(w) > 2 and w not in IT_STOP_WORDS and w not in CAMPUS_INDICATORS)
    ]

    university_index = _index_containing(words, UNIVERSITIES)
    city_index = _index_of(words, ITALIAN_CITIES)
    if university_index != -1 and city_index != -1:
        university, city = words[university_index], words[city_index]
        if campus_name and campus_name in words:
            return f"{university} {campus_name} {city}"
        return f"{university} {city}"

    if _index_containing(words, ("metro",) + METRO_LINES) != -1 and city_index != -1:
        station_name = " ".join(
            w
            for w in words
            if w not in ITALIAN_CITIES and not any(m in w for m in ("metro",) + METRO_LINES)
        )
        if station_name:
            return f"{station_name} {words[city_index]}"

    city_index = _index_of(words, KNOWN_CITIES)
    if city_index != -1:
        location = " ".join(words[:city_index])
        city = words[city_index]
        return f"{location} {city}" if location else city

    return " ".join(words)


def optimize_query(query: str) -> str:
    """
    Simplify a verbose place query for Nominatim.

    Examples:
        "123 Main St Apt 4B, Springfield, IL 62701" -> "123 Main St, Springfield, IL 62701"
        "Politecnico di Milano campus Bovisa, Milano" -> "politecnico bovisa milano"
    """
    region = detect_region(query)
    if region == "us":
        return normalize_whitespace(US_UNIT.sub(" ", query)).replace(" ,", ",")
    if region == "it":
        return _optimize_italian(query)
    return query.strip()


def _us_variations(query: str) -> list[str]:
    variations = []
    match = re.match(r"^(.+?),\s*(.+?),\s*([A-Z]{2})\s+(\d{5}(?:-\d{4})?)$", query, re.IGNORECASE)
    if match:
        street, city, state, zip_code = match.groups()
        variations += [
            f"{street}, {city}, {state} {zip_code}",
            f"{street}, {city}, {state}",
            f"{city}, {state} {zip_code}",
            f"{city}, {state}",
        ]
    else:
        match = re.match(r"^(.+?),\s*(.+?),\s*([A-Z]{2})$", query, re.IGNORECASE)
        if match:
            street, city, state = match.groups()
            variations += [f"{street}, {city}, {state}", f"{city}, {state}"]

    upper = query.upper()
    if "USA" not in upper and "UNITED STATES" not in upper:
        variations.append(f"{query}, USA")
    return variations


def _uk_variations(query: str) -> list[str]:
    variations = []
    postcode_match = UK_POSTCODE.search(query)
    if postcode_match:
        postcode = postcode_match.group(1)
        variations.append(postcode)
        city_match = re.match(
            r"^(.+?),\s*(.+?)(?:,\s*[^,]+)?,\s*[A-Z]{1,2}\d{1,2}[A-Z]?\s?\d[A-Z]{2}",
            query,
            re.IGNORECASE,
        )
        if city_match:
            variations.append(f"{city_match.group(2)}, {postcode}")

    upper = query.upper()
    if not re.search(r"\bUK\b", upper) and "UNITED KINGDOM" not in upper:
        variations.append(f"{query}, UK")
    return variations


def _italian_variations(query: str) -> list[str]:
    variations = []
    normalized = normalize_query(query)
    words = normalized.split()
    city_index = _index_of(words, ITALIAN_CITIES)

    university_index = _index_containing(words, UNIVERSITIES)
    if university_index != -1 and city_index != -1:
        university, city = words[university_index], words[city_index]
        campus_name = next(
            (
                w
                for i, w in enumerate(words)
                if university_index < i < city_index and len(w) > 3
            ),
            None,
        )
        if campus_name:
            variations += [
                f"{university} {campus_name} {city}",
                f"{university} campus {campus_name} {city}",
                f"{university} {city} {campus_name}",
            ]
        variations += [f"{university} {city}", f"{university} di {city}"]

    if any(token in normalized for token in ("metro", "station") + METRO_LINES):
        ignored = {"metro", "station", "milan", "milano", "italy", "italia", "line"}
        ignored.update(METRO_LINES)
        station_words = [w for w in words if w not in ignored]
        if station_words:
            station = " ".join(station_words)
            city = words[city_index] if city_index != -1 else "Milano"
            variations += [
                f"Piazzale {station} {city}",
                f"Piazza {station} {city}",
                f"{station} {city} metro",
                f"{station} {city}",
                f"Via {station} {city}",
            ]

    simplified = normalize_whitespace(
        re.sub(r"\b(metro|station|university|universita|stazione)\b", "", normalized)
    )
    if simplified != normalized and len(simplified) > 2 and city_index != -1:
        variations.append(f"{simplified} {words[city_index]}")

    if "Italy" not in query and "Italia" not in query:
        variations.append(f"{query}, Italy")
    return variations


def query_variations(query: str) -> list[str]:
    """
    Alternative phrasings of a query, most specific first.

    The query itself is always the first element; duplicates are removed.
    """
    variations = [query]
    region = detect_region(query)
    if region == "us":
        variations += _us_variations(query)
    elif region == "uk":
        variations += _uk_variations(query)
    elif region == "it":
        variations += _italian_variations(query)
    return list(dict.fromkeys(variations))


class NominatimGeocoder:
    """Geocoding provider backed by the public Nominatim search API."""

    def __init__(
        self,
        url: str = "https://nominatim.openstreetmap.org/search",
        user_agent: str = "flatlist-app/1.0 (apartment search application)",
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ):
        self.url = url
        self.session = session or requests.Session()
        self.timeout = timeout
        self.headers = {"User-Agent": user_agent, "Accept-Language": "en"}

    def candidate_queries(self, query: str) -> list[str]:
        """All phrasings tried for a query, in order."""
        optimized = optimize_query(query)
        logger.debug(f"Optimized geocoding query: {query!r} -> {optimized!r}")
        candidates = [optimized, *query_variations(optimized)]
        if query != optimized:
            candidates += [query, *query_variations(query)]
        return list(dict.fromkeys(c for c in candidates if c.strip()))

    def search(self, query: str) -> dict[str, Any] | None:
        """Run a single Nominatim search, returning the best hit or None."""
        response = self.session.get(
            self.url,
            params={"q": query, "format": "json", "limit": 1},
            headers=self.headers,
            timeout=self.timeout,
        )
        if response.status_code != 200:
            logger.warning(f"Nominatim returned status {response.status_code} for {query!r}")
            return None

        results = response.json()
        if not isinstance(results, list):
            raise GeocodingError(f"Unexpected Nominatim payload for {query!r}: {results!r:.200}")
        if not results:
            return None

        best = results[0]
        if not isinstance(best, dict) or "lat" not in best or "lon" not in best:
            raise GeocodingError(f"Nominatim result for {query!r} has no coordinates")
        return {
            "latitude": float(best["lat"]),
            "longitude": float(best["lon"]),
            "name": best.get("display_name") or query,
        }

    def geocode(self, query: str) -> dict[str, Any] | None:
        """
        Geocode a query, trying each candidate phrasing until one resolves.

        A candidate answered with a malformed payload counts as a miss.

        Raises:
            requests.RequestException: if every attempt failed in transport
        """
        candidates = self.candidate_queries(query)
        last_error: requests.RequestException | None = None
        failures = 0

        for candidate in candidates:
            try:
                result = self.search(candidate)
            except (GeocodingError, ValueError) as e:
                # requests.JSONDecodeError is a ValueError, so invalid JSON is a miss
                logger.warning(f"Bad Nominatim answer for {candidate!r}: {e}")
                continue
            except requests.RequestException as e:
                logger.warning(f"Nominatim request failed for {candidate!r}: {e}")
                last_error = e
                failures += 1
                continue
            if result:
                logger.info(f"Geocoded {query!r} using {candidate!r}: {result['name']}")
                return result

        if last_error is not None and failures == len(candidates):
            raise last_error

        logger.warning(f"Could not geocode {query!r} (tried {len(candidates)} variations)")
        return None
