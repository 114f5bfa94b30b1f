"""
src/geotools/infrastructure.py - nearby infrastructure by category (Overpass / OpenStreetMap)

This module provides:
- InfrastructureScanner.scan(coordinate, radius_m): query Overpass mirrors, bucket the features
- categorize(elements): deterministic bucketing used by scan()
- summarize(categories, total): one-sentence human summary

Key ideas explained:

1) Mirror fallback
   The Overpass endpoints are interchangeable mirrors. We try them in the
   configured order with a per-attempt timeout and keep the first answer.
   When all of them fail we still return a valid (empty) report with a
   warning, so the model can say the data is missing instead of the run dying.

2) One bucket per feature
   Tags are checked in a fixed priority: emergency/healthcare first, then known
   amenities, shops, tourism, linear infrastructure, and "other" last.
   Buckets keep first-seen order, drop duplicate labels and stop at 10 entries.
"""


import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

import requests

from config import (
    BUCKET_CAP, DEFAULT_RADIUS_M, OVERPASS_ENDPOINTS, SOURCE_NAMES, TIMEOUTS, USER_AGENT,
    Bucket, ToolName,
)
from geotools.http import build_session, first_success, post_json
from orchestrator.errors import AllAttemptsFailed
from orchestrator.models import Coordinate, InfrastructureReport


logger = logging.getLogger(__name__)


AMENITY_BUCKETS: Dict[str, Bucket] = {
    "school": Bucket.EDUCATION,
    "university": Bucket.EDUCATION,
    "college": Bucket.EDUCATION,
    "kindergarten": Bucket.EDUCATION,
    "hospital": Bucket.HEALTH,
    "clinic": Bucket.HEALTH,
    "doctors": Bucket.HEALTH,
    "pharmacy": Bucket.HEALTH,
    "restaurant": Bucket.COMMERCE,
    "cafe": Bucket.COMMERCE,
    "bar": Bucket.COMMERCE,
    "pub": Bucket.COMMERCE,
    "bus_station": Bucket.TRANSPORT,
    "parking": Bucket.TRANSPORT,
    "fuel": Bucket.TRANSPORT,
    "police": Bucket.PUBLIC_SERVICES,
    "fire_station": Bucket.PUBLIC_SERVICES,
    "post_office": Bucket.PUBLIC_SERVICES,
    "townhall": Bucket.PUBLIC_SERVICES,
    "cinema": Bucket.LEISURE,
    "theatre": Bucket.LEISURE,
    "library": Bucket.LEISURE,
}

LINEAR_TAGS = ("highway", "waterway", "power", "man_made")

# Tags tried in order to give a feature a human label
LABEL_TAGS = ("name", "amenity", "shop", "tourism") + LINEAR_TAGS

SUMMARY_NOUNS: Dict[Bucket, str] = {
    Bucket.EDUCATION: "education centres",
    Bucket.HEALTH: "health centres",
    Bucket.COMMERCE: "shops and eateries",
    Bucket.TRANSPORT: "transport points",
    Bucket.PUBLIC_SERVICES: "public services",
    Bucket.LEISURE: "leisure and tourism spots",
    Bucket.EMERGENCY: "emergency facilities",
    Bucket.TERRITORIAL: "territorial infrastructures",
    Bucket.OTHER: "other amenities",
}

EMPTY_AREA_SUMMARY = "Area with little infrastructure recorded in OpenStreetMap, or no data available."
DEGRADED_SUMMARY = "Infrastructure data could not be retrieved (Overpass API temporarily unavailable)."


# --- Private helpers -----------------------------------------------------------
def _empty_buckets() -> Dict[str, List[str]]:
    return {b.value: [] for b in Bucket}


def _label(tags: Dict[str, Any]) -> str:
    for key in LABEL_TAGS:
        value = tags.get(key)
        if value:
            return str(value)
    return "Unnamed"


def build_query(coordinate: Coordinate, radius_m: int) -> str:
    """Overpass QL for everything the scanner buckets. Bodies only, no geometry recursion."""

    around = f"(around:{radius_m},{coordinate.lat},{coordinate.lon})"
    lines = ["[out:json][timeout:15];", "("]
    for key in ("amenity", "shop", "tourism"):
        for kind in ("node", "way", "relation"):
            lines.append(f'  {kind}["{key}"]{around};')
    for key in LINEAR_TAGS:
        lines.append(f'  way["{key}"]{around};')
    lines += [");", "out body;"]

    return "\n".join(lines)


# --- Public API ----------------------------------------------------------------
def classify(tags: Dict[str, Any]) -> Bucket:
    """Pick exactly one bucket for a tagged feature."""

    if tags.get("emergency") or tags.get("healthcare"):
        return Bucket.EMERGENCY

    amenity = tags.get("amenity")
    if amenity in AMENITY_BUCKETS:
        return AMENITY_BUCKETS[amenity]
    if tags.get("shop"):
        return Bucket.COMMERCE
    if tags.get("tourism"):
        return Bucket.LEISURE
    if any(tags.get(key) for key in LINEAR_TAGS):
        return Bucket.TERRITORIAL

    return Bucket.OTHER


def categorize(elements: Iterable[Dict[str, Any]], cap: int = BUCKET_CAP) -> Dict[str, List[str]]:
    """
    Bucket raw Overpass elements.

    Elements without tags (bare geometry) are skipped. Each bucket keeps
    first-seen order, holds every label once, and stops growing at `cap`.
    """

    buckets = _empty_buckets()

    for element in elements:
        tags = element.get("tags") if isinstance(element, dict) else None
        if not tags:
            continue
        bucket = buckets[classify(tags).value]
        label = _label(tags)
        if label in bucket or len(bucket) >= cap:
            continue
        bucket.append(label)

    return buckets


def summarize(categories: Dict[str, List[str]], total: int) -> str:
    """Sentence listing non-empty bucket counts in fixed bucket order."""

    if total == 0:
        return EMPTY_AREA_SUMMARY

    parts = [
        f"{len(categories.get(b.value, []))} {SUMMARY_NOUNS[b]}"
        for b in Bucket
        if categories.get(b.value)
    ]
    if not parts:
        return "Area with basic infrastructure."

    return f"Area with {', '.join(parts)}."


class InfrastructureScanner:

    def __init__(self, endpoints: Sequence[str] = OVERPASS_ENDPOINTS, *,
                 session: Optional[requests.Session] = None, user_agent: str = USER_AGENT,
                 timeout: float = TIMEOUTS["overpass"]):

        if not endpoints:
            raise ValueError("InfrastructureScanner needs at least one Overpass endpoint")
        self.endpoints = tuple(endpoints)
        self.session = session or build_session(user_agent)
        self.timeout = timeout

    def _attempt(self, url: str, query: str):
        return url, lambda t: post_json(self.session, url, data={"data": query}, timeout=t)

    def scan(self, coordinate: Coordinate, radius_m: int = DEFAULT_RADIUS_M) -> InfrastructureReport:
        """
        Scan the area around `coordinate`. Never raises on upstream failure.

        Returns:
            InfrastructureReport; when every mirror failed it is empty and carries `warning`.
        """

        logger.info("Scanning infrastructure around %s, %s (radius %dm)", coordinate.lat, coordinate.lon, radius_m)
        query = build_query(coordinate, radius_m)

        try:
            data = first_success([self._attempt(url, query) for url in self.endpoints], self.timeout)
        except AllAttemptsFailed as e:
            logger.warning("All %d Overpass mirrors failed; returning degraded report", len(e.errors))
            return InfrastructureReport(
                coordinate=coordinate,
                radius_m=radius_m,
                element_count=0,
                categories=_empty_buckets(),
                summary=DEGRADED_SUMMARY,
                warning="Overpass API unavailable at the moment",
                source=f"{SOURCE_NAMES[ToolName.SCAN_INFRASTRUCTURE]} - fallback",
            )

        elements = data.get("elements") if isinstance(data, dict) else None
        elements = elements if isinstance(elements, list) else []
        categories = categorize(elements)

        logger.info("Found %d infrastructure elements", len(elements))

        return InfrastructureReport(
            coordinate=coordinate,
            radius_m=radius_m,
            element_count=len(elements),
            categories=categories,
            summary=summarize(categories, len(elements)),
            source=SOURCE_NAMES[ToolName.SCAN_INFRASTRUCTURE],
        )
