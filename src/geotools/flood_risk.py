"""
src/geotools/flood_risk.py - flood risk from terrain elevation and nearby water

Two sub-lookups, each isolated:
- elevation (Open-Elevation); on failure a conservative 100 m is assumed
- water features within 1 km (Overpass); on failure zero features are assumed

score_risk() is a pure additive function of the two. assess() never raises:
anything unexpected yields a RiskAssessment with level "unknown".
"""


import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from config import OPEN_ELEVATION_URL, OVERPASS_ENDPOINTS, SOURCE_NAMES, TIMEOUTS, USER_AGENT, RiskLevel, ToolName
from geotools.http import build_session, first_success, get_json, post_json
from orchestrator.errors import AllAttemptsFailed
from orchestrator.models import Coordinate, RiskAssessment, RiskFactors


logger = logging.getLogger(__name__)


DEFAULT_ELEVATION_M = 100.0
WATER_RADIUS_M = 1000
UNNAMED_WATER = "Unnamed watercourse"

RECOMMENDATIONS: Dict[RiskLevel, Tuple[str, ...]] = {
    RiskLevel.HIGH: (
        "Review the flood history of the area",
        "Consider drainage and flood-protection systems",
        "Check official flood-zone maps and flood insurance options",
    ),
    RiskLevel.MEDIUM: (
        "Review local drainage systems",
        "Ask local authorities about historical flooding",
        "Consider basic preventive measures",
    ),
    RiskLevel.LOW: (
        "Low risk according to topographic data",
        "Keep drainage systems in good condition",
    ),
    RiskLevel.UNKNOWN: (
        "Consult local authorities about risks in the area",
    ),
}


# --- Scoring -------------------------------------------------------------------
def elevation_points(elevation_m: float) -> int:

    if elevation_m < 10:
        return 40
    if elevation_m < 50:
        return 20
    if elevation_m < 100:
        return 10
    return 0


def water_points(water_count: int) -> int:

    if water_count > 2:
        return 30
    if water_count > 0:
        return 15
    return 0


def risk_level(score: int) -> RiskLevel:

    if score >= 50:
        return RiskLevel.HIGH
    if score >= 25:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def score_risk(elevation_m: float, water_count: int, nearest_name: Optional[str] = None) -> Tuple[int, RiskLevel, str]:
    """
    Deterministic additive score in [0, 70].

    Returns:
        (score, level, narrative)
    """

    score = elevation_points(elevation_m) + water_points(water_count)
    level = risk_level(score)

    notes: List[str] = []
    if elevation_m < 10:
        notes.append("Very low-lying area (< 10 m).")
    elif elevation_m < 50:
        notes.append("Low-lying area (< 50 m).")
    if water_count > 2:
        notes.append(f"Several watercourses nearby ({water_count}).")
    elif water_count > 0:
        notes.append(f"Watercourse nearby: {nearest_name or UNNAMED_WATER}.")
    if level == RiskLevel.LOW:
        notes.append("Area at a safe elevation with low apparent risk.")

    narrative = " ".join(notes) or "Assessment based on topography and nearby watercourses."

    return score, level, narrative


# --- Adapter -------------------------------------------------------------------
class FloodRiskEvaluator:

    def __init__(self, elevation_url: str = OPEN_ELEVATION_URL, overpass_url: str = OVERPASS_ENDPOINTS[0], *,
                 session: Optional[requests.Session] = None, user_agent: str = USER_AGENT,
                 elevation_timeout: float = TIMEOUTS["elevation"], water_timeout: float = TIMEOUTS["water"]):

        self.elevation_url = elevation_url
        self.overpass_url = overpass_url
        self.session = session or build_session(user_agent)
        self.elevation_timeout = elevation_timeout
        self.water_timeout = water_timeout

    def _fetch_elevation(self, coordinate: Coordinate, timeout: float) -> float:

        params = {"locations": f"{coordinate.lat},{coordinate.lon}"}
        data = get_json(self.session, self.elevation_url, params=params, timeout=timeout)
        try:
            return float(data["results"][0]["elevation"])
        except (KeyError, IndexError, TypeError) as e:
            raise ValueError(f"no elevation in response: {e}") from e

    def lookup_elevation(self, coordinate: Coordinate) -> Tuple[float, Optional[str]]:
        """Elevation in metres, or the default plus a warning when the lookup fails."""

        try:
            elevation = first_success(
                [(self.elevation_url, lambda t: self._fetch_elevation(coordinate, t))],
                self.elevation_timeout,
            )
        except AllAttemptsFailed as e:
            logger.warning("Elevation lookup failed (%s); assuming %.0f m", e, DEFAULT_ELEVATION_M)
            return DEFAULT_ELEVATION_M, f"Elevation unavailable; assumed {DEFAULT_ELEVATION_M:.0f} m"

        logger.info("Elevation: %.1f m", elevation)

        return elevation, None

    def _fetch_water(self, query: str, timeout: float) -> List[Dict[str, Any]]:

        data = post_json(self.session, self.overpass_url, data={"data": query}, timeout=timeout)
        elements = data.get("elements", []) if isinstance(data, dict) else None
        if not isinstance(elements, list) or not all(isinstance(el, dict) for el in elements):
            raise ValueError("malformed water response")
        return elements

    def lookup_water(self, coordinate: Coordinate) -> Tuple[int, Optional[str], Optional[str]]:
        """(count, nearest name, warning) for rivers, streams and water bodies within 1 km."""

        around = f"(around:{WATER_RADIUS_M},{coordinate.lat},{coordinate.lon})"
        query = "\n".join([
            "[out:json][timeout:10];",
            "(",
            f'  way["waterway"="river"]{around};',
            f'  way["waterway"="stream"]{around};',
            f'  way["natural"="water"]{around};',
            ");",
            "out body;",
        ])

        try:
            elements = first_success(
                [(self.overpass_url, lambda t: self._fetch_water(query, t))],
                self.water_timeout,
            )
        except AllAttemptsFailed as e:
            logger.warning("Water lookup failed (%s); assuming none nearby", e)
            return 0, None, "Nearby water data unavailable; assumed none"

        if not elements:
            return 0, None, None

        tags = elements[0].get("tags")
        nearest = (tags.get("name") if isinstance(tags, dict) else None) or UNNAMED_WATER
        logger.info("Water features within %dm: %d", WATER_RADIUS_M, len(elements))

        return len(elements), nearest, None

    def assess(self, coordinate: Coordinate) -> RiskAssessment:
        """Flood risk for one point. Never raises."""

        logger.info("Assessing flood risk at %s, %s", coordinate.lat, coordinate.lon)

        try:
            elevation, elevation_warning = self.lookup_elevation(coordinate)
            water_count, nearest_name, water_warning = self.lookup_water(coordinate)
            score, level, narrative = score_risk(elevation, water_count, nearest_name)

            return RiskAssessment(
                coordinate=coordinate,
                elevation_m=elevation,
                nearby_water_count=water_count,
                nearest_water_name=nearest_name,
                nearest_water_distance="less than 1 km" if water_count else "none within 1 km",
                risk_level=level.value,
                risk_score=score,
                narrative=narrative,
                recommendations=list(RECOMMENDATIONS[level]),
                factors=RiskFactors(
                    low_elevation=elevation < 100,
                    near_water=water_count > 0,
                    coastal_zone=abs(coordinate.lat) < 45 and elevation < 20,
                ),
                warnings=[w for w in (elevation_warning, water_warning) if w],
                source=SOURCE_NAMES[ToolName.ASSESS_FLOOD_RISK],
            )
        except Exception as e:
            logger.exception("Flood risk assessment failed")
            return RiskAssessment(
                coordinate=coordinate,
                risk_level=RiskLevel.UNKNOWN.value,
                risk_score=0,
                narrative=f"Flood risk could not be assessed; data unavailable ({e}).",
                recommendations=list(RECOMMENDATIONS[RiskLevel.UNKNOWN]),
                warnings=["Limited data"],
                source="Fallback",
            )
