"""
src/geotools/geocoder.py - free text to coordinates (Nominatim / OpenStreetMap)

An empty result set is LocationNotFound (no such place); a failed call is
UpstreamUnavailable (service down). The model is told which one happened.
"""


import logging
from typing import Optional

import requests

from config import SOURCE_NAMES, TIMEOUTS, NOMINATIM_URL, USER_AGENT, ToolName
from geotools.http import build_session, first_success, get_json
from orchestrator.errors import AllAttemptsFailed, LocationNotFound, UpstreamUnavailable
from orchestrator.models import GeocodeResult


logger = logging.getLogger(__name__)


class Geocoder:

    def __init__(self, url: str = NOMINATIM_URL, *, session: Optional[requests.Session] = None,
                 user_agent: str = USER_AGENT, timeout: float = TIMEOUTS["geocode"]):

        self.url = url
        self.session = session or build_session(user_agent)
        self.timeout = timeout

    def resolve(self, address: str) -> GeocodeResult:
        """
        Resolve an address or place name to its best match.

        Raises:
            ValueError: blank address (no call is made).
            LocationNotFound: the upstream returned no match.
            UpstreamUnavailable: the call failed, timed out or returned garbage.
        """

        address = (address or "").strip()
        if not address:
            raise ValueError("address must not be empty")

        logger.info("Geocoding %r", address)
        params = {"format": "json", "q": address, "limit": 1}

        try:
            data = first_success(
                [(self.url, lambda t: get_json(self.session, self.url, params=params, timeout=t))],
                self.timeout,
            )
        except AllAttemptsFailed as e:
            raise UpstreamUnavailable(f"Geocoding service unavailable: {e.errors[-1][1]}") from e

        if not isinstance(data, list):
            raise UpstreamUnavailable("Geocoding service returned an unexpected payload")
        if not data:
            raise LocationNotFound(f"No results for {address!r}")

        best = data[0]
        try:
            result = GeocodeResult(
                lat=float(best["lat"]),
                lon=float(best["lon"]),
                full_label=best.get("display_name", address),
                source=SOURCE_NAMES[ToolName.GEOCODE_ADDRESS],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamUnavailable(f"Geocoding service returned a malformed match: {e}") from e

        logger.info("Geocoded %r to %.5f, %.5f", address, result.lat, result.lon)

        return result
