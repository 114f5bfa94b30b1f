"""
src/orchestrator/service.py

Inbound request handling, independent of any web framework.
- handle_analyze(): validate, run the orchestrator, shape the response
- service_status(): static description of the service
- health_check(): probe every upstream once
"""


import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

import requests
from pydantic import ValidationError

from config import TIMEOUTS, Settings, ToolName
from geotools.geocoder import Geocoder
from geotools.http import build_session, get_json, post_json
from orchestrator import prompts
from orchestrator.errors import GeoAssistantError, IterationLimitExceeded, ReasoningGatewayUnavailable
from orchestrator.models import AnalyzeRequest
from orchestrator.router import Orchestrator
from orchestrator.validator import validate


logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dump_trace(trace) -> list:
    return [record.model_dump(mode="json") for record in trace]


def _validation_message(error: ValidationError) -> str:
    """First error only; enough for a client to fix the request."""

    err = error.errors(include_url=False)[0]
    loc = ".".join(str(part) for part in err.get("loc", []))
    msg = err.get("msg", "invalid request")

    return f"{loc}: {msg}" if loc else msg


def handle_analyze(body: Optional[Mapping[str, Any]], orchestrator: Orchestrator,
                   max_iterations: int) -> Tuple[int, Dict[str, Any]]:
    """
    Analyse one location.

    Returns:
        (HTTP-like status code, JSON-serialisable payload). Malformed input is
        rejected with 400 before any network call.
    """

    try:
        request = AnalyzeRequest.model_validate(dict(body or {}))
    except (ValidationError, TypeError, ValueError) as e:
        message = _validation_message(e) if isinstance(e, ValidationError) else str(e)
        logger.info("Rejected analyze request: %s", message)
        return 400, {"success": False, "error": message}

    logger.info("Analyzing %r", request.label)

    try:
        result = orchestrator.run(prompts.user_prompt(request), max_iterations=max_iterations)
    except IterationLimitExceeded as e:
        return 500, {
            "success": False,
            "error": "Iteration limit reached",
            "tools_used": _dump_trace(e.trace),
            "timestamp": _now(),
        }
    except ReasoningGatewayUnavailable as e:
        return 502, {
            "success": False,
            "error": "Reasoning service unavailable",
            "details": str(e),
            "timestamp": _now(),
        }
    except Exception as e:
        logger.exception("Analysis of %r failed", request.label)
        return 500, {
            "success": False,
            "error": "Internal error",
            "details": str(e),
            "timestamp": _now(),
        }

    validation = validate(result.trace, result.final_text)
    if not validation.valid:
        logger.info("Validation warnings: %s", validation.warnings)

    return 200, {
        "success": True,
        "query": request.label,
        "tools_used": _dump_trace(result.trace),
        "ai_response": result.final_text,
        "iterations": result.iterations_used,
        "validation": validation.model_dump(),
        "timestamp": _now(),
    }


def service_status(settings: Settings) -> Dict[str, Any]:

    return {
        "service": "Geospatial analysis API with AI (OpenAI)",
        "status": "online",
        "model": settings.openai_model,
        "tools_available": [
            f"{ToolName.GEOCODE_ADDRESS.value} - geocoding (Nominatim/OSM)",
            f"{ToolName.SCAN_INFRASTRUCTURE.value} - nearby infrastructure (Overpass/OSM)",
            f"{ToolName.ASSESS_FLOOD_RISK.value} - flood risk (Open-Elevation + Overpass/OSM)",
        ],
    }


def health_check(settings: Settings, session: Optional[requests.Session] = None) -> Dict[str, Any]:
    """
    Probe each upstream with a short timeout. Never raises.

    The reasoning service is only checked for credentials, no tokens are spent.
    """

    session = session or build_session(settings.user_agent)
    timeout = TIMEOUTS["health"]
    checks: Dict[str, Dict[str, Any]] = {}

    if settings.openai_api_key:
        checks["openai"] = {"status": "online", "model": settings.openai_model}
    else:
        checks["openai"] = {"status": "offline", "error": "OPENAI_API_KEY is not set"}

    geocoder = Geocoder(settings.nominatim_url, session=session, timeout=timeout)
    probes = {
        "nominatim": lambda: geocoder.resolve("Madrid, Spain"),
        "overpass": lambda: post_json(session, settings.overpass_endpoints[0],
                                      data={"data": "[out:json];node(0);out;"}, timeout=timeout),
        "open_elevation": lambda: get_json(session, settings.open_elevation_url,
                                           params={"locations": "40.4,-3.7"}, timeout=timeout),
    }

    for name, probe in probes.items():
        try:
            probe()
            checks[name] = {"status": "online"}
        except (GeoAssistantError, requests.RequestException, ValueError) as e:
            logger.warning("Health check %s failed: %s", name, e)
            checks[name] = {"status": "error", "error": str(e)}

    online = sum(1 for c in checks.values() if c["status"] == "online")

    return {
        "status": "healthy" if online == len(checks) else "degraded",
        "timestamp": _now(),
        "services": checks,
        "summary": {
            "total": len(checks),
            "online": online,
            "errors": sum(1 for c in checks.values() if c["status"] == "error"),
        },
    }
