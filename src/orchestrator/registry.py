"""
src/orchestrator/registry.py

Tool registry: tool name -> (schema, argument model, adapter call).

dispatch() never raises. Unknown names, unusable arguments and adapter errors
all come back as a ToolFailure so the model can read them and adapt.
"""


import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Type, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from config import DEFAULT_RADIUS_M, MAX_RADIUS_M, Settings, ToolName
from geotools.flood_risk import FloodRiskEvaluator
from geotools.geocoder import Geocoder
from geotools.http import build_session
from geotools.infrastructure import InfrastructureScanner
from orchestrator.errors import ConfigurationError, LocationNotFound, UpstreamUnavailable
from orchestrator.models import (
    Coordinate, FailureKind, ToolFailure, ToolInvocationRecord, ToolOutcome, ToolResultMessage,
)


logger = logging.getLogger(__name__)


# -------- Argument models ------------------------------------------------------
# Every field is optional so a partially valid payload still parses; the
# handler decides whether what is left is enough to call the adapter.


class GeocodeArgs(BaseModel):

    address: Optional[str] = None


class PointArgs(BaseModel):

    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lon: Optional[float] = Field(default=None, ge=-180, le=180)

    def coordinate(self) -> Optional[Coordinate]:
        if self.lat is None or self.lon is None:
            return None
        return Coordinate(lat=self.lat, lon=self.lon)


class ScanArgs(PointArgs):

    radius: int = DEFAULT_RADIUS_M

    @field_validator("radius")
    @classmethod
    def _clamp_radius(cls, v: int) -> int:
        return max(1, min(int(v), MAX_RADIUS_M))


def decode_arguments(raw: Union[str, Mapping[str, Any], None]) -> Dict[str, Any]:
    """Raw tool arguments (JSON text or mapping) to a dict; anything else becomes {}."""

    if isinstance(raw, Mapping):
        return dict(raw)
    try:
        decoded = json.loads(raw or "{}")
    except (TypeError, ValueError):
        logger.warning("Undecodable tool arguments: %r", raw)
        return {}

    return decoded if isinstance(decoded, dict) else {}


def parse_arguments(model: Type[BaseModel], raw: Dict[str, Any]) -> BaseModel:
    """
    Best-effort parse: fields that fail validation are dropped and their defaults used.
    """

    try:
        return model.model_validate(raw)
    except ValidationError as e:
        bad = {err["loc"][0] for err in e.errors() if err.get("loc")}
        logger.warning("Dropping invalid tool argument(s) %s", sorted(map(str, bad)))
        return model.model_validate({k: v for k, v in raw.items() if k not in bad})


# -------- Tool specs -----------------------------------------------------------


@dataclass(frozen=True)
class ToolHandler:

    name: ToolName
    description: str
    properties: Dict[str, Any]
    required: List[str]
    args_model: Type[BaseModel]
    execute: Callable[[Any], ToolOutcome]

    def spec(self) -> Dict[str, Any]:
        """Chat Completions function schema. Unknown properties are refused."""

        schema = {"type": "object", "properties": self.properties, "required": self.required,
                  "additionalProperties": False}

        return {"type": "function", "function": {"name": self.name.value, "description": self.description,
                                                 "parameters": schema}}


def _failure(kind: FailureKind, reason: str) -> ToolFailure:
    return ToolFailure(kind=kind, reason=reason)


def _missing_coordinate(args: PointArgs) -> ToolFailure:
    return _failure(
        FailureKind.MALFORMED_ARGUMENTS,
        f"lat and lon are required and must be in range (got lat={args.lat}, lon={args.lon})",
    )


# -------- Registry -------------------------------------------------------------


class ToolRegistry:

    def __init__(self, geocoder: Geocoder, scanner: InfrastructureScanner, flood: FloodRiskEvaluator):

        self.geocoder = geocoder
        self.scanner = scanner
        self.flood = flood
        self._handlers: Dict[ToolName, ToolHandler] = {h.name: h for h in self._build_handlers()}

        missing = set(ToolName) - set(self._handlers)
        if missing:
            raise ConfigurationError(f"No handler registered for: {sorted(m.value for m in missing)}")

    def _build_handlers(self) -> List[ToolHandler]:

        point = {
            "lat": {"type": "number", "description": "Latitude in decimal degrees (-90 to 90)."},
            "lon": {"type": "number", "description": "Longitude in decimal degrees (-180 to 180)."},
        }

        return [
            ToolHandler(
                name=ToolName.GEOCODE_ADDRESS,
                description="Find the coordinates (lat/lon) of an address or place name using Nominatim (OpenStreetMap).",
                properties={"address": {"type": "string", "description": "Address or place to geocode."}},
                required=["address"],
                args_model=GeocodeArgs,
                execute=self._geocode,
            ),
            ToolHandler(
                name=ToolName.SCAN_INFRASTRUCTURE,
                description=(
                    "List nearby infrastructure (education, health, commerce, transport, public services, "
                    "leisure, emergency, territorial infrastructure) using Overpass/OpenStreetMap."
                ),
                properties={
                    **point,
                    "radius": {"type": "number", "description": f"Radius in metres (default {DEFAULT_RADIUS_M})."},
                },
                required=["lat", "lon"],
                args_model=ScanArgs,
                execute=self._scan,
            ),
            ToolHandler(
                name=ToolName.ASSESS_FLOOD_RISK,
                description=(
                    "Assess flood risk from terrain elevation (Open-Elevation) and nearby watercourses "
                    "(Overpass). Returns a level (low/medium/high), a score and recommendations."
                ),
                properties=point,
                required=["lat", "lon"],
                args_model=PointArgs,
                execute=self._assess,
            ),
        ]

    # --- Executors ---------------------------------------------------------------
    def _geocode(self, args: GeocodeArgs) -> ToolOutcome:
        return self.geocoder.resolve(args.address or "")

    def _scan(self, args: ScanArgs) -> ToolOutcome:
        coordinate = args.coordinate()
        if coordinate is None:
            return _missing_coordinate(args)
        return self.scanner.scan(coordinate, args.radius)

    def _assess(self, args: PointArgs) -> ToolOutcome:
        coordinate = args.coordinate()
        if coordinate is None:
            return _missing_coordinate(args)
        return self.flood.assess(coordinate)

    # --- Public API --------------------------------------------------------------
    def catalog(self) -> List[Dict[str, Any]]:
        """JSON schemas of every tool, in ToolName order."""

        return [self._handlers[name].spec() for name in ToolName]

    def dispatch(self, name: str, raw_arguments: Union[str, Mapping[str, Any], None]) -> ToolInvocationRecord:
        """Parse arguments, run the tool, and record the outcome. Never raises."""

        raw = decode_arguments(raw_arguments)

        try:
            tool = ToolName(name)
        except ValueError:
            logger.warning("Model requested unknown tool %r", name)
            return ToolInvocationRecord(
                tool=str(name),
                arguments=raw,
                outcome=_failure(FailureKind.UNKNOWN_TOOL, f"Unknown tool: {name}"),
            )

        handler = self._handlers[tool]
        args = parse_arguments(handler.args_model, raw)
        parsed = args.model_dump(exclude_none=True)

        try:
            outcome = handler.execute(args)
        except LocationNotFound as e:
            outcome = _failure(FailureKind.NOT_FOUND, str(e))
        except UpstreamUnavailable as e:
            outcome = _failure(FailureKind.UPSTREAM_UNAVAILABLE, str(e))
        except ValueError as e:
            outcome = _failure(FailureKind.MALFORMED_ARGUMENTS, str(e))
        except Exception as e:
            logger.exception("Tool %s crashed", tool.value)
            outcome = _failure(FailureKind.INTERNAL_ERROR, f"Error running {tool.value}: {e}")

        if isinstance(outcome, ToolFailure):
            logger.warning("Tool %s failed (%s): %s", tool.value, outcome.kind.value, outcome.reason)
        else:
            logger.info("Tool %s succeeded", tool.value)

        return ToolInvocationRecord(tool=tool.value, arguments=parsed, outcome=outcome)


def to_result_message(correlation_id: str, record: ToolInvocationRecord) -> ToolResultMessage:
    """Serialize an outcome, success or failure, for the model."""

    payload = {"success": record.ok, **record.outcome.model_dump(mode="json")}

    return ToolResultMessage(
        tool_call_id=correlation_id,
        name=record.tool,
        content=json.dumps(payload, ensure_ascii=False),
    )


def build_registry(settings: Settings) -> ToolRegistry:
    """
    Wire the three adapters from settings, each with its own HTTP session.

    A batch can still run two calls of the same tool at once on one session.
    Only headers set here and the urllib3 connection pool are shared then;
    nothing writes session state per request.
    """

    t = settings.timeouts

    return ToolRegistry(
        geocoder=Geocoder(settings.nominatim_url, session=build_session(settings.user_agent), timeout=t["geocode"]),
        scanner=InfrastructureScanner(
            settings.overpass_endpoints, session=build_session(settings.user_agent), timeout=t["overpass"],
        ),
        flood=FloodRiskEvaluator(
            settings.open_elevation_url,
            settings.overpass_endpoints[0],
            session=build_session(settings.user_agent),
            elevation_timeout=t["elevation"],
            water_timeout=t["water"],
        ),
    )
