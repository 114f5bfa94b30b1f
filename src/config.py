"""
src/config.py

Enums, defaults and environment-backed settings.
Settings are loaded once at process start and are read-only afterwards.
"""


import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv

from orchestrator.errors import ConfigurationError


# Load .env file if it exists
load_dotenv()


class ToolName(str, Enum):

    GEOCODE_ADDRESS = "geocode_address"
    SCAN_INFRASTRUCTURE = "scan_infrastructure"
    ASSESS_FLOOD_RISK = "assess_flood_risk"


class RiskLevel(str, Enum):

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    UNKNOWN = "unknown"


class Bucket(str, Enum):
    """Infrastructure categories, in the order they are summarised."""

    EDUCATION = "education"
    HEALTH = "health"
    COMMERCE = "commerce"
    TRANSPORT = "transport"
    PUBLIC_SERVICES = "public_services"
    LEISURE = "leisure"
    EMERGENCY = "emergency"
    TERRITORIAL = "territorial_infrastructure"
    OTHER = "other"


# Defaults
DEFAULT_MODEL: str = "gpt-4o"
DEFAULT_MAX_ITERATIONS: int = 6
DEFAULT_RADIUS_M: int = 500
MAX_RADIUS_M: int = 5000
BUCKET_CAP: int = 10

NOMINATIM_URL: str = "https://nominatim.openstreetmap.org/search"
OVERPASS_ENDPOINTS: Tuple[str, ...] = (
    "https://overpass-api.de/api/interpreter",
    "https://overpass.kumi.systems/api/interpreter",
    "https://overpass.openstreetmap.fr/api/interpreter",
)
OPEN_ELEVATION_URL: str = "https://api.open-elevation.com/api/v1/lookup"
USER_AGENT: str = "GeoAssistant/1.0"

TIMEOUTS: Dict[str, float] = {              # Seconds, per outbound call
    "llm": 60.0,
    "geocode": 10.0,
    "overpass": 15.0,
    "elevation": 10.0,
    "water": 10.0,
    "health": 5.0,
}

SOURCE_NAMES: Dict[ToolName, str] = {
    ToolName.GEOCODE_ADDRESS: "Nominatim (OpenStreetMap)",
    ToolName.SCAN_INFRASTRUCTURE: "Overpass API (OpenStreetMap)",
    ToolName.ASSESS_FLOOD_RISK: "Open-Elevation API + Overpass API (OpenStreetMap)",
}


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return default
    items = tuple(part.strip() for part in raw.split(",") if part.strip())
    return items or default


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration. Never mutated after load_settings()."""

    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_MODEL
    temperature: float = 0.2
    llm_timeout: float = TIMEOUTS["llm"]
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    tool_workers: int = 3
    nominatim_url: str = NOMINATIM_URL
    overpass_endpoints: Tuple[str, ...] = OVERPASS_ENDPOINTS
    open_elevation_url: str = OPEN_ELEVATION_URL
    user_agent: str = USER_AGENT
    log_level: str = "INFO"
    timeouts: Dict[str, float] = field(default_factory=lambda: dict(TIMEOUTS))

    def validate(self) -> None:
        """Raise ConfigurationError if something required is missing."""

        if not self.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set.")
        if not self.overpass_endpoints:
            raise ConfigurationError("At least one Overpass endpoint is required.")
        if self.max_iterations < 1:
            raise ConfigurationError("MAX_ITERATIONS must be at least 1.")


def load_settings() -> Settings:
    """Read settings from the environment."""

    try:
        return Settings(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_model=os.getenv("OPENAI_MODEL", DEFAULT_MODEL),
            temperature=float(os.getenv("OPENAI_TEMPERATURE", "0.2")),
            llm_timeout=float(os.getenv("LLM_TIMEOUT_SECONDS", str(TIMEOUTS["llm"]))),
            max_iterations=int(os.getenv("MAX_ITERATIONS", str(DEFAULT_MAX_ITERATIONS))),
            tool_workers=int(os.getenv("TOOL_WORKERS", "3")),
            nominatim_url=os.getenv("NOMINATIM_URL", NOMINATIM_URL),
            overpass_endpoints=_env_list("OVERPASS_ENDPOINTS", OVERPASS_ENDPOINTS),
            open_elevation_url=os.getenv("OPEN_ELEVATION_URL", OPEN_ELEVATION_URL),
            user_agent=os.getenv("HTTP_USER_AGENT", USER_AGENT),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid numeric setting: {e}") from e
# EOF
