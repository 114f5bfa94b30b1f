"""
src/orchestrator/models.py

Pydantic models for the conversation, tool results, the run trace and the inbound request.
"""


from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union, Annotated

from pydantic import BaseModel, ConfigDict, Field, model_validator


# -------- Geodata --------------------------------------------------------------


class Coordinate(BaseModel):

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)


class GeocodeResult(BaseModel):

    lat: float
    lon: float
    full_label: str
    source: str


class InfrastructureReport(BaseModel):

    success: bool = True
    coordinate: Coordinate
    radius_m: int
    element_count: int = 0
    categories: Dict[str, List[str]]
    summary: str
    warning: Optional[str] = None
    source: str


class RiskFactors(BaseModel):

    low_elevation: bool = False
    near_water: bool = False
    coastal_zone: bool = False


class RiskAssessment(BaseModel):

    success: bool = True
    coordinate: Coordinate
    elevation_m: Optional[float] = None
    nearby_water_count: int = 0
    nearest_water_name: Optional[str] = None
    nearest_water_distance: str = "unknown"
    risk_level: str
    risk_score: int = Field(default=0, ge=0)
    narrative: str
    recommendations: List[str] = Field(default_factory=list)
    factors: RiskFactors = Field(default_factory=RiskFactors)
    warnings: List[str] = Field(default_factory=list)
    source: str


# -------- Conversation ---------------------------------------------------------


class ToolRequest(BaseModel):
    """A tool call as issued by the model; arguments are not validated yet."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments: Union[str, Dict[str, Any]] = "{}"


class SystemMessage(BaseModel):

    model_config = ConfigDict(frozen=True)

    role: Literal["system"] = "system"
    content: str


class UserMessage(BaseModel):

    model_config = ConfigDict(frozen=True)

    role: Literal["user"] = "user"
    content: str


class AssistantMessage(BaseModel):

    model_config = ConfigDict(frozen=True)

    role: Literal["assistant"] = "assistant"
    content: Optional[str] = None
    tool_requests: List[ToolRequest] = Field(default_factory=list)


class ToolResultMessage(BaseModel):

    model_config = ConfigDict(frozen=True)

    role: Literal["tool"] = "tool"
    tool_call_id: str
    name: str
    content: str


Message = Annotated[
    Union[SystemMessage, UserMessage, AssistantMessage, ToolResultMessage],
    Field(discriminator="role"),
]


# -------- Trace ----------------------------------------------------------------


class FailureKind(str, Enum):

    UNKNOWN_TOOL = "unknown_tool"
    MALFORMED_ARGUMENTS = "malformed_arguments"
    NOT_FOUND = "not_found"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    INTERNAL_ERROR = "internal_error"


class ToolFailure(BaseModel):

    model_config = ConfigDict(frozen=True)

    success: Literal[False] = False
    kind: FailureKind
    reason: str


ToolOutcome = Union[GeocodeResult, InfrastructureReport, RiskAssessment, ToolFailure]


class ToolInvocationRecord(BaseModel):

    model_config = ConfigDict(frozen=True)

    tool: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    outcome: ToolOutcome

    @property
    def ok(self) -> bool:
        return not isinstance(self.outcome, ToolFailure)


class ValidationReport(BaseModel):

    valid: bool
    warnings: List[str] = Field(default_factory=list)


class RunResult(BaseModel):

    final_text: str
    trace: List[ToolInvocationRecord]
    iterations_used: int


# -------- Inbound request ------------------------------------------------------


class AnalyzeRequest(BaseModel):
    """Either a free-text query or a coordinate pair, never both."""

    query: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)

    @model_validator(mode="after")
    def _exactly_one_target(self) -> "AnalyzeRequest":

        has_query = bool(self.query and self.query.strip())
        # 0 is a valid coordinate: only None counts as absent
        has_lat = self.latitude is not None
        has_lon = self.longitude is not None

        if has_lat != has_lon:
            raise ValueError("latitude and longitude must be given together")
        if has_query and has_lat:
            raise ValueError("give either query or coordinates, not both")
        if not has_query and not has_lat:
            raise ValueError("query or coordinates (latitude, longitude) required")

        return self

    @property
    def coordinate(self) -> Optional[Coordinate]:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(lat=self.latitude, lon=self.longitude)

    @property
    def label(self) -> str:
        if self.query and self.query.strip():
            return self.query.strip()
        return f"{self.latitude}, {self.longitude}"
