"""
src/orchestrator/errors.py

Exception taxonomy.

Only IterationLimitExceeded and ReasoningGatewayUnavailable end a run.
Upstream and lookup errors are caught by the registry and fed back to the
model as failure outcomes.
"""


from typing import Any, List, Sequence, Tuple


class GeoAssistantError(Exception):
    """Base class for all errors raised by this project."""


class ConfigurationError(GeoAssistantError):
    """Required configuration (credentials, endpoints) is missing or invalid."""


class InputValidationError(GeoAssistantError):
    """An inbound request is missing fields or carries contradictory ones."""


class ConversationError(GeoAssistantError):
    """A message would break the conversation's ordering rules."""


class UpstreamUnavailable(GeoAssistantError):
    """An adapter's upstream call failed or timed out."""


class AllAttemptsFailed(UpstreamUnavailable):
    """Every attempt of an ordered fallback failed."""

    def __init__(self, errors: Sequence[Tuple[str, Exception]]):

        self.errors: List[Tuple[str, Exception]] = list(errors)
        detail = "; ".join(f"{label}: {err}" for label, err in self.errors)
        super().__init__(f"All {len(self.errors)} attempt(s) failed ({detail})")


class LocationNotFound(GeoAssistantError):
    """The geocoder answered, but knows no such place."""


class ReasoningGatewayUnavailable(GeoAssistantError):
    """The language-model endpoint could not produce a completion."""


class IterationLimitExceeded(GeoAssistantError):
    """The model kept requesting tools past the iteration bound."""

    def __init__(self, max_iterations: int, trace: Sequence[Any]):

        self.max_iterations = max_iterations
        self.trace = list(trace)
        super().__init__(f"No final answer after {max_iterations} iteration(s).")
