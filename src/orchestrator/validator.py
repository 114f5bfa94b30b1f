"""
src/orchestrator/validator.py

Advisory grounding check on a finished run. Never blocks the response.
"""


from typing import List, Sequence

from orchestrator.models import ToolFailure, ToolInvocationRecord, ValidationReport


# Geocoding, infrastructure and elevation sources the report is asked to cite
SOURCE_MARKERS = ("Nominatim", "Overpass", "Open-Elevation")


def validate(trace: Sequence[ToolInvocationRecord], final_text: str) -> ValidationReport:
    """
    Warn when the answer is not visibly grounded in tool data.

    Warnings, in order:
        - no tool was used
        - one per failed tool invocation
        - none of the source names appears in the text
    """

    warnings: List[str] = []

    if not trace:
        warnings.append("No tools were used; the answer may not be based on real data.")

    for record in trace:
        if isinstance(record.outcome, ToolFailure):
            warnings.append(f"Tool {record.tool} failed: {record.outcome.reason}")

    text = (final_text or "").lower()
    if not any(marker.lower() in text for marker in SOURCE_MARKERS):
        warnings.append("The answer does not clearly cite its data sources.")

    return ValidationReport(valid=not warnings, warnings=warnings)
