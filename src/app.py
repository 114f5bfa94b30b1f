"""
src/app.py

Local demo UI. Everything real happens in orchestrator.service; this file only
wires settings, builds the orchestrator once, and shows the result.
"""


import json
import logging
from typing import Any, Dict, Optional, Tuple

import gradio as gr

from config import Settings, load_settings
from orchestrator.llm_openai import build_gateway
from orchestrator.registry import build_registry
from orchestrator.router import Orchestrator
from orchestrator.service import handle_analyze, health_check


APP_TITLE = "Geo-Assistant (Local Demo)"
APP_DESC = (
    "Ask about a place, e.g. 'Plaza Mayor, Madrid', or give coordinates. "
    "The assistant geocodes it, scans nearby infrastructure and assesses flood risk."
)


def build_orchestrator(settings: Settings) -> Orchestrator:
    """Construct the gateway and tools once. Raises ConfigurationError without credentials."""

    return Orchestrator(build_gateway(settings), build_registry(settings), max_workers=settings.tool_workers)


def handle_command(query: str, latitude: Optional[float], longitude: Optional[float], *,
                   orchestrator: Orchestrator, settings: Settings) -> Tuple[str, str]:
    """
    Build the request body from the form and run one analysis.
    Returns (markdown report, JSON of the full response).
    """

    body: Dict[str, Any] = {}
    if query and query.strip():
        body["query"] = query
    if latitude is not None:
        body["latitude"] = latitude
    if longitude is not None:
        body["longitude"] = longitude

    status, payload = handle_analyze(body, orchestrator, settings.max_iterations)
    report = payload.get("ai_response") or f"**Error {status}:** {payload.get('error', 'unknown error')}"

    return report, json.dumps(payload, indent=2, ensure_ascii=False)


def app(settings: Settings, orchestrator: Orchestrator):
    with gr.Blocks(title=APP_TITLE) as demo:
        gr.Markdown(f"# {APP_TITLE}")
        gr.Markdown(APP_DESC)

        with gr.Tab("Analyze"):
            query = gr.Textbox(label="Place or address", placeholder="e.g., Plaza Mayor, Madrid", lines=1)
            with gr.Row():
                lat = gr.Number(label="Latitude", value=None)
                lon = gr.Number(label="Longitude", value=None)
            run = gr.Button("Analyze", variant="primary")
            report = gr.Markdown()
            raw = gr.Code(label="Response (JSON)", language="json")

        with gr.Tab("Health"):
            check = gr.Button("Check services")
            health = gr.Code(label="Upstream status", language="json")

        run.click(
            fn=lambda q, la, lo: handle_command(q, la, lo, orchestrator=orchestrator, settings=settings),
            inputs=[query, lat, lon],
            outputs=[report, raw],
        )
        check.click(
            fn=lambda: json.dumps(health_check(settings), indent=2),
            inputs=[],
            outputs=[health],
        )

    return demo


if __name__ == "__main__":

    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app(settings, build_orchestrator(settings)).launch()

# EOF
