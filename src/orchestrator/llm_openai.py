"""
src/orchestrator/llm_openai.py

OpenAI client wrapper for function calling.
- build_gateway(): construct the client once at startup, failing fast without credentials
- ReasoningGateway.complete(): one stateless completion over the whole conversation
- extract_tool_calls(): normalize tool calls from a response choice
"""


import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import openai
from openai import OpenAI

from config import Settings
from orchestrator.errors import ReasoningGatewayUnavailable
from orchestrator.models import (
    AssistantMessage, Message, SystemMessage, ToolRequest, ToolResultMessage, UserMessage,
)


logger = logging.getLogger(__name__)


def to_openai_message(msg: Message) -> Dict[str, Any]:
    """Typed message -> Chat Completions dict."""

    if isinstance(msg, (SystemMessage, UserMessage)):
        return {"role": msg.role, "content": msg.content}

    if isinstance(msg, ToolResultMessage):
        return {"role": "tool", "tool_call_id": msg.tool_call_id, "content": msg.content}

    out: Dict[str, Any] = {"role": "assistant", "content": msg.content}
    if msg.tool_requests:
        out["tool_calls"] = [
            {
                "id": req.id,
                "type": "function",
                "function": {
                    "name": req.name,
                    "arguments": req.arguments if isinstance(req.arguments, str) else json.dumps(req.arguments),
                },
            }
            for req in msg.tool_requests
        ]

    return out


def extract_tool_calls(choice) -> List[ToolRequest]:
    """
    Normalize tool calls from the OpenAI response choice.
    Arguments stay raw; the registry parses them.
    """

    out = []
    tcs = getattr(choice.message, "tool_calls", None)

    if not tcs:
        return out

    for tc in tcs:
        if tc.type == "function" and tc.function:
            out.append(ToolRequest(id=tc.id, name=tc.function.name, arguments=tc.function.arguments or "{}"))

    return out


class ReasoningGateway:
    """Stateless: everything the model needs is passed in on every call."""

    def __init__(self, client: OpenAI, model: str, *, temperature: float = 0.2, timeout: float = 60.0):

        self.client = client
        self.model = model
        self.temperature = temperature
        self.timeout = timeout

    def complete(self, messages: Sequence[Message], tools: Optional[List[Dict[str, Any]]] = None) -> AssistantMessage:
        """
        One Chat Completions call. Tool choice is "auto" when tools are offered.

        Raises:
            ReasoningGatewayUnavailable: API error, timeout or an empty response.
        """

        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[to_openai_message(m) for m in messages],
                tools=tools or openai.NOT_GIVEN,
                tool_choice="auto" if tools else openai.NOT_GIVEN,
                temperature=self.temperature,
                timeout=self.timeout,
            )
        except openai.OpenAIError as e:
            logger.error("Reasoning call failed: %s", e)
            raise ReasoningGatewayUnavailable(f"Language model unavailable: {e}") from e

        if not resp.choices:
            raise ReasoningGatewayUnavailable("Language model returned no choices")

        choice = resp.choices[0]
        tool_requests = extract_tool_calls(choice)
        logger.debug("Model replied with %d tool request(s)", len(tool_requests))

        return AssistantMessage(content=choice.message.content, tool_requests=tool_requests)


def build_gateway(settings: Settings) -> ReasoningGateway:
    """Create the gateway once at process start. Raises ConfigurationError without an API key."""

    settings.validate()
    client = OpenAI(api_key=settings.openai_api_key)

    return ReasoningGateway(
        client,
        settings.openai_model,
        temperature=settings.temperature,
        timeout=settings.llm_timeout,
    )
