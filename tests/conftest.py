"""Shared fakes: a scripted HTTP session and a scripted reasoning gateway."""

from collections import defaultdict, deque
from typing import Any, Dict, List

import pytest
import requests

from orchestrator.models import AssistantMessage, ToolRequest


class FakeResponse:
    """Just enough of requests.Response for get_json/post_json."""

    def __init__(self, payload: Any = None, status: int = 200, bad_json: bool = False):
        self.payload = payload
        self.status_code = status
        self.bad_json = bad_json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        if self.bad_json:
            raise ValueError("not json")
        return self.payload


class FakeSession:
    """
    Scripted session. `script[url]` is a list consumed in order; each item is
    a FakeResponse or an exception instance to raise. Every call is recorded.
    """

    def __init__(self, script: Dict[str, List[Any]] = None):
        self.script = defaultdict(deque)
        for url, items in (script or {}).items():
            self.script[url].extend(items)
        self.calls: List[Dict[str, Any]] = []
        self.headers: Dict[str, str] = {}

    def _next(self, method: str, url: str, **kwargs) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.script[url]:
            raise requests.ConnectionError(f"nothing scripted for {url}")
        item = self.script[url].popleft()
        if isinstance(item, Exception):
            raise item
        return item

    def get(self, url, params=None, timeout=None):
        return self._next("GET", url, params=params, timeout=timeout)

    def post(self, url, data=None, timeout=None):
        return self._next("POST", url, data=data, timeout=timeout)


class ScriptedGateway:
    """Returns the scripted assistant replies in order; records what it was sent."""

    def __init__(self, replies: List[AssistantMessage]):
        self.replies = deque(replies)
        self.calls: List[Dict[str, Any]] = []

    def complete(self, messages, tools=None) -> AssistantMessage:
        self.calls.append({"messages": list(messages), "tools": tools})
        if not self.replies:
            raise AssertionError("gateway called more often than scripted")
        return self.replies.popleft()


def tool_reply(*calls) -> AssistantMessage:
    """Assistant message requesting tools: tool_reply(("id1", "name", {...}), ...)."""

    return AssistantMessage(
        content=None,
        tool_requests=[ToolRequest(id=cid, name=name, arguments=args) for cid, name, args in calls],
    )


def final_reply(text: str) -> AssistantMessage:
    return AssistantMessage(content=text)


@pytest.fixture
def fake_session():
    return FakeSession()
