"""
src/orchestrator/conversation.py

Append-only conversation for one run.

Ordering rules enforced on append:
- the first message is the system instruction and stays first
- a tool result answers a pending request of the latest assistant message, once
- no new assistant or user turn while tool requests are unanswered
"""


from typing import Dict, List, Tuple

from orchestrator.errors import ConversationError
from orchestrator.models import AssistantMessage, Message, SystemMessage, ToolResultMessage, UserMessage


class Conversation:

    def __init__(self, system_prompt: str):

        self._messages: List[Message] = [SystemMessage(content=system_prompt)]
        self._pending: Dict[str, str] = {}  # correlation id -> tool name

    @property
    def messages(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def pending(self) -> Tuple[str, ...]:
        """Correlation ids still waiting for a tool result."""
        return tuple(self._pending)

    def __len__(self) -> int:
        return len(self._messages)

    def _require_settled(self, what: str) -> None:
        if self._pending:
            raise ConversationError(f"Cannot add {what}: unanswered tool requests {sorted(self._pending)}")

    def add_user(self, content: str) -> UserMessage:

        self._require_settled("a user message")
        msg = UserMessage(content=content)
        self._messages.append(msg)

        return msg

    def add_assistant(self, msg: AssistantMessage) -> AssistantMessage:

        self._require_settled("an assistant message")
        ids = [req.id for req in msg.tool_requests]
        if len(set(ids)) != len(ids):
            raise ConversationError(f"Duplicate tool request ids in one message: {ids}")

        self._messages.append(msg)
        self._pending = {req.id: req.name for req in msg.tool_requests}

        return msg

    def add_tool_result(self, msg: ToolResultMessage) -> ToolResultMessage:

        if msg.tool_call_id not in self._pending:
            raise ConversationError(f"No pending tool request with id {msg.tool_call_id!r}")

        del self._pending[msg.tool_call_id]
        self._messages.append(msg)

        return msg
