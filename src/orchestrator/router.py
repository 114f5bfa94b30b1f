"""
src/orchestrator/router.py

Orchestrator: runs the bounded function-calling loop, executes tools, and returns a tidy result.

Each iteration is one reasoning call. Tool requests from the same reply are
independent, so they run on a small thread pool; their results are appended
in request order and the whole batch lands before the next reasoning call.
"""


import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence

from config import DEFAULT_MAX_ITERATIONS
from orchestrator import prompts
from orchestrator.conversation import Conversation
from orchestrator.errors import IterationLimitExceeded
from orchestrator.llm_openai import ReasoningGateway
from orchestrator.models import RunResult, ToolInvocationRecord, ToolRequest
from orchestrator.registry import ToolRegistry, to_result_message


logger = logging.getLogger(__name__)


class Orchestrator:

    def __init__(self, gateway: ReasoningGateway, registry: ToolRegistry, *,
                 system_prompt: str = prompts.SYSTEM_PROMPT, max_workers: int = 3):

        self.gateway = gateway
        self.registry = registry
        self.system_prompt = system_prompt
        self.max_workers = max(1, max_workers)

    def _execute_batch(self, requests: Sequence[ToolRequest]) -> List[ToolInvocationRecord]:
        """Dispatch every request; results come back in request order."""

        if self.max_workers == 1 or len(requests) == 1:
            return [self.registry.dispatch(req.name, req.arguments) for req in requests]

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(requests))) as pool:
            return list(pool.map(lambda req: self.registry.dispatch(req.name, req.arguments), requests))

    def run(self, prompt: str, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> RunResult:
        """
        Entry point: one complete run from user prompt to final report.

        Returns:
            RunResult with the final text, the tool trace and the 0-based index
            of the iteration that produced the answer.

        Raises:
            ValueError: max_iterations < 1.
            IterationLimitExceeded: no tool-free answer within max_iterations (carries the trace).
            ReasoningGatewayUnavailable: the model could not be reached.
        """

        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")

        conversation = Conversation(self.system_prompt)
        conversation.add_user(prompt.strip())

        catalog = self.registry.catalog()
        trace: List[ToolInvocationRecord] = []

        for round_idx in range(max_iterations):
            reply = self.gateway.complete(conversation.messages, tools=catalog)

            # If the model returned a normal message and no tool calls, we are done
            if not reply.tool_requests:
                logger.info("Final answer after %d iteration(s), %d tool call(s)", round_idx + 1, len(trace))
                return RunResult(final_text=reply.content or "", trace=trace, iterations_used=round_idx)

            logger.info(
                "Iteration %d: model requested %s",
                round_idx + 1, ", ".join(req.name for req in reply.tool_requests),
            )
            conversation.add_assistant(reply)

            records = self._execute_batch(reply.tool_requests)
            for req, record in zip(reply.tool_requests, records):
                trace.append(record)
                # Push tool result back to the model as a "tool" message
                conversation.add_tool_result(to_result_message(req.id, record))

        logger.warning("Iteration limit (%d) reached without a final answer", max_iterations)
        raise IterationLimitExceeded(max_iterations, trace)
