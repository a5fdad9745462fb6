"""
LangGraph agent: call_model → (execute_tools → call_model)* → finalize.

The model decides which of the four data tools to call; tool calls requested in
one turn run concurrently and all of their results are appended before the model
is called again. The loop is bounded by max_iterations model round trips and by a
wall-clock budget per request.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Literal, TypedDict

from langgraph.graph import END, StateGraph

from kol_agent.agent.llm import ChatModel, ToolCallRequest
from kol_agent.agent.tools import ToolRegistry
from kol_agent.core.config import AGENT_REQUEST_TIMEOUT, MAX_AGENT_ITERATIONS

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = (
    "I apologize, but I was unable to generate a response. Please try rephrasing your query."
)

SYSTEM_PROMPT = """You are an AI marketing analyst assistant. You help users analyze their KOLs (Key Opinion Leaders) and the performance of their content.

Rules:
1. Always use the available tools first, before asking the user for more information.
2. The tools read the user's own data: KOL profiles (followers, niche, platform), posts (captions, hashtags, likes, comments, dates, platforms) and aggregated performance metrics.
3. For each question: decide which tools can answer it, call them, analyze the results, then answer with insights grounded in the data.
4. Only ask the user for more information if the tools return empty results.
5. You may call several tools in one turn, or call tools again after reading results, until you have enough data.
6. If a tool returns an error, adjust the arguments and retry, or explain the problem in your answer.

Tools:
- recommend_kols: find KOLs by follower range and niches. Use for questions about influencers, creators or KOLs.
- analyze_posts: list posts filtered by kol_id, date_range (ISO datetimes) and platform. Use for questions about specific posts or what was published in a period. Only pass kol_id if you have a real UUID from an earlier result.
- aggregate_metrics: likes, comments and averages with scope kol, post or overall. Use for engagement and performance questions. Only pass kol_ids you got from earlier results.
- semantic_search: find posts by meaning or topic from a natural-language query_text.

Example: "Which KOLs performed best last week?"
1. aggregate_metrics with scope=kol and a date_range covering last week.
2. analyze_posts with the same date_range to look at the top posts.
3. Summarize which KOLs and posts performed best and why.

Stop calling tools once you have enough information, and answer in the user's language."""


class AgentState(TypedDict):
    tenant_id: str
    messages: list[dict[str, Any]]
    iteration: int
    pending_calls: list[ToolCallRequest]
    answer: str
    status: str
    tools_used: list[str]
    tool_payloads: list[dict]


@dataclass
class AgentRunResult:
    answer: str
    status: str  # final | fallback | inconclusive | timeout
    iterations: int = 0
    tools_used: list[str] = field(default_factory=list)
    tool_payloads: list[dict] = field(default_factory=list)


def fallback_answer(messages: list[dict[str, Any]]) -> str:
    """Most recent assistant message with text content, else the apology string."""
    for msg in reversed(messages):
        if msg.get("role") != "assistant":
            continue
        content = msg.get("content")
        if isinstance(content, str) and content.strip():
            return content.strip()
    return APOLOGY_MESSAGE


class AgentOrchestrator:
    """Bounded tool-calling loop over one ChatModel and one ToolRegistry."""

    def __init__(
        self,
        llm: ChatModel,
        registry: ToolRegistry,
        max_iterations: int = MAX_AGENT_ITERATIONS,
        request_timeout: float = AGENT_REQUEST_TIMEOUT,
        system_prompt: str = SYSTEM_PROMPT,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self._llm = llm
        self._registry = registry
        self._tools = registry.openai_tools()
        self.max_iterations = max_iterations
        self.request_timeout = request_timeout
        self.system_prompt = system_prompt
        self._graph = self._build_graph()

    async def _call_model(self, state: AgentState) -> dict:
        iteration = state["iteration"] + 1
        logger.info("[graph:call_model] IN  iteration=%d messages=%d", iteration, len(state["messages"]))
        reply = await self._llm.complete(state["messages"], self._tools)
        update: dict[str, Any] = {
            "messages": [*state["messages"], reply.as_message()],
            "iteration": iteration,
            "pending_calls": reply.tool_calls,
        }
        if not reply.tool_calls and reply.content:
            update["answer"] = reply.content
        logger.info(
            "[graph:call_model] OUT iteration=%d tool_calls=%s has_text=%s",
            iteration, [tc.name for tc in reply.tool_calls], bool(reply.content),
        )
        return update

    async def _execute_tools(self, state: AgentState) -> dict:
        calls = state["pending_calls"]
        tenant_id = state["tenant_id"]
        logger.info("[graph:execute_tools] IN  calls=%s", [c.name for c in calls])
        results = await asyncio.gather(
            *(self._registry.invoke(tenant_id, call.name, call.arguments) for call in calls)
        )
        messages = list(state["messages"])
        for call, result in zip(calls, results):
            messages.append({"role": "tool", "tool_call_id": call.id, "content": result.serialize()})
        logger.info(
            "[graph:execute_tools] OUT results=%s",
            [f"{r.name}:{'ok' if r.ok else 'error'}" for r in results],
        )
        return {
            "messages": messages,
            "pending_calls": [],
            "tools_used": [*state["tools_used"], *(c.name for c in calls)],
            "tool_payloads": [*state["tool_payloads"], *(r.payload for r in results if r.ok)],
        }

    def _finalize(self, state: AgentState) -> dict:
        if state.get("answer"):
            status = "final"
            answer = state["answer"]
        else:
            status = "inconclusive" if state.get("pending_calls") else "fallback"
            answer = fallback_answer(state["messages"])
        logger.info("[graph:finalize] status=%s iterations=%d answer_len=%d", status, state["iteration"], len(answer))
        return {"answer": answer, "status": status}

    def _route_after_model(self, state: AgentState) -> Literal["execute_tools", "finalize"]:
        if state.get("pending_calls") and state["iteration"] < self.max_iterations:
            return "execute_tools"
        if state.get("pending_calls"):
            logger.warning("[graph:route] max_iterations=%d reached with pending tool calls", self.max_iterations)
        return "finalize"

    def _build_graph(self):
        graph = StateGraph(AgentState)
        graph.add_node("call_model", self._call_model)
        graph.add_node("execute_tools", self._execute_tools)
        graph.add_node("finalize", self._finalize)

        graph.set_entry_point("call_model")
        graph.add_conditional_edges("call_model", self._route_after_model)
        graph.add_edge("execute_tools", "call_model")
        graph.add_edge("finalize", END)
        return graph.compile()

    def initial_state(self, tenant_id: str, query: str) -> AgentState:
        return {
            "tenant_id": tenant_id,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": query},
            ],
            "iteration": 0,
            "pending_calls": [],
            "answer": "",
            "status": "",
            "tools_used": [],
            "tool_payloads": [],
        }

    async def run(self, tenant_id: str, query: str) -> AgentRunResult:
        """
        Run the loop for one request and return the final answer.

        Never returns an empty answer: exhaustion and timeouts fall back to the last
        assistant text, then to APOLOGY_MESSAGE. Model endpoint failures propagate.
        """
        if not query or not query.strip():
            raise ValueError("query is required")
        logger.info("[graph:run] START tenant=%s query=%r", tenant_id, query)
        last: AgentState = self.initial_state(tenant_id, query.strip())
        # call_model + execute_tools per round trip, plus finalize
        config = {"recursion_limit": 2 * self.max_iterations + 4}
        try:
            async with asyncio.timeout(self.request_timeout):
                async for state in self._graph.astream(last, config=config, stream_mode="values"):
                    last = state
        except TimeoutError:
            logger.warning("[graph:run] request budget %.1fs exceeded at iteration=%d", self.request_timeout, last["iteration"])
            return AgentRunResult(
                answer=fallback_answer(last["messages"]),
                status="timeout",
                iterations=last["iteration"],
                tools_used=list(last["tools_used"]),
                tool_payloads=list(last["tool_payloads"]),
            )
        logger.info("[graph:run] END status=%s iterations=%d tools_used=%s", last["status"], last["iteration"], last["tools_used"])
        return AgentRunResult(
            answer=last["answer"] or APOLOGY_MESSAGE,
            status=last["status"] or "fallback",
            iterations=last["iteration"],
            tools_used=list(last["tools_used"]),
            tool_payloads=list(last["tool_payloads"]),
        )
