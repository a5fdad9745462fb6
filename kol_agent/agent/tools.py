"""
Agent tools: definitions and execution for tool-calling mode.

Tools: recommend_kols, analyze_posts, aggregate_metrics, semantic_search.
Every invocation is sanitized, validated against its contract, executed for an
explicit tenant id, and returned as ToolOk or ToolErr. Failures are data the
model can read, never exceptions.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ValidationError

from kol_agent.agent.sanitizer import sanitize_tool_args
from kol_agent.core.config import TOOL_CALL_TIMEOUT
from kol_agent.schemas.tools import (
    AggregateMetricsInput,
    AnalyzePostsInput,
    RecommendKolsInput,
    SemanticSearchInput,
)
from kol_agent.services.executor import QueryExecutor

logger = logging.getLogger(__name__)

Operation = Callable[[Any, Any], Awaitable[dict]]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: type[BaseModel]
    operation: Operation

    def parameters_schema(self) -> dict:
        return inline_schema_refs(self.input_model.model_json_schema())

    def openai_tool(self) -> dict:
        """OpenAI function-calling definition."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema(),
            },
        }


@dataclass(frozen=True)
class ToolOk:
    name: str
    payload: dict

    ok = True

    def serialize(self) -> str:
        return json.dumps(self.payload, default=str)


@dataclass(frozen=True)
class ToolErr:
    name: str
    message: str

    ok = False

    def serialize(self) -> str:
        return json.dumps({"error": self.message, "type": self.name})


ToolResult = ToolOk | ToolErr


def inline_schema_refs(schema: dict) -> dict:
    """Resolve local "$ref": "#/$defs/..." pointers so the schema is self-contained."""
    defs = schema.get("$defs", {})

    def resolve(node: Any) -> Any:
        if isinstance(node, dict):
            ref = node.get("$ref")
            if isinstance(ref, str) and ref.startswith("#/$defs/"):
                target = dict(defs[ref.split("/")[-1]])
                extra = {k: v for k, v in node.items() if k != "$ref"}
                target.update(extra)
                return resolve(target)
            return {k: resolve(v) for k, v in node.items() if k != "$defs"}
        if isinstance(node, list):
            return [resolve(item) for item in node]
        return node

    return resolve(schema)


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "Invalid arguments: " + "; ".join(parts)


def build_tool_specs(executor: QueryExecutor) -> list[ToolSpec]:
    """The four tool specs, bound to the executor's operations."""
    return [
        ToolSpec(
            name="recommend_kols",
            description=(
                "Find and recommend KOLs (Key Opinion Leaders) by follower count range and niche. "
                "Use this when the user asks about influencers, KOLs or creators, or wants to find people "
                "by niche/followers. Results are ordered by followers (highest first) and include each KOL's "
                "id and post count. Examples: \"find KOLs in fashion niche\", \"who are the top influencers\", "
                "\"recommend creators with 10k-100k followers\"."
            ),
            input_model=RecommendKolsInput,
            operation=executor.recommend_kols,
        ),
        ToolSpec(
            name="analyze_posts",
            description=(
                "Get posts (newest first) with optional filters: kol_id (UUID), date_range (ISO datetimes, "
                "inclusive) and platform (instagram, threads, reels). Use this when the user asks about "
                "specific posts, content, or what was posted in a period. Only include kol_id if you have a "
                "real UUID from an earlier tool result; otherwise omit it."
            ),
            input_model=AnalyzePostsInput,
            operation=executor.analyze_posts,
        ),
        ToolSpec(
            name="aggregate_metrics",
            description=(
                "Get engagement statistics: total posts, likes and comments plus averages. scope=kol gives "
                "one row per KOL; scope=post or scope=overall gives a single aggregate. Filters: kol_ids "
                "(UUIDs from earlier results only), date_range, platform. Use when the user asks about "
                "metrics, engagement or performance."
            ),
            input_model=AggregateMetricsInput,
            operation=executor.aggregate_metrics,
        ),
        ToolSpec(
            name="semantic_search",
            description=(
                "Semantic search over post captions and transcripts. Use when the user wants content by "
                "meaning or topic. Examples: \"posts about sustainable fashion\", \"content about summer "
                "collection\", \"haul videos\". Lower similarity_threshold (default 0.7) to widen the search."
            ),
            input_model=SemanticSearchInput,
            operation=executor.semantic_search,
        ),
    ]


class ToolRegistry:
    """Name → ToolSpec lookup plus the single invocation path used by the agent and the MCP routes."""

    def __init__(self, specs: list[ToolSpec], timeout: float = TOOL_CALL_TIMEOUT) -> None:
        self._specs = {spec.name: spec for spec in specs}
        self.timeout = timeout

    @property
    def names(self) -> list[str]:
        return list(self._specs)

    def get(self, name: str) -> ToolSpec | None:
        return self._specs.get(name)

    def openai_tools(self) -> list[dict]:
        return [spec.openai_tool() for spec in self._specs.values()]

    async def invoke(self, tenant_id: Any, name: str, raw_args: Any) -> ToolResult:
        """
        Sanitize, validate and execute one tool call for tenant_id.

        Returns ToolOk with the executor payload, or ToolErr for an unknown tool, invalid
        arguments, a timeout, or an executor failure.
        """
        spec = self._specs.get(name)
        if spec is None:
            logger.warning("[tools] unknown tool name=%r", name)
            return ToolErr(name=name, message=f"Unknown tool: {name}")

        args = sanitize_tool_args(name, raw_args)
        logger.info("[tools] invoke name=%s arguments=%r", name, args)
        try:
            op_input = spec.input_model.model_validate(args)
        except ValidationError as e:
            logger.info("[tools] name=%s invalid arguments: %s", name, e.error_count())
            return ToolErr(name=name, message=_validation_message(e))

        try:
            payload = await asyncio.wait_for(spec.operation(tenant_id, op_input), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("[tools] name=%s timed out after %.1fs", name, self.timeout)
            return ToolErr(name=name, message=f"Tool timed out after {self.timeout:g} seconds")
        except Exception as e:
            logger.exception("[tools] name=%s failed", name)
            return ToolErr(name=name, message=str(e) or type(e).__name__)
        return ToolOk(name=name, payload=payload)
