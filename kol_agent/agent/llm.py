"""
Agent LLM: OpenAI-compatible chat completions with tool calling.

Defaults to OpenRouter; any endpoint speaking the OpenAI chat-completions
protocol works by changing LLM_BASE_URL.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from openai import APIError, AsyncOpenAI

from kol_agent.core.config import (
    AGENT_MAX_TOKENS,
    LLM_API_KEY,
    LLM_API_TIMEOUT,
    LLM_BASE_URL,
    LLM_TEMPERATURE,
    TOOL_CALLING_MODEL,
)
from kol_agent.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class ToolCallRequest:
    id: str
    name: str
    arguments: dict[str, Any]
    raw_arguments: str = "{}"


@dataclass
class ModelReply:
    content: str | None
    tool_calls: list[ToolCallRequest] = field(default_factory=list)

    def as_message(self) -> dict[str, Any]:
        """Assistant message in OpenAI format, suitable for appending to the conversation."""
        msg: dict[str, Any] = {"role": "assistant", "content": self.content or ""}
        if self.tool_calls:
            msg["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {"name": tc.name, "arguments": tc.raw_arguments},
                }
                for tc in self.tool_calls
            ]
        return msg


def _parse_arguments(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    try:
        args = json.loads(raw) if raw else {}
    except json.JSONDecodeError:
        logger.warning("[llm] tool call arguments are not valid JSON: %r", str(raw)[:200])
        return {}
    return args if isinstance(args, dict) else {}


class ChatModel:
    """Thin async wrapper over chat.completions.create(tools=...)."""

    def __init__(
        self,
        api_key: str = LLM_API_KEY,
        base_url: str = LLM_BASE_URL,
        model: str = TOOL_CALLING_MODEL,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = AGENT_MAX_TOKENS,
        timeout: float = LLM_API_TIMEOUT,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def complete(self, messages: list[dict[str, Any]], tools: list[dict[str, Any]]) -> ModelReply:
        """
        One chat round trip. Returns the reply text and any tool calls requested.
        If tool_calls is non-empty the caller executes them and calls again with the results;
        text with no tool_calls is the final answer.
        """
        logger.info("[llm:complete] IN  model=%s messages=%d tools=%d", self.model, len(messages), len(tools))
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                tools=tools,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except APIError as e:
            logger.warning("[llm:complete] request failed: %s", e)
            raise ServiceUnavailableError(f"Language model request failed: {e}") from e

        msg = response.choices[0].message if response.choices else None
        if msg is None:
            return ModelReply(content=None)
        content = (getattr(msg, "content", None) or "").strip() or None
        tool_calls = []
        for tc in getattr(msg, "tool_calls", None) or []:
            fn = getattr(tc, "function", None)
            if not fn:
                continue
            raw = getattr(fn, "arguments", None) or "{}"
            tool_calls.append(
                ToolCallRequest(
                    id=getattr(tc, "id", None) or "",
                    name=getattr(fn, "name", None) or "",
                    arguments=_parse_arguments(raw),
                    raw_arguments=raw if isinstance(raw, str) else json.dumps(raw),
                )
            )
        if tool_calls:
            logger.info("[llm:complete] OUT tool_calls=%s", [t.name for t in tool_calls])
        if content:
            logger.info("[llm:complete] OUT content_len=%d", len(content))
        return ModelReply(content=content, tool_calls=tool_calls)
