"""
Minimal MCP-style tool server: exposes the four KOL data tools through a
standardized interface so external agents can call them without the chat loop.
Calls go through the same registry path (sanitize → validate → execute) as the agent.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from kol_agent.api.routes import get_agent_service
from kol_agent.schemas.mcp import ToolCallBody, ToolCallResponse
from kol_agent.services.agent_service import AgentService

logger = logging.getLogger(__name__)

mcp_router = APIRouter(tags=["mcp"])


@mcp_router.get(
    "/tools",
    summary="MCP tool discovery",
    description="List tool names, descriptions and input schemas.",
)
def mcp_list_tools(service: AgentService = Depends(get_agent_service)) -> dict[str, list[dict[str, Any]]]:
    registry = service.registry
    tools = []
    for name in registry.names:
        spec = registry.get(name)
        tools.append({
            "name": spec.name,
            "description": spec.description,
            "input_schema": spec.parameters_schema(),
        })
    return {"tools": tools}


@mcp_router.post(
    "/tools/{tool_name}",
    response_model=ToolCallResponse,
    summary="MCP tool call",
    description="Run one tool for userId. Tool failures are returned as data (ok=false), not HTTP errors.",
)
async def mcp_call_tool(
    tool_name: str,
    body: ToolCallBody,
    service: AgentService = Depends(get_agent_service),
) -> ToolCallResponse:
    logger.info("MCP tool called: %s", tool_name)
    if service.registry.get(tool_name) is None:
        raise HTTPException(status_code=404, detail=f"Unknown tool: {tool_name}")
    result = await service.registry.invoke(str(body.userId), tool_name, body.arguments)
    if result.ok:
        return ToolCallResponse(tool=tool_name, ok=True, result=result.payload)
    return ToolCallResponse(tool=tool_name, ok=False, error=result.message)
