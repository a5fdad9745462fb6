"""Schemas for the MCP-style tool endpoints."""

import uuid
from typing import Any

from pydantic import BaseModel, Field


class ToolCallBody(BaseModel):
    """Request body for POST /mcp/tools/{name}."""

    userId: uuid.UUID = Field(..., description="Tenant the call is scoped to.")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Tool arguments as the model would send them.")


class ToolCallResponse(BaseModel):
    tool: str
    ok: bool
    result: Any = Field(None, description="Executor payload when ok.")
    error: str | None = Field(None, description="Error description when not ok.")
