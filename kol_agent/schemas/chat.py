"""Schemas for the chat endpoint."""

import uuid
from typing import Any

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    """Request body for POST /chat. userId is the tenant every tool call is scoped to."""

    query: str = Field(..., min_length=1, description="Natural language question about the user's KOL data.")
    userId: uuid.UUID = Field(..., description="User (tenant) ID for multi-tenant isolation.")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "query": "Show me KOLs in the fashion niche with over 100k followers",
                    "userId": "123e4567-e89b-12d3-a456-426614174000",
                }
            ]
        }
    }


class ChatResponse(BaseModel):
    """Response for POST /chat."""

    explanation: str = Field(..., description="Natural language answer from the agent.")
    insights: list[str] = Field(default_factory=list, description="Key facts extracted from the tool results.")
    data: Any = Field(None, description="Successful tool payloads in call order, or null when no tool succeeded.")
