"""
API route aggregator: register endpoints; no logic, only delegate to the agent service.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from kol_agent.core.errors import ServiceUnavailableError
from kol_agent.schemas.chat import ChatRequest, ChatResponse
from kol_agent.services.agent_service import AgentService

logger = logging.getLogger(__name__)
router = APIRouter()


def get_agent_service(request: Request) -> AgentService:
    service = getattr(request.app.state, "agent_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Agent service is not initialized")
    return service


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "KOL insights agent running"}


@router.get("/health", tags=["system"])
def health():
    return {"ok": True}


# --- Chat ---

@router.post(
    "/chat",
    response_model=ChatResponse,
    tags=["chat"],
    summary="Process a natural language query",
    description=(
        "Takes a natural language query and returns an AI-generated answer. The LLM selects and runs "
        "the KOL data tools for the given userId. 422 on invalid input, 503 when the LLM is unavailable."
    ),
)
async def post_chat(body: ChatRequest, service: AgentService = Depends(get_agent_service)) -> ChatResponse:
    tenant_id = str(body.userId)
    logger.info("[api:post_chat] IN  query=%r user_id=%s", body.query, tenant_id)
    try:
        response = await service.answer(tenant_id, body.query)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ServiceUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.message) from e
    logger.info("[api:post_chat] OUT insights=%d explanation_len=%d", len(response.insights), len(response.explanation))
    return response
