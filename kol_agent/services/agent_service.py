"""
Agent service: explicit assembly of the query pipeline and the per-request entry point.

Responsibility: Build executor, registry, LLM client and orchestrator in dependency
order (no container, no globals), answer one question for one tenant, and shape
the chat response. Called by the API; no HTTP here.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from kol_agent.agent.graph import AgentOrchestrator
from kol_agent.agent.insights import extract_insights
from kol_agent.agent.llm import ChatModel
from kol_agent.agent.tools import ToolRegistry, build_tool_specs
from kol_agent.core import config
from kol_agent.core.database import create_engine, create_session_factory
from kol_agent.core.errors import ConfigurationError
from kol_agent.schemas.chat import ChatResponse
from kol_agent.services.embeddings import EmbeddingClient
from kol_agent.services.executor import QueryExecutor

logger = logging.getLogger(__name__)


@dataclass
class AgentService:
    orchestrator: AgentOrchestrator
    registry: ToolRegistry
    embedder: EmbeddingClient
    engine: AsyncEngine | None = None

    async def answer(self, tenant_id: str, query: str) -> ChatResponse:
        """Run the agent for one tenant and return explanation, insights and raw tool data."""
        result = await self.orchestrator.run(tenant_id, query)
        payloads = result.tool_payloads
        logger.info(
            "[agent_service:answer] tenant=%s status=%s iterations=%d tools_used=%s",
            tenant_id, result.status, result.iterations, result.tools_used,
        )
        return ChatResponse(
            explanation=result.answer,
            insights=extract_insights(payloads),
            data=payloads or None,
        )

    async def startup_checks(self) -> None:
        if config.EMBEDDING_DIM_CHECK:
            await self.embedder.verify_dimension()

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()


def build_agent_service() -> AgentService:
    """
    Construct the whole pipeline from configuration.

    Raises ConfigurationError when required settings are missing; callers treat
    that as fatal at startup.
    """
    missing = config.check_required_config()
    if missing:
        raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")

    engine = create_engine(config.DATABASE_URL, echo=config.DB_ECHO)
    session_factory = create_session_factory(engine)
    embedder = EmbeddingClient()
    executor = QueryExecutor(session_factory, embedder)
    registry = ToolRegistry(build_tool_specs(executor), timeout=config.TOOL_CALL_TIMEOUT)
    llm = ChatModel()
    orchestrator = AgentOrchestrator(
        llm,
        registry,
        max_iterations=config.MAX_AGENT_ITERATIONS,
        request_timeout=config.AGENT_REQUEST_TIMEOUT,
    )
    logger.info(
        "[agent_service] built model=%s embeddings=%s/%s tools=%s",
        config.TOOL_CALLING_MODEL, config.EMBEDDING_PROVIDER, config.EMBEDDING_MODEL, registry.names,
    )
    return AgentService(orchestrator=orchestrator, registry=registry, embedder=embedder, engine=engine)
