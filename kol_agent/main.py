# Run from project root: uvicorn kol_agent.main:app --reload

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from kol_agent.api.routes import router
from kol_agent.mcp.server import mcp_router
from kol_agent.services.agent_service import build_agent_service

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ConfigurationError here aborts startup.
    service = build_agent_service()
    await service.startup_checks()
    app.state.agent_service = service
    logger.info("KOL insights agent ready")
    try:
        yield
    finally:
        await service.close()


app = FastAPI(title="KOL Insights Agent", lifespan=lifespan)
app.include_router(router)
app.include_router(mcp_router, prefix="/mcp")
