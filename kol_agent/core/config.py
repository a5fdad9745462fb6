"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Keeps the rest of the app decoupled from how config is sourced.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


# Tenant store (PostgreSQL + pgvector in production, sqlite+aiosqlite locally)
DATABASE_URL: str = os.getenv("DATABASE_URL", "").strip()
DB_ECHO: bool = _env_bool("DB_ECHO", False)

# Tool-calling LLM (any OpenAI-compatible endpoint; OpenRouter by default)
LLM_API_KEY: str = (
    os.getenv("OPENROUTER_API_KEY", "").strip() or os.getenv("OPENAI_API_KEY", "").strip()
)
LLM_BASE_URL: str = (
    os.getenv("LLM_BASE_URL", "https://openrouter.ai/api/v1").strip()
    or "https://openrouter.ai/api/v1"
)
TOOL_CALLING_MODEL: str = (
    os.getenv("TOOL_CALLING_MODEL", "openai/gpt-4o-mini").strip() or "openai/gpt-4o-mini"
)
LLM_TEMPERATURE: float = _env_float("LLM_TEMPERATURE", 0.0)

# Embeddings: "ollama" (local) or "hf" (Hugging Face inference API)
EMBEDDING_PROVIDER: str = os.getenv("EMBEDDING_PROVIDER", "ollama").strip().lower() or "ollama"
EMBEDDING_MODEL: str = (
    os.getenv("EMBEDDING_MODEL", "mxbai-embed-large").strip() or "mxbai-embed-large"
)
OLLAMA_BASE_URL: str = (
    os.getenv("OLLAMA_BASE_URL", "http://localhost:11434").strip() or "http://localhost:11434"
)
HF_API_KEY: str = os.getenv("HF_API_KEY", "").strip()

# Vector column dimension (mxbai-embed-large = 1024, all-MiniLM-L6-v2 = 384)
EMBEDDING_DIM: int = _env_int("EMBEDDING_DIM", 1024)
EMBEDDING_DIM_CHECK: bool = _env_bool("EMBEDDING_DIM_CHECK", True)

# Tool contracts
DEFAULT_LIMIT: int = 10
MAX_LIMIT: int = 100
DEFAULT_SIMILARITY_THRESHOLD: float = 0.7

# Agent loop
MAX_AGENT_ITERATIONS: int = _env_int("MAX_AGENT_ITERATIONS", 8)
AGENT_MAX_TOKENS: int = _env_int("AGENT_MAX_TOKENS", 1024)

# Timeouts (seconds)
TOOL_CALL_TIMEOUT: float = _env_float("TOOL_CALL_TIMEOUT", 30.0)
AGENT_REQUEST_TIMEOUT: float = _env_float("AGENT_REQUEST_TIMEOUT", 120.0)
EMBED_API_TIMEOUT: float = _env_float("EMBED_API_TIMEOUT", 30.0)
LLM_API_TIMEOUT: float = _env_float("LLM_API_TIMEOUT", 60.0)


def check_required_config() -> list[str]:
    """Return the names of required settings that are missing (empty list when complete)."""
    missing: list[str] = []
    if not DATABASE_URL:
        missing.append("DATABASE_URL")
    if not LLM_API_KEY:
        missing.append("OPENROUTER_API_KEY")
    if EMBEDDING_PROVIDER == "hf" and not HF_API_KEY:
        missing.append("HF_API_KEY")
    return missing
