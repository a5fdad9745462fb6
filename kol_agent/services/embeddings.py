"""
Embedding client: turns query text into vectors comparable with stored post embeddings.

Responsibility: Call the configured provider (local Ollama or Hugging Face Inference API),
normalize vectors for cosine similarity, and check the configured dimension at startup.
"""

import logging

import httpx

from kol_agent.core.config import (
    EMBED_API_TIMEOUT,
    EMBEDDING_DIM,
    EMBEDDING_MODEL,
    EMBEDDING_PROVIDER,
    HF_API_KEY,
    OLLAMA_BASE_URL,
)
from kol_agent.core.errors import ConfigurationError, ServiceUnavailableError

logger = logging.getLogger(__name__)

HF_API_URL_ROUTER = "https://router.huggingface.co/hf-inference/models/{model}/pipeline/feature-extraction"
SUPPORTED_PROVIDERS = ("ollama", "hf")


def _normalize(vec: list[float]) -> list[float]:
    """Unit-length copy of vec (zero vectors are returned unchanged)."""
    norm = sum(x * x for x in vec) ** 0.5
    if norm == 0:
        norm = 1.0
    return [x / norm for x in vec]


class EmbeddingClient:
    """Async embedding client for one provider/model pair."""

    def __init__(
        self,
        provider: str = EMBEDDING_PROVIDER,
        model: str = EMBEDDING_MODEL,
        dimension: int = EMBEDDING_DIM,
        base_url: str = OLLAMA_BASE_URL,
        api_key: str = HF_API_KEY,
        timeout: float = EMBED_API_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if provider not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(
                f"Unknown EMBEDDING_PROVIDER {provider!r}; expected one of {SUPPORTED_PROVIDERS}"
            )
        self.provider = provider
        self.model = model
        self.dimension = dimension
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _embed_ollama(self, texts: list[str]) -> list[list[float]]:
        url = f"{self.base_url}/api/embed"
        async with self._client() as client:
            response = await client.post(url, json={"model": self.model, "input": texts})
        if response.status_code != 200:
            raise ServiceUnavailableError(
                f"Ollama embedding error {response.status_code}: {response.text[:200]}"
            )
        data = response.json()
        return data.get("embeddings") or []

    async def _embed_hf(self, texts: list[str]) -> list[list[float]]:
        if not self.api_key:
            raise ConfigurationError("HF_API_KEY must be set when EMBEDDING_PROVIDER=hf")
        url = HF_API_URL_ROUTER.format(model=self.model)
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {"inputs": texts, "options": {"wait_for_model": True}}
        async with self._client() as client:
            response = await client.post(url, json=payload, headers=headers)
        if response.status_code == 503:
            raise ServiceUnavailableError(f"HF model is loading. Retry later. {response.text[:200]}")
        if response.status_code == 401:
            raise ConfigurationError("Invalid HF API key. Check HF_API_KEY")
        if response.status_code != 200:
            raise ServiceUnavailableError(f"HF API error {response.status_code}: {response.text[:200]}")
        result = response.json()
        if isinstance(result, list) and result and isinstance(result[0], list):
            return result
        return [item if isinstance(item, list) else [item] for item in (result if isinstance(result, list) else [result])]

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """
        Embed a batch of texts. Returns one normalized vector per input text.

        Raises ServiceUnavailableError when the provider is unreachable or answers with an error.
        """
        if not texts:
            return []
        logger.info("[embeddings] IN  provider=%s model=%s texts=%d", self.provider, self.model, len(texts))
        try:
            if self.provider == "ollama":
                raw = await self._embed_ollama(texts)
            else:
                raw = await self._embed_hf(texts)
        except httpx.HTTPError as e:
            raise ServiceUnavailableError(f"Embedding provider unreachable: {e}") from e
        if len(raw) != len(texts):
            raise ServiceUnavailableError(
                f"Embedding provider returned {len(raw)} vectors for {len(texts)} texts"
            )
        vectors = [_normalize([float(x) for x in vec]) for vec in raw]
        logger.info("[embeddings] OUT vectors=%d dim=%d", len(vectors), len(vectors[0]) if vectors else 0)
        return vectors

    async def embed_query(self, text: str) -> list[float]:
        vectors = await self.embed_texts([text])
        return vectors[0]

    async def verify_dimension(self) -> int:
        """
        Embed a probe string and compare its length with the configured vector column size.

        Stored embeddings and query embeddings must come from models with the same
        dimension; a mismatch is a startup error, not a per-request one.
        """
        probe = await self.embed_query("dimension probe")
        if len(probe) != self.dimension:
            raise ConfigurationError(
                f"Embedding model {self.model!r} returns {len(probe)}-dim vectors "
                f"but EMBEDDING_DIM is {self.dimension}"
            )
        logger.info("[embeddings] dimension check ok dim=%d", self.dimension)
        return len(probe)
