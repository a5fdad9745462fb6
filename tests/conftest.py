"""
Shared fixtures: a seeded SQLite tenant store (file-backed, one per test) and a
deterministic embedder, so executor and registry tests need no PostgreSQL or
embedding service.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

import pytest
import pytest_asyncio

from kol_agent.core.config import EMBEDDING_DIM
from kol_agent.core.database import create_engine, create_session_factory
from kol_agent.models.tables import Base, Kol, Post, Tenant
from kol_agent.services.executor import QueryExecutor

TENANT_A = uuid.UUID("11111111-1111-4111-8111-111111111111")
TENANT_B = uuid.UUID("22222222-2222-4222-8222-222222222222")


def vec(*head: float) -> list[float]:
    """Embedding-sized vector with the given leading components and zeros after."""
    return list(head) + [0.0] * (EMBEDDING_DIM - len(head))


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@dataclass
class Seed:
    alice: uuid.UUID
    bob: uuid.UUID
    cara: uuid.UUID
    dan: uuid.UUID
    p1: uuid.UUID
    p2: uuid.UUID
    p3: uuid.UUID
    p4: uuid.UUID
    p5: uuid.UUID


class FakeEmbedder:
    """Always embeds to the first axis; records every text it was asked to embed."""

    def __init__(self, vector: list[float] | None = None, error: Exception | None = None) -> None:
        self.vector = vector or vec(1.0)
        self.error = error
        self.calls: list[str] = []

    async def embed_query(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.vector


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'kol.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def seed(session_factory) -> Seed:
    """
    Tenant A: Alice (fashion, 150k, 2 posts), Bob (tech, 250k, 2 posts), Cara (fashion, 40k, no posts).
    Tenant B: Dan (fashion, 500k, 1 post embedded identically to the query vector).
    """
    s = Seed(*(uuid.uuid4() for _ in range(9)))
    async with session_factory() as session:
        session.add_all([
            Tenant(id=TENANT_A, email="a@example.com"),
            Tenant(id=TENANT_B, email="b@example.com"),
        ])
        await session.flush()
        session.add_all([
            Kol(id=s.alice, tenant_id=TENANT_A, name="Alice", username="alice_style",
                social_media_type="instagram", niche="fashion", followers=150_000),
            Kol(id=s.bob, tenant_id=TENANT_A, name="Bob", username="bob_tech",
                social_media_type="threads", niche="tech", followers=250_000),
            Kol(id=s.cara, tenant_id=TENANT_A, name="Cara", username="cara_looks",
                social_media_type="instagram", niche="fashion", followers=40_000),
            Kol(id=s.dan, tenant_id=TENANT_B, name="Dan", username="dan_b",
                social_media_type="instagram", niche="fashion", followers=500_000),
        ])
        await session.flush()
        session.add_all([
            Post(id=s.p1, kol_id=s.alice, platform="instagram", caption="Summer collection lookbook",
                 hashtags=["summer", "fashion"], likes=1000, comments=100,
                 created_at=utc(2024, 1, 15, 10, 0, 0), embedding=vec(1.0)),
            Post(id=s.p2, kol_id=s.alice, platform="reels", caption="Haul video: sustainable fashion",
                 hashtags=["haul"], transcript="today I try on ...", likes=3000, comments=300,
                 created_at=utc(2024, 2, 1, 0, 0, 0), embedding=vec(0.8, 0.6)),
            Post(id=s.p3, kol_id=s.bob, platform="threads", caption="New laptop review",
                 hashtags=["tech"], likes=500, comments=50,
                 created_at=utc(2024, 1, 20, 12, 0, 0), embedding=vec(0.0, 1.0)),
            Post(id=s.p4, kol_id=s.bob, platform="instagram", caption="Desk setup tour",
                 hashtags=[], likes=2000, comments=20,
                 created_at=utc(2024, 1, 31, 23, 59, 59), embedding=None),
            Post(id=s.p5, kol_id=s.dan, platform="instagram", caption="Other tenant summer post",
                 hashtags=["summer"], likes=9999, comments=999,
                 created_at=utc(2024, 1, 10, 9, 0, 0), embedding=vec(1.0)),
        ])
        await session.commit()
    return s


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def executor(session_factory, embedder) -> QueryExecutor:
    return QueryExecutor(session_factory, embedder)
