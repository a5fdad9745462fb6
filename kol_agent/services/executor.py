"""
Query executor: tenant-scoped reads behind the four agent tools.

Responsibility: Build and run the structured or vector-similarity query for one
validated tool input and shape the result payload. Every query is scoped by the
tenant id; nothing here is reachable without one. No HTTP or LLM code here.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import Float, and_, bindparam, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kol_agent.core.config import EMBEDDING_DIM
from kol_agent.core.errors import InvalidTenantError
from kol_agent.models.tables import Kol, Post
from kol_agent.schemas.tools import (
    AggregateMetricsInput,
    AnalyzePostsInput,
    DateRange,
    OperationInput,
    RecommendKolsInput,
    SemanticSearchInput,
)
from kol_agent.services.embeddings import EmbeddingClient

logger = logging.getLogger(__name__)


def parse_tenant_id(tenant_id: Any) -> uuid.UUID:
    """Parse a tenant id or raise InvalidTenantError; called before any query is built."""
    if isinstance(tenant_id, uuid.UUID):
        return tenant_id
    if not isinstance(tenant_id, str):
        raise InvalidTenantError(tenant_id)
    try:
        return uuid.UUID(tenant_id.strip())
    except ValueError as e:
        raise InvalidTenantError(tenant_id) from e


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _kol_summary(kol: Kol | None) -> dict | None:
    if kol is None:
        return None
    return {"id": str(kol.id), "name": kol.name, "username": kol.username, "niche": kol.niche}


def _post_payload(post: Post, kol: Kol | None) -> dict:
    return {
        "id": str(post.id),
        "platform": post.platform,
        "caption": post.caption,
        "hashtags": list(post.hashtags or []),
        "transcript": post.transcript,
        "likes": post.likes,
        "comments": post.comments,
        "createdAt": _iso(post.created_at),
        "kol": _kol_summary(kol),
    }


def _average(total: int, count: int) -> float:
    return total / count if count else 0.0


def _post_conditions(
    kol_ids: list[uuid.UUID] | None = None,
    platform: str | None = None,
    date_range: DateRange | None = None,
) -> list:
    """WHERE conditions on posts shared by post analysis and metrics."""
    conditions = []
    if kol_ids:
        conditions.append(Post.kol_id.in_(kol_ids))
    if platform:
        conditions.append(Post.platform == platform)
    if date_range is not None:
        if date_range.start is not None:
            conditions.append(Post.created_at >= date_range.start)
        if date_range.end is not None:
            conditions.append(Post.created_at <= date_range.end)
    return conditions


def cosine_distance_expr(dialect_name: str, query_vector: list[float]):
    """Cosine distance between Post.embedding and the query vector for the given dialect."""
    param = bindparam("query_vector", query_vector, type_=Vector(EMBEDDING_DIM))
    if dialect_name == "postgresql":
        return Post.embedding.cosine_distance(param)
    return func.cosine_distance(Post.embedding, param, type_=Float)


class QueryExecutor:
    """Runs the four tool operations for one tenant at a time. Read-only."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        embedder: EmbeddingClient,
    ) -> None:
        self._session_factory = session_factory
        self._embedder = embedder

    async def execute(self, tenant_id: Any, op_input: OperationInput) -> dict:
        """Dispatch a validated tool input to its operation."""
        if isinstance(op_input, RecommendKolsInput):
            return await self.recommend_kols(tenant_id, op_input)
        if isinstance(op_input, AnalyzePostsInput):
            return await self.analyze_posts(tenant_id, op_input)
        if isinstance(op_input, AggregateMetricsInput):
            return await self.aggregate_metrics(tenant_id, op_input)
        if isinstance(op_input, SemanticSearchInput):
            return await self.semantic_search(tenant_id, op_input)
        raise TypeError(f"Unsupported operation input: {type(op_input).__name__}")

    async def recommend_kols(self, tenant_id: Any, op_input: RecommendKolsInput) -> dict:
        """KOLs ordered by followers (desc), filtered by follower range and niche."""
        tenant = parse_tenant_id(tenant_id)
        criteria = op_input.kol_criteria
        logger.info(
            "[executor:recommend_kols] IN  tenant=%s criteria=%s limit=%d",
            tenant, criteria.model_dump(exclude_none=True), op_input.limit,
        )

        post_count = (
            select(func.count(Post.id))
            .where(Post.kol_id == Kol.id)
            .correlate(Kol)
            .scalar_subquery()
            .label("post_count")
        )
        stmt = select(Kol, post_count).where(Kol.tenant_id == tenant)
        follower_range = criteria.follower_range
        if follower_range is not None:
            if follower_range.min is not None:
                stmt = stmt.where(Kol.followers >= follower_range.min)
            if follower_range.max is not None:
                stmt = stmt.where(Kol.followers <= follower_range.max)
        niches = [n.strip().lower() for n in (criteria.niches or []) if n and n.strip()]
        if niches:
            stmt = stmt.where(func.lower(Kol.niche).in_(niches))
        stmt = stmt.order_by(Kol.followers.desc(), Kol.id).limit(op_input.limit)

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()

        kols = [
            {
                "id": str(kol.id),
                "name": kol.name,
                "username": kol.username,
                "socialMediaType": kol.social_media_type,
                "niche": kol.niche,
                "followers": kol.followers,
                "postCount": count,
            }
            for kol, count in rows
        ]
        logger.info("[executor:recommend_kols] OUT count=%d", len(kols))
        return {"type": "recommend_kols", "count": len(kols), "kols": kols}

    async def analyze_posts(self, tenant_id: Any, op_input: AnalyzePostsInput) -> dict:
        """Posts ordered by creation time (desc) with a summary of the owning KOL."""
        tenant = parse_tenant_id(tenant_id)
        filters = op_input.filters
        logger.info(
            "[executor:analyze_posts] IN  tenant=%s filters=%s limit=%d",
            tenant, filters.model_dump(exclude_none=True, mode="json"), op_input.limit,
        )

        conditions = _post_conditions(
            kol_ids=[filters.kol_id] if filters.kol_id else None,
            platform=filters.platform,
            date_range=filters.date_range,
        )
        stmt = (
            select(Post, Kol)
            .join(Kol, Post.kol_id == Kol.id)
            .where(Kol.tenant_id == tenant, *conditions)
            .order_by(Post.created_at.desc(), Post.id)
            .limit(op_input.limit)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()

        posts = [_post_payload(post, kol) for post, kol in rows]
        logger.info("[executor:analyze_posts] OUT count=%d", len(posts))
        return {"type": "analyze_posts", "count": len(posts), "posts": posts}

    async def aggregate_metrics(self, tenant_id: Any, op_input: AggregateMetricsInput) -> dict:
        """Engagement totals and averages, per KOL or over the whole filtered post set."""
        tenant = parse_tenant_id(tenant_id)
        filters = op_input.filters
        logger.info(
            "[executor:aggregate_metrics] IN  tenant=%s scope=%s filters=%s",
            tenant, op_input.scope, filters.model_dump(exclude_none=True, mode="json"),
        )
        if op_input.scope == "kol":
            metrics = await self._metrics_per_kol(tenant, op_input)
            logger.info("[executor:aggregate_metrics] OUT kols=%d", len(metrics))
            return {"type": "aggregate_metrics", "scope": "kol", "count": len(metrics), "metrics": metrics}

        conditions = _post_conditions(
            kol_ids=filters.kol_ids,
            platform=filters.platform,
            date_range=filters.date_range,
        )
        stmt = (
            select(
                func.count(Post.id),
                func.coalesce(func.sum(Post.likes), 0),
                func.coalesce(func.sum(Post.comments), 0),
            )
            .select_from(Post)
            .join(Kol, Post.kol_id == Kol.id)
            .where(Kol.tenant_id == tenant, *conditions)
        )
        async with self._session_factory() as session:
            total_posts, total_likes, total_comments = (await session.execute(stmt)).one()

        total_posts, total_likes, total_comments = int(total_posts), int(total_likes), int(total_comments)
        logger.info("[executor:aggregate_metrics] OUT totalPosts=%d", total_posts)
        return {
            "type": "aggregate_metrics",
            "scope": op_input.scope,
            "totalPosts": total_posts,
            "totalLikes": total_likes,
            "totalComments": total_comments,
            "avgLikes": _average(total_likes, total_posts),
            "avgComments": _average(total_comments, total_posts),
        }

    async def _metrics_per_kol(self, tenant: uuid.UUID, op_input: AggregateMetricsInput) -> list[dict]:
        filters = op_input.filters
        # kol_ids narrows the KOL side; platform/date only narrow which posts are counted.
        post_conditions = _post_conditions(platform=filters.platform, date_range=filters.date_range)
        total_posts = func.count(Post.id).label("total_posts")
        total_likes = func.coalesce(func.sum(Post.likes), 0).label("total_likes")
        total_comments = func.coalesce(func.sum(Post.comments), 0).label("total_comments")
        stmt = (
            select(Kol.id, Kol.name, Kol.username, total_posts, total_likes, total_comments)
            .select_from(Kol)
            .outerjoin(Post, and_(Post.kol_id == Kol.id, *post_conditions))
            .where(Kol.tenant_id == tenant)
            .group_by(Kol.id, Kol.name, Kol.username)
            .order_by(total_likes.desc(), Kol.id)
        )
        if filters.kol_ids:
            stmt = stmt.where(Kol.id.in_(filters.kol_ids))

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()

        metrics = []
        for kol_id, name, username, posts, likes, comments in rows:
            posts, likes, comments = int(posts), int(likes), int(comments)
            metrics.append({
                "kol": {"id": str(kol_id), "name": name, "username": username},
                "totalPosts": posts,
                "totalLikes": likes,
                "totalComments": comments,
                "avgLikes": _average(likes, posts),
                "avgComments": _average(comments, posts),
            })
        return metrics

    async def semantic_search(self, tenant_id: Any, op_input: SemanticSearchInput) -> dict:
        """
        Rank the tenant's embedded posts by cosine distance to the query text.

        Only posts with similarity (1 - distance) >= similarity_threshold are kept,
        ordered by distance then post id. Owning KOLs are loaded in one batched query.
        """
        tenant = parse_tenant_id(tenant_id)
        threshold = op_input.similarity_threshold
        logger.info(
            "[executor:semantic_search] IN  tenant=%s query=%r limit=%d threshold=%.3f",
            tenant, op_input.query_text, op_input.limit, threshold,
        )
        query_vector = await self._embedder.embed_query(op_input.query_text)

        async with self._session_factory() as session:
            distance = cosine_distance_expr(session.get_bind().dialect.name, query_vector)
            stmt = (
                select(Post, distance.label("distance"))
                .join(Kol, Post.kol_id == Kol.id)
                .where(
                    Kol.tenant_id == tenant,
                    Post.embedding.is_not(None),
                    (1 - distance) >= threshold,
                )
                .order_by(distance, Post.id)
                .limit(op_input.limit)
            )
            rows = (await session.execute(stmt)).all()

            kol_ids = {post.kol_id for post, _ in rows}
            kols: dict[uuid.UUID, Kol] = {}
            if kol_ids:
                kol_stmt = select(Kol).where(Kol.tenant_id == tenant, Kol.id.in_(kol_ids))
                kols = {kol.id: kol for kol in (await session.scalars(kol_stmt)).all()}

        posts = []
        for post, dist in rows:
            item = _post_payload(post, kols.get(post.kol_id))
            item["similarity"] = max(0.0, min(1.0, 1.0 - float(dist)))
            posts.append(item)
        logger.info(
            "[executor:semantic_search] OUT count=%d top_similarities=%s",
            len(posts), [round(p["similarity"], 4) for p in posts[:5]],
        )
        return {
            "type": "semantic_search",
            "query": op_input.query_text,
            "count": len(posts),
            "posts": posts,
        }
