"""
Input contracts for the four agent tools.

Each model is frozen once validated. Result-size limits are clamped into
[1, MAX_LIMIT] instead of being rejected, so a model asking for 500 rows gets 100.
"""

import re
import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from kol_agent.core.config import DEFAULT_LIMIT, DEFAULT_SIMILARITY_THRESHOLD, MAX_LIMIT

UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

Platform = Literal["instagram", "threads", "reels"]
MetricsScope = Literal["kol", "post", "overall"]


def is_uuid(value: Any) -> bool:
    """True for UUID instances and canonical 8-4-4-4-12 hex strings."""
    if isinstance(value, uuid.UUID):
        return True
    return isinstance(value, str) and bool(UUID_RE.match(value.strip()))


def clamp_limit(value: Any) -> Any:
    """Clamp numeric limits into [1, MAX_LIMIT]; None means the default."""
    if value is None:
        return DEFAULT_LIMIT
    if isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value.strip())
    if isinstance(value, int):
        return max(1, min(MAX_LIMIT, value))
    return value


Limit = Annotated[int, BeforeValidator(clamp_limit), Field(ge=1, le=MAX_LIMIT)]


class _Contract(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class FollowerRange(_Contract):
    min: int | None = Field(None, ge=0, description="Minimum follower count (inclusive).")
    max: int | None = Field(None, ge=0, description="Maximum follower count (inclusive).")


class KolCriteria(_Contract):
    follower_range: FollowerRange | None = Field(None, description="Inclusive follower-count bounds.")
    niches: list[str] | None = Field(None, description="Niches to match, e.g. ['fashion', 'tech'].")


class DateRange(_Contract):
    start: datetime | None = Field(None, description="Inclusive start, ISO 8601 datetime.")
    end: datetime | None = Field(None, description="Inclusive end, ISO 8601 datetime.")

    @field_validator("start", "end")
    @classmethod
    def normalize_to_utc(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class PostFilters(_Contract):
    kol_id: uuid.UUID | None = Field(None, description="KOL UUID. Omit unless you have a real id.")
    date_range: DateRange | None = None
    platform: Platform | None = None


class MetricsFilters(_Contract):
    kol_ids: list[uuid.UUID] | None = Field(None, description="KOL UUIDs. Omit unless you have real ids.")
    date_range: DateRange | None = None
    platform: Platform | None = None


class RecommendKolsInput(_Contract):
    kol_criteria: KolCriteria = Field(
        default_factory=KolCriteria,
        validation_alias=AliasChoices("kol_criteria", "criteria"),
    )
    limit: Limit = DEFAULT_LIMIT


class AnalyzePostsInput(_Contract):
    filters: PostFilters = Field(default_factory=PostFilters)
    limit: Limit = DEFAULT_LIMIT


class AggregateMetricsInput(_Contract):
    scope: MetricsScope
    filters: MetricsFilters = Field(default_factory=MetricsFilters)


class SemanticSearchInput(_Contract):
    query_text: str = Field(..., min_length=1, description="What the posts should be about.")
    limit: Limit = DEFAULT_LIMIT
    similarity_threshold: float = Field(DEFAULT_SIMILARITY_THRESHOLD, ge=0.0, le=1.0)

    @field_validator("query_text")
    @classmethod
    def strip_query(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("query_text must not be blank")
        return value

    @field_validator("similarity_threshold", mode="before")
    @classmethod
    def default_threshold(cls, value: Any) -> Any:
        return DEFAULT_SIMILARITY_THRESHOLD if value is None else value


OperationInput = RecommendKolsInput | AnalyzePostsInput | AggregateMetricsInput | SemanticSearchInput
