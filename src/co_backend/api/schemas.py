from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# === Request parameters ===
#
# Every operation accepts the same field names from the query string (GET)
# or a JSON object body (POST). Blank strings and nulls count as "not given".


class ParamsModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_unset(cls, data: Any) -> Any:
        # Drop the key so the field default applies.
        if not isinstance(data, dict):
            return data
        return {
            key: value
            for key, value in data.items()
            if value is not None and not (isinstance(value, str) and not value.strip())
        }


class QueryParams(ParamsModel):
    site_id: Optional[str] = None
    topic: Optional[str] = None
    content_type: Optional[str] = None
    funnel_stage: Optional[str] = None
    audience: Optional[str] = None
    search: Optional[str] = None
    limit: int = 20


class GapsParams(ParamsModel):
    topic: Optional[str] = None
    funnel_stage: Optional[str] = None


class BriefParams(ParamsModel):
    topic: Optional[str] = None
    content_type: Optional[str] = None
    funnel_stage: Optional[str] = None
    target_audience: Optional[str] = None


class RelatedParams(ParamsModel):
    path: Optional[str] = None
    relationship: str = "all"


class ContextParams(ParamsModel):
    aspect: str = "all"


class SummaryParams(ParamsModel):
    site_id: Optional[str] = None


class PerformanceParams(ParamsModel):
    path: Optional[str] = None


class TopPerformersParams(ParamsModel):
    metric: str = "overall"
    limit: int = 10


class PatternsParams(ParamsModel):
    pattern_type: Optional[str] = Field(default=None, alias="type")


class SitesParams(ParamsModel):
    site_id: Optional[str] = Field(default=None, alias="id")


class TrackEventParams(ParamsModel):
    tool_name: Optional[str] = None
    tool_category: Optional[str] = None
    duration_ms: Optional[int] = None
    status: Optional[str] = None
    error_type: Optional[str] = None
    error_message: Optional[str] = None
    metadata: Optional[Any] = None


# === Responses ===


class InventoryPageSchema(BaseModel):
    path: str
    title: Optional[str] = None
    content_type: Optional[str] = None
    primary_topic: Optional[str] = None
    funnel_stage: Optional[str] = None
    summary: Optional[str] = None
    site_id: Optional[str] = None


class InventoryResponseSchema(BaseModel):
    count: int
    pages: List[InventoryPageSchema]


class ContentGapSchema(BaseModel):
    topic: str
    total_pages: int
    coverage: Dict[str, int]
    missing_stages: List[str]
    priority: str
    recommendation: str


class GapsResponseSchema(BaseModel):
    gaps: List[ContentGapSchema]


class RelatedSourceSchema(BaseModel):
    path: str
    title: Optional[str] = None
    topic: Optional[str] = None
    funnel_stage: Optional[str] = None


class RelatedResponseSchema(BaseModel):
    source: RelatedSourceSchema
    related: Dict[str, List[Dict[str, Any]]]


class BriefResponseSchema(BaseModel):
    topic: str
    content_type: str
    funnel_stage: str
    target_audience: str
    context: Dict[str, Any]
    recommendations: Dict[str, Any]
    brief_text: str


class SiteSchema(BaseModel):
    id: str
    name: str
    domain: Optional[str] = None
    source_org: Optional[str] = None
    source_repo: Optional[str] = None
    page_count: int
    actual_page_count: int
    topic_count: int


class SitesResponseSchema(BaseModel):
    count: int
    sites: List[SiteSchema]


class SiteResponseSchema(BaseModel):
    site: SiteSchema


class TrackResponseSchema(BaseModel):
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None


class HealthSchema(BaseModel):
    status: str
    checks: Dict[str, str]
    timestamp: str
