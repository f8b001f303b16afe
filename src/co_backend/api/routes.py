from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from co_backend.briefs import BriefRequest, build_content_brief
from co_backend.context import get_brand_context, get_inventory_summary
from co_backend.db import ping_database
from co_backend.gaps import find_content_gaps
from co_backend.inventory import InventoryFilters, query_inventory
from co_backend.performance import (
    get_page_performance,
    get_performance_patterns,
    get_top_performers,
)
from co_backend.related import find_related_content
from co_backend.sites import get_site, list_sites
from co_backend.usage import record_skill_usage

from .deps import get_db, parse_params, request_params
from .schemas import (
    BriefParams,
    BriefResponseSchema,
    ContentGapSchema,
    ContextParams,
    GapsParams,
    GapsResponseSchema,
    HealthSchema,
    InventoryResponseSchema,
    PatternsParams,
    PerformanceParams,
    QueryParams,
    RelatedParams,
    RelatedResponseSchema,
    SiteResponseSchema,
    SiteSchema,
    SitesParams,
    SitesResponseSchema,
    SummaryParams,
    TopPerformersParams,
    TrackEventParams,
    TrackResponseSchema,
)

logger = logging.getLogger("contentontology.api")

router = APIRouter()
health_router = APIRouter()

READ_METHODS = ["GET", "POST"]


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


@health_router.get("/health", response_model=HealthSchema)
def health_check(db: Session = Depends(get_db)) -> JSONResponse:
    """
    Liveness endpoint with a basic database check.
    """
    checks: Dict[str, str] = {}
    status = "ok"

    try:
        ping_database(db)
        checks["db"] = "ok"
    except Exception:
        logger.warning("Health check database query failed", exc_info=True)
        checks["db"] = "error"
        status = "error"

    payload = HealthSchema(
        status=status,
        checks=checks,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    return JSONResponse(
        status_code=200 if status == "ok" else 500,
        content=payload.model_dump(),
    )


@router.api_route("/query", methods=READ_METHODS, response_model=InventoryResponseSchema)
def query_route(
    params: Dict[str, Any] = Depends(request_params),
    db: Session = Depends(get_db),
) -> InventoryResponseSchema:
    parsed = parse_params(QueryParams, params)
    result = query_inventory(db, InventoryFilters(**parsed.model_dump()))
    return InventoryResponseSchema(count=result.count, pages=result.pages)


@router.api_route("/gaps", methods=READ_METHODS, response_model=GapsResponseSchema)
def gaps_route(
    params: Dict[str, Any] = Depends(request_params),
    db: Session = Depends(get_db),
) -> GapsResponseSchema:
    parsed = parse_params(GapsParams, params)
    gaps = find_content_gaps(db, topic=parsed.topic, funnel_stage=parsed.funnel_stage)
    return GapsResponseSchema(gaps=[ContentGapSchema(**asdict(gap)) for gap in gaps])


@router.api_route("/brief", methods=READ_METHODS, response_model=BriefResponseSchema)
def brief_route(
    params: Dict[str, Any] = Depends(request_params),
    db: Session = Depends(get_db),
) -> BriefResponseSchema:
    parsed = parse_params(BriefParams, params)
    brief = build_content_brief(db, BriefRequest(**parsed.model_dump()))
    return BriefResponseSchema(**asdict(brief))


@router.api_route("/related", methods=READ_METHODS, response_model=RelatedResponseSchema)
def related_route(
    params: Dict[str, Any] = Depends(request_params),
    db: Session = Depends(get_db),
) -> RelatedResponseSchema:
    parsed = parse_params(RelatedParams, params)
    related = find_related_content(db, parsed.path or "", parsed.relationship)
    return RelatedResponseSchema(**asdict(related))


@router.api_route("/context", methods=READ_METHODS)
def context_route(
    params: Dict[str, Any] = Depends(request_params),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    parsed = parse_params(ContextParams, params)
    return get_brand_context(db, parsed.aspect)


@router.api_route("/summary", methods=READ_METHODS)
def summary_route(
    params: Dict[str, Any] = Depends(request_params),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    parsed = parse_params(SummaryParams, params)
    return get_inventory_summary(db, parsed.site_id)


@router.api_route("/performance", methods=READ_METHODS)
def performance_route(
    params: Dict[str, Any] = Depends(request_params),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    parsed = parse_params(PerformanceParams, params)
    return get_page_performance(db, parsed.path)


@router.api_route("/top-performers", methods=READ_METHODS)
def top_performers_route(
    params: Dict[str, Any] = Depends(request_params),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    parsed = parse_params(TopPerformersParams, params)
    return get_top_performers(db, metric=parsed.metric, limit=parsed.limit)


@router.api_route("/performance-patterns", methods=READ_METHODS)
def performance_patterns_route(
    params: Dict[str, Any] = Depends(request_params),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    parsed = parse_params(PatternsParams, params)
    return get_performance_patterns(db, parsed.pattern_type)


@router.api_route("/sites", methods=READ_METHODS)
def sites_route(
    params: Dict[str, Any] = Depends(request_params),
    db: Session = Depends(get_db),
) -> Any:
    """
    List every site, or return one site when ``id`` (or ``site_id``) is given.
    """
    parsed = parse_params(SitesParams, params)
    if parsed.site_id:
        return SiteResponseSchema(site=SiteSchema(**get_site(db, parsed.site_id)))
    sites = [SiteSchema(**site) for site in list_sites(db)]
    return SitesResponseSchema(count=len(sites), sites=sites)


@router.post("/track", response_model=TrackResponseSchema, response_model_exclude_none=True)
def track_route(
    request: Request,
    params: Dict[str, Any] = Depends(request_params),
    db: Session = Depends(get_db),
) -> TrackResponseSchema:
    parsed = parse_params(TrackEventParams, params)
    result = record_skill_usage(db, parsed.model_dump(), client_ip=_client_ip(request))
    return TrackResponseSchema(**result)


__all__ = ["health_router", "router"]
