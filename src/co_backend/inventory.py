from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .errors import ValidationError
from .models import CONTENT_TYPES, FUNNEL_STAGES, Page, PageAudience, check_choice

logger = logging.getLogger("contentontology.inventory")

DEFAULT_QUERY_LIMIT = 20

# Largest LIMIT the store can bind; larger requests mean "all rows".
SQL_LIMIT_MAX = 2**63 - 1

# Columns returned for each matching page.
INVENTORY_COLUMNS = (
    Page.path,
    Page.title,
    Page.content_type,
    Page.primary_topic,
    Page.funnel_stage,
    Page.summary,
    Page.site_id,
)


def escape_like(value: str) -> str:
    """
    Escape LIKE wildcards so user input is treated as a literal substring.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_pattern(value: str) -> str:
    return f"%{escape_like(value)}%"


@dataclass(frozen=True)
class InventoryFilters:
    """
    Optional, conjunctive filters for an inventory query.

    A field left as None adds no constraint. ``audience`` and ``search`` are
    substring matches; every other field is an exact match. ``limit`` has no
    upper bound.
    """

    site_id: Optional[str] = None
    topic: Optional[str] = None
    content_type: Optional[str] = None
    funnel_stage: Optional[str] = None
    audience: Optional[str] = None
    search: Optional[str] = None
    limit: int = DEFAULT_QUERY_LIMIT

    def validate(self) -> None:
        check_choice("content_type", self.content_type, CONTENT_TYPES)
        check_choice("funnel_stage", self.funnel_stage, FUNNEL_STAGES)
        if self.limit < 1:
            raise ValidationError("limit must be a positive integer")


@dataclass(frozen=True)
class InventoryResult:
    count: int
    pages: List[Dict[str, Any]] = field(default_factory=list)


def query_inventory(session: Session, filters: InventoryFilters) -> InventoryResult:
    """
    Return pages satisfying every supplied filter, ordered by path.
    """
    filters.validate()

    query = session.query(*INVENTORY_COLUMNS)

    if filters.site_id:
        query = query.filter(Page.site_id == filters.site_id)
    if filters.topic:
        query = query.filter(Page.primary_topic == filters.topic)
    if filters.content_type:
        query = query.filter(Page.content_type == filters.content_type)
    if filters.funnel_stage:
        query = query.filter(Page.funnel_stage == filters.funnel_stage)
    if filters.audience:
        audience_paths = session.query(PageAudience.page_path).filter(
            PageAudience.audience.ilike(contains_pattern(filters.audience), escape="\\")
        )
        query = query.filter(Page.path.in_(audience_paths))
    if filters.search:
        pattern = contains_pattern(filters.search)
        query = query.filter(
            or_(
                Page.path.ilike(pattern, escape="\\"),
                Page.title.ilike(pattern, escape="\\"),
            )
        )

    if filters.limit > 1000:
        logger.warning("Unbounded inventory query requested (limit=%d)", filters.limit)

    rows = query.order_by(Page.path).limit(min(filters.limit, SQL_LIMIT_MAX)).all()
    pages = [dict(row._mapping) for row in rows]
    return InventoryResult(count=len(pages), pages=pages)


__all__ = [
    "DEFAULT_QUERY_LIMIT",
    "InventoryFilters",
    "InventoryResult",
    "SQL_LIMIT_MAX",
    "contains_pattern",
    "escape_like",
    "query_inventory",
]
