from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from .errors import NotFoundError, ValidationError
from .models import Page, PageAudience

RELATED_LIMIT = 10

RELATIONSHIP_SAME_TOPIC = "same_topic"
RELATIONSHIP_SAME_AUDIENCE = "same_audience"
RELATIONSHIP_SAME_FUNNEL_STAGE = "same_funnel_stage"
RELATIONSHIP_ALL = "all"

RELATIONSHIPS = (
    RELATIONSHIP_SAME_TOPIC,
    RELATIONSHIP_SAME_AUDIENCE,
    RELATIONSHIP_SAME_FUNNEL_STAGE,
    RELATIONSHIP_ALL,
)


@dataclass(frozen=True)
class RelatedContent:
    source: Dict[str, Any]
    related: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)


def _rows(query) -> List[Dict[str, Any]]:
    return [dict(row._mapping) for row in query.order_by(Page.path).limit(RELATED_LIMIT).all()]


def find_related_content(
    session: Session,
    path: str,
    relationship: str = RELATIONSHIP_ALL,
) -> RelatedContent:
    """
    Find pages sharing the source page's topic, funnel stage or audiences.

    Each list holds at most RELATED_LIMIT pages and never includes the source
    page. Raises NotFoundError when the path is not in the inventory.
    """
    if not path:
        raise ValidationError("path is required")
    if relationship not in RELATIONSHIPS:
        raise ValidationError(f"relationship must be one of: {', '.join(RELATIONSHIPS)}")

    source = session.get(Page, path)
    if source is None:
        raise NotFoundError("Page not found")

    wants = {relationship} if relationship != RELATIONSHIP_ALL else set(RELATIONSHIPS)
    related: Dict[str, List[Dict[str, Any]]] = {}

    if RELATIONSHIP_SAME_TOPIC in wants:
        if source.primary_topic is None:
            related[RELATIONSHIP_SAME_TOPIC] = []
        else:
            related[RELATIONSHIP_SAME_TOPIC] = _rows(
                session.query(
                    Page.path, Page.title, Page.content_type, Page.funnel_stage
                ).filter(Page.primary_topic == source.primary_topic, Page.path != path)
            )

    if RELATIONSHIP_SAME_FUNNEL_STAGE in wants:
        if source.funnel_stage is None:
            related[RELATIONSHIP_SAME_FUNNEL_STAGE] = []
        else:
            related[RELATIONSHIP_SAME_FUNNEL_STAGE] = _rows(
                session.query(
                    Page.path, Page.title, Page.content_type, Page.primary_topic
                ).filter(Page.funnel_stage == source.funnel_stage, Page.path != path)
            )

    if RELATIONSHIP_SAME_AUDIENCE in wants:
        source_audiences = session.query(PageAudience.audience).filter(
            PageAudience.page_path == path
        )
        audience_paths = session.query(PageAudience.page_path).filter(
            PageAudience.audience.in_(source_audiences)
        )
        related[RELATIONSHIP_SAME_AUDIENCE] = _rows(
            session.query(
                Page.path, Page.title, Page.content_type, Page.primary_topic
            ).filter(Page.path.in_(audience_paths), Page.path != path)
        )

    return RelatedContent(
        source={
            "path": source.path,
            "title": source.title,
            "topic": source.primary_topic,
            "funnel_stage": source.funnel_stage,
        },
        related=related,
    )


__all__ = ["RELATIONSHIPS", "RELATED_LIMIT", "RelatedContent", "find_related_content"]
