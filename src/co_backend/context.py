from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .config import get_brand_config
from .errors import ValidationError
from .models import Entity, Page, PageAudience, PageEntity, Site

ASPECTS = ("topics", "audiences", "entities", "content_types", "all")

TOP_ENTITIES_LIMIT = 20
SUMMARY_TOP_TOPICS_LIMIT = 5


def get_brand_context(session: Session, aspect: str = "all") -> Dict[str, Any]:
    """
    Describe the inventory's dominant topics, audiences, entities and
    content types, each ordered by frequency.
    """
    if aspect not in ASPECTS:
        raise ValidationError(f"aspect must be one of: {', '.join(ASPECTS)}")

    context: Dict[str, Any] = {}

    if aspect in ("topics", "all"):
        count = func.count(Page.path)
        context["topics"] = [
            {"topic": topic, "count": int(n)}
            for topic, n in session.query(Page.primary_topic, count)
            .filter(Page.primary_topic.isnot(None))
            .group_by(Page.primary_topic)
            .order_by(count.desc(), Page.primary_topic)
            .all()
        ]

    if aspect in ("audiences", "all"):
        count = func.count(PageAudience.page_path)
        context["audiences"] = [
            {"audience": audience, "count": int(n)}
            for audience, n in session.query(PageAudience.audience, count)
            .group_by(PageAudience.audience)
            .order_by(count.desc(), PageAudience.audience)
            .all()
        ]

    if aspect in ("entities", "all"):
        mentions = func.count(PageEntity.page_path)
        context["entities"] = [
            {"name": name, "type": entity_type, "mentions": int(n)}
            for name, entity_type, n in session.query(Entity.name, Entity.type, mentions)
            .join(PageEntity, PageEntity.entity_id == Entity.id)
            .group_by(Entity.id, Entity.name, Entity.type)
            .order_by(mentions.desc(), Entity.name)
            .limit(TOP_ENTITIES_LIMIT)
            .all()
        ]

    if aspect in ("content_types", "all"):
        count = func.count(Page.path)
        context["content_types"] = [
            {"content_type": content_type, "count": int(n)}
            for content_type, n in session.query(Page.content_type, count)
            .group_by(Page.content_type)
            .order_by(count.desc(), Page.content_type)
            .all()
        ]

    return context


def _site_dict(site: Site) -> Dict[str, Any]:
    return {
        "id": site.id,
        "name": site.name,
        "domain": site.domain,
        "source_org": site.source_org,
        "source_repo": site.source_repo,
        "page_count": site.page_count,
    }


def get_inventory_summary(session: Session, site_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Headline numbers for the inventory, optionally scoped to one site.
    """
    brand = get_brand_config()

    pages = session.query(Page)
    if site_id:
        pages = pages.filter(Page.site_id == site_id)

    total_pages = pages.count()
    total_topics = int(
        pages.filter(Page.primary_topic.isnot(None))
        .with_entities(func.count(func.distinct(Page.primary_topic)))
        .scalar()
        or 0
    )
    total_entities = int(session.query(func.count(Entity.id)).scalar() or 0)
    total_sites = int(session.query(func.count(Site.id)).scalar() or 0)

    count = func.count(Page.path)
    top_topics = [
        {"primary_topic": topic, "count": int(n)}
        for topic, n in pages.filter(Page.primary_topic.isnot(None))
        .with_entities(Page.primary_topic, count)
        .group_by(Page.primary_topic)
        .order_by(count.desc(), Page.primary_topic)
        .limit(SUMMARY_TOP_TOPICS_LIMIT)
        .all()
    ]
    funnel_distribution = [
        {"funnel_stage": stage, "count": int(n)}
        for stage, n in pages.with_entities(Page.funnel_stage, count)
        .group_by(Page.funnel_stage)
        .order_by(Page.funnel_stage)
        .all()
    ]

    site = session.get(Site, site_id) if site_id else None

    return {
        "summary": f"Content inventory with {total_pages} pages across {total_topics} topics.",
        "stats": {
            "total_pages": total_pages,
            "total_topics": total_topics,
            "total_entities": total_entities,
            "total_sites": total_sites,
        },
        "site": _site_dict(site) if site is not None else None,
        "top_topics": top_topics,
        "funnel_distribution": funnel_distribution,
        "brand": (site.name if site is not None and site.name else brand.name),
        "domain": (site.domain if site is not None and site.domain else brand.domain),
    }


__all__ = ["ASPECTS", "get_brand_context", "get_inventory_summary"]
