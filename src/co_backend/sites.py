from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from .errors import NotFoundError
from .models import Page, Site


def _site_rows(session: Session):
    actual_page_count = (
        session.query(func.count(Page.path))
        .filter(Page.site_id == Site.id)
        .correlate(Site)
        .scalar_subquery()
    )
    topic_count = (
        session.query(func.count(func.distinct(Page.primary_topic)))
        .filter(Page.site_id == Site.id)
        .correlate(Site)
        .scalar_subquery()
    )
    return session.query(
        Site,
        actual_page_count.label("actual_page_count"),
        topic_count.label("topic_count"),
    )


def _serialize(site: Site, actual_page_count: int, topic_count: int) -> Dict[str, Any]:
    return {
        "id": site.id,
        "name": site.name,
        "domain": site.domain,
        "source_org": site.source_org,
        "source_repo": site.source_repo,
        "page_count": site.page_count,
        "actual_page_count": int(actual_page_count or 0),
        "topic_count": int(topic_count or 0),
        "created_at": site.created_at,
        "updated_at": site.updated_at,
    }


def list_sites(session: Session) -> List[Dict[str, Any]]:
    """
    Return every site (sorted by name) with live page and topic counts.
    """
    rows = _site_rows(session).order_by(Site.name, Site.id).all()
    return [_serialize(site, pages, topics) for site, pages, topics in rows]


def get_site(session: Session, site_id: str) -> Dict[str, Any]:
    row = _site_rows(session).filter(Site.id == site_id).first()
    if row is None:
        raise NotFoundError("Site not found")
    site, pages, topics = row
    return _serialize(site, pages, topics)


__all__ = ["get_site", "list_sites"]
