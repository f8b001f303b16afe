"""
Writers for the page store.

Crawled HTML, classifier output and analytics samples arrive as plain
dictionaries (usually loaded from JSON files by the CLI) and are upserted
here. Callers own the transaction; these helpers only flush.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from bs4 import BeautifulSoup
from sqlalchemy import func
from sqlalchemy.orm import Session

from .errors import NotFoundError, ValidationError
from .models import (
    CONTENT_TYPES,
    FUNNEL_STAGES,
    CrawlLog,
    Entity,
    Page,
    PageAudience,
    PageEntity,
    PageMessage,
    PagePerformance,
    PageTopic,
    Site,
    check_choice,
)

logger = logging.getLogger("contentontology.ingest")

CRAWL_RUNNING = "running"
CRAWL_COMPLETED = "completed"
CRAWL_COMPLETED_WITH_ERRORS = "completed_with_errors"

SAMPLE_METRICS = (
    "pageviews",
    "visits",
    "avg_lcp",
    "avg_cls",
    "avg_inp",
    "bounce_rate",
    "avg_engagement_time",
    "conversion_rate",
)


def extract_title(html: str) -> Optional[str]:
    """
    Extract a page title from HTML: the first <h1>, else <title>.
    """
    soup = BeautifulSoup(html, "html.parser")

    h1 = soup.find("h1")
    if h1 and h1.get_text(strip=True):
        return h1.get_text(strip=True)

    if soup.title and soup.title.string:
        title = soup.title.string.strip()
        if title:
            return title

    return None


def upsert_page(
    session: Session,
    path: str,
    html: Optional[str],
    site_id: Optional[str] = None,
    title: Optional[str] = None,
) -> Page:
    if not path:
        raise ValidationError("path is required")

    if title is None and html:
        title = extract_title(html)

    page = session.get(Page, path)
    if page is None:
        page = Page(path=path)
        session.add(page)

    page.raw_html = html
    page.last_crawled = datetime.now(timezone.utc)
    if title is not None:
        page.title = title
    if site_id is not None:
        page.site_id = site_id

    session.flush()
    return page


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _clean_labels(values: Iterable[Any]) -> List[str]:
    labels: List[str] = []
    for value in values:
        if not isinstance(value, str):
            continue
        label = value.strip()
        if label and label not in labels:
            labels.append(label)
    return labels


def _get_or_create_entity(session: Session, name: str, entity_type: Optional[str]) -> Entity:
    entity = session.query(Entity).filter(Entity.name == name).one_or_none()
    if entity is None:
        entity = Entity(name=name, type=entity_type)
        session.add(entity)
        session.flush()
    elif entity.type is None and entity_type:
        entity.type = entity_type
    return entity


def apply_page_analysis(session: Session, path: str, analysis: Dict[str, Any]) -> Page:
    """
    Store classifier output for an existing page.

    Topics, entity links, audiences and key messages are replaced rather
    than merged, and exactly one topic row is marked primary when a primary
    topic is given.
    """
    content_type = analysis.get("content_type")
    funnel_stage = analysis.get("funnel_stage")
    check_choice("content_type", content_type, CONTENT_TYPES)
    check_choice("funnel_stage", funnel_stage, FUNNEL_STAGES)
    word_count = analysis.get("word_count")
    if word_count is not None:
        word_count = _to_number(int, "word_count", word_count)

    page = session.get(Page, path)
    if page is None:
        raise NotFoundError("Page not found")

    primary_topic = (analysis.get("primary_topic") or "").strip() or None

    page.content_type = content_type
    page.funnel_stage = funnel_stage
    page.primary_topic = primary_topic
    page.summary = analysis.get("summary")
    if word_count is not None:
        page.word_count = word_count

    for model in (PageTopic, PageEntity, PageAudience, PageMessage):
        session.query(model).filter(model.page_path == path).delete()
    session.flush()
    session.expire(page, ["topics", "audiences"])

    if primary_topic is not None:
        session.add(PageTopic(page_path=path, topic=primary_topic, is_primary=True))
    for topic in _clean_labels(_as_list(analysis.get("secondary_topics"))):
        if topic != primary_topic:
            session.add(PageTopic(page_path=path, topic=topic, is_primary=False))

    linked = set()
    for item in _as_list(analysis.get("entities")):
        if isinstance(item, str):
            name, entity_type = item.strip(), None
        elif isinstance(item, dict):
            name, entity_type = (item.get("name") or "").strip(), item.get("type")
        else:
            continue
        if not name:
            continue
        entity = _get_or_create_entity(session, name, entity_type)
        if entity.id in linked:
            continue
        linked.add(entity.id)
        session.add(PageEntity(page_path=path, entity_id=entity.id))

    for audience in _clean_labels(_as_list(analysis.get("target_audience"))):
        session.add(PageAudience(page_path=path, audience=audience))

    for message in _clean_labels(_as_list(analysis.get("key_messages"))):
        session.add(PageMessage(page_path=path, message=message))

    session.flush()
    logger.debug("Applied analysis to %s (%s / %s)", path, content_type, primary_topic)
    return page


def _to_number(kind: Any, name: str, value: Any) -> Any:
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"invalid {name}: {value!r}") from exc


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError as exc:
            raise ValidationError(f"invalid sample date: {value!r}") from exc
    raise ValidationError("sample date is required")


def upsert_performance_samples(session: Session, samples: Iterable[Dict[str, Any]]) -> int:
    """
    Insert or replace daily analytics samples keyed by (page path, date).

    Returns the number of samples written.
    """
    pending: Dict[tuple[str, date], PagePerformance] = {}
    written = 0

    for sample in samples:
        page_path = sample.get("page_path") or sample.get("path")
        if not page_path:
            raise ValidationError("sample page_path is required")
        sample_date = _parse_date(sample.get("date"))
        metrics = {}
        for metric in SAMPLE_METRICS:
            value = sample.get(metric)
            if metric in ("pageviews", "visits"):
                metrics[metric] = _to_number(int, metric, value or 0)
            else:
                metrics[metric] = _to_number(float, metric, value) if value is not None else None

        key = (page_path, sample_date)
        row = pending.get(key)
        if row is None:
            row = (
                session.query(PagePerformance)
                .filter(
                    PagePerformance.page_path == page_path,
                    PagePerformance.sample_date == sample_date,
                )
                .one_or_none()
            )
        if row is None:
            row = PagePerformance(page_path=page_path, sample_date=sample_date)
            session.add(row)
        pending[key] = row

        for metric, value in metrics.items():
            setattr(row, metric, value)
        written += 1

    session.flush()
    logger.info("Stored %d performance sample(s)", written)
    return written


def start_crawl(session: Session, site_id: Optional[str] = None) -> CrawlLog:
    crawl = CrawlLog(site_id=site_id, status=CRAWL_RUNNING)
    session.add(crawl)
    session.flush()
    return crawl


def finish_crawl(
    session: Session,
    crawl: CrawlLog,
    pages_crawled: int,
    errors: int = 0,
) -> CrawlLog:
    crawl.completed_at = datetime.now(timezone.utc)
    crawl.pages_crawled = pages_crawled
    crawl.status = CRAWL_COMPLETED_WITH_ERRORS if errors else CRAWL_COMPLETED
    session.flush()
    return crawl


def refresh_site_page_count(session: Session, site_id: str) -> int:
    """
    Recompute the cached Site.page_count from the pages table.
    """
    site = session.get(Site, site_id)
    if site is None:
        raise NotFoundError("Site not found")
    count = int(
        session.query(func.count(Page.path)).filter(Page.site_id == site_id).scalar() or 0
    )
    site.page_count = count
    session.flush()
    return count


__all__ = [
    "apply_page_analysis",
    "extract_title",
    "finish_crawl",
    "refresh_site_page_count",
    "start_crawl",
    "upsert_page",
    "upsert_performance_samples",
]
