from __future__ import annotations

from datetime import date

import pytest

from co_backend.db import get_session
from co_backend.errors import NotFoundError, ValidationError
from co_backend.ingest import (
    apply_page_analysis,
    extract_title,
    finish_crawl,
    refresh_site_page_count,
    start_crawl,
    upsert_page,
    upsert_performance_samples,
)
from co_backend.models import (
    CrawlLog,
    Entity,
    Page,
    PageAudience,
    PageEntity,
    PageMessage,
    PagePerformance,
    PageTopic,
    Site,
)
from co_backend.seeds import seed_sites


def test_extract_title_prefers_h1() -> None:
    html = "<html><head><title>Site</title></head><body><h1> Hello </h1></body></html>"
    assert extract_title(html) == "Hello"
    assert extract_title("<title> Only title </title>") == "Only title"
    assert extract_title("<h1></h1><title>Fallback</title>") == "Fallback"
    assert extract_title("<p>no title</p>") is None


def test_upsert_page_creates_then_updates(test_db) -> None:
    with get_session() as session:
        page = upsert_page(session, "/a", "<h1>First</h1>")
        assert page.title == "First"
        assert page.last_crawled is not None

    with get_session() as session:
        upsert_page(session, "/a", "<h1>Second</h1>")

    with get_session() as session:
        pages = session.query(Page).all()
        assert len(pages) == 1
        assert pages[0].title == "Second"
        assert pages[0].raw_html == "<h1>Second</h1>"


def test_upsert_page_requires_path(test_db) -> None:
    with get_session() as session:
        with pytest.raises(ValidationError):
            upsert_page(session, "", "<h1>x</h1>")


def test_apply_page_analysis_replaces_links(test_db) -> None:
    with get_session() as session:
        upsert_page(session, "/a", "<h1>A</h1>")
        apply_page_analysis(
            session,
            "/a",
            {
                "content_type": "article",
                "primary_topic": "skiing",
                "funnel_stage": "awareness",
                "secondary_topics": ["skiing", "snow", "snow"],
                "entities": ["Utah", {"name": "Alta", "type": "location"}],
                "target_audience": ["families"],
                "key_messages": ["One", "Two"],
            },
        )

    with get_session() as session:
        apply_page_analysis(
            session,
            "/a",
            {
                "content_type": "adventure",
                "primary_topic": "hiking",
                "funnel_stage": "decision",
                "secondary_topics": ["skiing"],
                "entities": [{"name": "Utah", "type": "location"}],
                "target_audience": ["hikers"],
            },
        )

    with get_session() as session:
        page = session.get(Page, "/a")
        assert (page.content_type, page.primary_topic, page.funnel_stage) == (
            "adventure",
            "hiking",
            "decision",
        )

        topics = {
            (t.topic, t.is_primary)
            for t in session.query(PageTopic).filter(PageTopic.page_path == "/a")
        }
        assert topics == {("hiking", True), ("skiing", False)}
        assert (
            session.query(PageTopic)
            .filter(PageTopic.page_path == "/a", PageTopic.is_primary.is_(True))
            .count()
            == 1
        )

        assert [a.audience for a in session.query(PageAudience).all()] == ["hikers"]
        assert session.query(PageMessage).count() == 0

        # The entity row is reused and picks up a type it was missing.
        entities = session.query(Entity).order_by(Entity.name).all()
        assert [(e.name, e.type) for e in entities] == [
            ("Alta", "location"),
            ("Utah", "location"),
        ]
        assert session.query(PageEntity).count() == 1


def test_apply_page_analysis_validates(test_db) -> None:
    with get_session() as session:
        with pytest.raises(NotFoundError):
            apply_page_analysis(session, "/missing", {"content_type": "article"})
        upsert_page(session, "/a", None)
        with pytest.raises(ValidationError):
            apply_page_analysis(session, "/a", {"content_type": "video"})


def test_upsert_performance_samples_keyed_by_path_and_date(test_db) -> None:
    with get_session() as session:
        written = upsert_performance_samples(
            session,
            [
                {"page_path": "/a", "date": "2025-06-01", "pageviews": "10", "avg_lcp": 2000},
                {"path": "/a", "date": "2025-06-02T00:00:00Z", "pageviews": 5},
            ],
        )
        assert written == 2

    with get_session() as session:
        upsert_performance_samples(
            session, [{"page_path": "/a", "date": "2025-06-01", "pageviews": 12}]
        )

    with get_session() as session:
        rows = session.query(PagePerformance).order_by(PagePerformance.sample_date).all()
        assert [(r.sample_date, r.pageviews) for r in rows] == [
            (date(2025, 6, 1), 12),
            (date(2025, 6, 2), 5),
        ]
        # Replaced samples do not keep stale metrics.
        assert rows[0].avg_lcp is None


def test_upsert_performance_samples_rejects_bad_rows(test_db) -> None:
    with get_session() as session:
        with pytest.raises(ValidationError):
            upsert_performance_samples(session, [{"date": "2025-06-01"}])
        with pytest.raises(ValidationError):
            upsert_performance_samples(session, [{"page_path": "/a", "date": "yesterday"}])


@pytest.mark.parametrize(
    "sample, message",
    [
        ({"pageviews": "n/a"}, "invalid pageviews: 'n/a'"),
        ({"visits": "12.5"}, "invalid visits: '12.5'"),
        ({"bounce_rate": "high"}, "invalid bounce_rate: 'high'"),
    ],
)
def test_upsert_performance_samples_rejects_non_numeric_metrics(test_db, sample, message) -> None:
    row = {"page_path": "/a", "date": "2025-06-01", **sample}
    with pytest.raises(ValidationError) as excinfo:
        with get_session() as session:
            upsert_performance_samples(session, [row])
    assert excinfo.value.message == message


def test_apply_page_analysis_rejects_non_numeric_word_count(test_db) -> None:
    with get_session() as session:
        upsert_page(session, "/a", None)
        with pytest.raises(ValidationError, match="invalid word_count: 'lots'"):
            apply_page_analysis(session, "/a", {"content_type": "article", "word_count": "lots"})


def test_crawl_log_and_site_page_count(test_db) -> None:
    with get_session() as session:
        seed_sites(session)
        crawl = start_crawl(session, site_id="wknd")
        assert crawl.status == "running"
        upsert_page(session, "/a", "<h1>A</h1>", site_id="wknd")
        upsert_page(session, "/b", "<h1>B</h1>", site_id="wknd")
        upsert_page(session, "/c", "<h1>C</h1>")
        finish_crawl(session, crawl, pages_crawled=2, errors=1)
        assert refresh_site_page_count(session, "wknd") == 2

    with get_session() as session:
        log = session.query(CrawlLog).one()
        assert log.status == "completed_with_errors"
        assert log.pages_crawled == 2
        assert log.completed_at is not None
        assert session.get(Site, "wknd").page_count == 2

        with pytest.raises(NotFoundError):
            refresh_site_page_count(session, "nope")
