from __future__ import annotations

from datetime import date, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from co_backend import db as db_module
from co_backend.db import Base, get_engine, get_session
from co_backend.ingest import apply_page_analysis, upsert_page, upsert_performance_samples
from co_backend.seeds import seed_sites

_DEPLOYMENT_ENV_VARS = (
    "CO_API_KEY",
    "CO_CORS_ORIGINS",
    "CO_LOG_LEVEL",
    "CO_BRAND_NAME",
    "CO_BRAND_DOMAIN",
    "CO_DEFAULT_AUDIENCE",
    "CO_API_BASE_URL",
    "CO_USAGE_TRACKING_ENABLED",
)


@pytest.fixture(autouse=True)
def _isolate_process_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Make tests deterministic even when run in a production-like shell.

    Deployments export env vars (e.g. CO_ENV=production, CO_API_KEY) that
    legitimately change API/CLI behaviour. If those leak into pytest runs,
    tests can fail depending on the host environment.
    """
    # Force a non-production env so the API does not fail closed when
    # CO_API_KEY is intentionally unset in tests.
    monkeypatch.setenv("CO_ENV", "test")

    for name in _DEPLOYMENT_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def init_test_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Point the ORM at a throwaway SQLite database and create all tables.
    """
    db_path = tmp_path / "test.db"
    monkeypatch.setenv("CO_DATABASE_URL", f"sqlite:///{db_path}")

    # Reset cached engine/session so we pick up the new URL.
    db_module.reset_engine()

    engine = get_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)


# path, html, analysis (None = crawled but not yet classified)
INVENTORY_PAGES: List[Tuple[str, str, Optional[Dict[str, Any]]]] = [
    (
        "/adventures/ski-touring",
        "<html><head><title>WKND</title></head><body><h1>Ski Touring in Utah</h1></body></html>",
        {
            "content_type": "adventure",
            "primary_topic": "skiing",
            "funnel_stage": "consideration",
            "summary": "Five days of backcountry touring.",
            "word_count": 850,
            "secondary_topics": ["backcountry", "winter travel"],
            "entities": [
                {"name": "Utah", "type": "location"},
                {"name": "Ski Touring", "type": "activity"},
            ],
            "target_audience": ["families", "ski enthusiasts"],
            "key_messages": ["Guided tours for every level"],
        },
    ),
    (
        "/magazine/skiing-guide",
        "<html><head><title>The Skiing Guide</title></head><body><p>Text</p></body></html>",
        {
            "content_type": "article",
            "primary_topic": "skiing",
            "funnel_stage": "awareness",
            "summary": "Everything about skiing.",
            "secondary_topics": ["winter travel", "snowboarding"],
            "entities": [{"name": "Utah", "type": "location"}],
            "target_audience": ["ski enthusiasts"],
        },
    ),
    (
        "/adventures/cycling-tuscany",
        "<html><body><h1>Cycling Tuscany</h1></body></html>",
        {
            "content_type": "adventure",
            "primary_topic": "cycling",
            "funnel_stage": "decision",
            "summary": "Book a week on Tuscan backroads.",
            "entities": [{"name": "Tuscany", "type": "location"}],
            "target_audience": ["road cyclists"],
        },
    ),
    (
        "/magazine/cycling-tips",
        "<html><body><h1>Ten Cycling Tips</h1></body></html>",
        {
            "content_type": "article",
            "primary_topic": "cycling",
            "funnel_stage": "awareness",
            "target_audience": ["road cyclists", "beginners"],
        },
    ),
    (
        "/magazine/climbing-basics",
        "<html><body><h1>Climbing Basics</h1></body></html>",
        {
            "content_type": "article",
            "primary_topic": "climbing",
            "funnel_stage": "awareness",
            "target_audience": ["beginners"],
        },
    ),
    (
        "/support/faq",
        "<html><body><h1>FAQ</h1></body></html>",
        {
            "content_type": "support",
            "primary_topic": None,
            "funnel_stage": "decision",
        },
    ),
    (
        "/about",
        "<html><head><title>About WKND</title></head><body></body></html>",
        None,
    ),
]


def _samples(path: str, days: int, **metrics: float) -> List[Dict[str, Any]]:
    start = date(2025, 6, 1)
    return [
        {"page_path": path, "date": (start + timedelta(days=i)).isoformat(), **metrics}
        for i in range(days)
    ]


# Chosen so the derived scores are round numbers:
#   ski-touring    performance 100, engagement 60, conversion 50  -> overall 69
#   cycling-tuscany performance 0,  engagement 90, conversion 150 -> overall 81
#   skiing-guide   performance 50,  engagement 50, conversion 10  -> overall 38
PERFORMANCE_SAMPLES: List[Dict[str, Any]] = [
    {
        "page_path": "/adventures/ski-touring",
        "date": "2025-06-01",
        "pageviews": 80,
        "visits": 60,
        "avg_lcp": 2000,
        "avg_cls": 0.1,
        "avg_inp": 150,
        "bounce_rate": 0.4,
        "avg_engagement_time": 120,
        "conversion_rate": 0.05,
    },
    {
        "page_path": "/adventures/ski-touring",
        "date": "2025-06-02",
        "pageviews": 90,
        "visits": 70,
        "avg_lcp": 3000,
        "avg_cls": 0.1,
        "avg_inp": 250,
        "bounce_rate": 0.4,
        "avg_engagement_time": 120,
        "conversion_rate": 0.05,
    },
    *_samples(
        "/adventures/cycling-tuscany",
        3,
        pageviews=30,
        visits=25,
        avg_lcp=4000,
        avg_cls=0.25,
        avg_inp=500,
        bounce_rate=0.2,
        avg_engagement_time=300,
        conversion_rate=0.15,
    ),
    *_samples(
        "/magazine/skiing-guide",
        1,
        pageviews=150,
        visits=120,
        avg_lcp=3250,
        avg_cls=0.175,
        avg_inp=350,
        bounce_rate=0.5,
        avg_engagement_time=100,
        conversion_rate=0.01,
    ),
]


def seed_inventory(session, *, with_performance: bool = False) -> None:
    seed_sites(session)
    for path, html, analysis in INVENTORY_PAGES:
        upsert_page(session, path, html, site_id="wknd")
        if analysis is not None:
            apply_page_analysis(session, path, analysis)
    if with_performance:
        upsert_performance_samples(session, PERFORMANCE_SAMPLES)


@pytest.fixture
def test_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    init_test_db(tmp_path, monkeypatch)


@pytest.fixture
def seeded_db(test_db) -> None:
    with get_session() as session:
        seed_inventory(session)


@pytest.fixture
def scored_db(test_db) -> None:
    from co_backend.scoring import identify_patterns, recalculate_page_scores

    with get_session() as session:
        seed_inventory(session, with_performance=True)
        recalculate_page_scores(session)
        identify_patterns(session)


@pytest.fixture
def client(test_db) -> TestClient:
    """
    A TestClient over a freshly built app (picks up per-test env vars).
    """
    from co_backend.api import create_app

    return TestClient(create_app())
