from __future__ import annotations

import pytest

from co_backend.briefs import BriefRequest, build_content_brief, key_elements, title_patterns
from co_backend.db import get_session
from co_backend.errors import ValidationError


def test_title_patterns_fall_back_to_article() -> None:
    assert title_patterns("skiing", "adventure", "WKND") == [
        "Skiing Adventure in [Location]",
        "[Location] Skiing Experience",
        "Ultimate Skiing Trip",
    ]
    assert title_patterns("skiing", "support", "WKND") == title_patterns(
        "skiing", "article", "WKND"
    )
    assert title_patterns("skiing", "landing", "Acme")[1] == "Skiing Experiences with Acme"


def test_key_elements_fall_back_to_article_consideration() -> None:
    assert key_elements("adventure", "decision") == [
        "Pricing",
        "Booking form",
        "FAQ",
        "Reviews",
        "Cancellation policy",
    ]
    assert key_elements("landing", "awareness") == key_elements("article", "consideration")


def test_brief_for_topic_without_pages(test_db) -> None:
    with get_session() as session:
        brief = build_content_brief(
            session, BriefRequest(topic="surfing", content_type="adventure")
        )

    assert brief.funnel_stage == "consideration"
    assert brief.target_audience == "adventure travelers"
    assert brief.context["existing_count"] == 0
    assert brief.context["existing_content"] == []
    assert brief.context["related_topics"] == []
    assert brief.recommendations["internal_links"] == []
    assert brief.recommendations["seo_keywords"] == ["surfing"]

    text = brief.brief_text
    assert text.startswith("## Content Brief: Surfing Adventure")
    assert "- Existing surfing content: 0 pages" in text
    assert "- Related entities: None identified" in text
    assert "- Known audiences: adventure travelers" in text
    assert "1. Align with WKND brand voice (adventure travel and lifestyle)" in text
    assert "- Engagement with content" in text


def test_brief_uses_existing_inventory(seeded_db) -> None:
    with get_session() as session:
        brief = build_content_brief(session, BriefRequest(topic="skiing", content_type="article"))

    # Existing pages come in funnel order: awareness before consideration.
    assert [p["path"] for p in brief.context["existing_content"]] == [
        "/magazine/skiing-guide",
        "/adventures/ski-touring",
    ]
    assert brief.context["related_topics"] == ["backcountry", "snowboarding", "winter travel"]
    assert brief.context["known_audiences"] == ["ski enthusiasts", "families"]
    assert brief.context["entities"] == [
        {"name": "Ski Touring", "type": "activity"},
        {"name": "Utah", "type": "location"},
    ]

    assert brief.target_audience == "ski enthusiasts"
    assert brief.recommendations["seo_keywords"] == [
        "skiing",
        "backcountry",
        "snowboarding",
        "winter travel",
    ]
    assert brief.recommendations["internal_links"][0] == {
        "path": "/magazine/skiing-guide",
        "title": "The Skiing Guide",
        "context": "Link to awareness-stage content",
    }
    assert "- Related entities: Ski Touring, Utah" in brief.brief_text


def test_brief_honours_explicit_stage_and_audience(seeded_db, monkeypatch) -> None:
    monkeypatch.setenv("CO_BRAND_NAME", "Acme Trips")
    with get_session() as session:
        brief = build_content_brief(
            session,
            BriefRequest(
                topic="cycling",
                content_type="adventure",
                funnel_stage="decision",
                target_audience="families",
            ),
        )

    assert brief.target_audience == "families"
    assert brief.recommendations["key_elements"][0] == "Pricing"
    assert "1. Align with Acme Trips brand voice" in brief.brief_text
    assert "- Engagement with booking CTAs" in brief.brief_text


@pytest.mark.parametrize(
    "request_kwargs",
    [
        {"content_type": "article"},
        {"topic": "skiing"},
        {"topic": "   ", "content_type": "article"},
    ],
)
def test_brief_requires_topic_and_content_type(test_db, request_kwargs) -> None:
    with get_session() as session:
        with pytest.raises(ValidationError, match="topic and content_type are required"):
            build_content_brief(session, BriefRequest(**request_kwargs))


def test_brief_rejects_unknown_enum_values(test_db) -> None:
    with get_session() as session:
        with pytest.raises(ValidationError):
            build_content_brief(session, BriefRequest(topic="skiing", content_type="blog"))
        with pytest.raises(ValidationError):
            build_content_brief(
                session,
                BriefRequest(topic="skiing", content_type="article", funnel_stage="loyalty"),
            )
