from __future__ import annotations

import pytest

from co_backend.db import get_session
from co_backend.errors import NotFoundError, ValidationError
from co_backend.performance import (
    analyze_scores,
    get_page_performance,
    get_performance_patterns,
    get_top_performers,
    pattern_recommendations,
)


def test_analyze_scores_without_data() -> None:
    assert analyze_scores(None) == {
        "status": "No performance data available",
        "strengths": [],
        "weaknesses": [],
        "recommendations": [],
    }


def test_analyze_scores_flags_weaknesses() -> None:
    analysis = analyze_scores(
        {"overall": 50.0, "performance": 60.0, "engagement": 40.0, "conversion": 2.0}
    )
    assert analysis["status"] == "Average performance"
    assert analysis["strengths"] == []
    assert analysis["weaknesses"] == [
        "Page speed optimization needed",
        "Improve content engagement",
        "Add clearer conversion paths",
    ]
    assert analysis["recommendations"] == [
        "Slow page load (optimize images, reduce JS)",
        "Low engagement (improve content relevance)",
        "Low conversions (add clearer CTAs)",
    ]
    assert analyze_scores(
        {"overall": 45.0, "performance": 75.0, "engagement": 60.0, "conversion": 6.0}
    ) == {
        "status": "Needs improvement",
        "strengths": [],
        "weaknesses": [],
        "recommendations": [],
    }


def test_page_performance_detail(scored_db) -> None:
    with get_session() as session:
        result = get_page_performance(session, "/adventures/ski-touring")

    assert result["page"]["title"] == "Ski Touring in Utah"
    assert [s["date"] for s in result["performance"]] == ["2025-06-02", "2025-06-01"]
    assert result["scores"]["overall"] == pytest.approx(69.0)
    assert result["analysis"]["status"] == "Performing well"
    assert result["analysis"]["strengths"] == [
        "Fast loading times",
        "Strong conversion performance",
    ]
    assert result["analysis"]["recommendations"] == []


def test_page_performance_for_unscored_page(scored_db) -> None:
    with get_session() as session:
        result = get_page_performance(session, "/about")

    assert result["performance"] == []
    assert result["scores"] is None
    assert result["analysis"]["status"] == "No performance data available"


def test_page_performance_unknown_path(scored_db) -> None:
    with get_session() as session:
        with pytest.raises(NotFoundError):
            get_page_performance(session, "/missing")


def test_page_performance_overview_without_path(scored_db) -> None:
    with get_session() as session:
        result = get_page_performance(session)

    rows = {(r["content_type"], r["funnel_stage"]): r for r in result["overview"]}
    assert result["summary"] == "Performance overview by content type and funnel stage"

    decision = rows[("adventure", "decision")]
    assert decision["page_count"] == 1
    assert decision["avg_score"] == pytest.approx(81.0)

    # Three awareness articles, only one of which has a score row.
    awareness = rows[("article", "awareness")]
    assert awareness["page_count"] == 3
    assert awareness["avg_score"] == pytest.approx(38.0)

    assert rows[("support", "decision")]["avg_score"] is None


def test_top_performers_and_insights(scored_db) -> None:
    with get_session() as session:
        result = get_top_performers(session, limit=2)

    assert result["metric"] == "overall"
    assert [p["path"] for p in result["top_performers"]] == [
        "/adventures/cycling-tuscany",
        "/adventures/ski-touring",
    ]
    assert [p["path"] for p in result["needs_improvement"]] == [
        "/magazine/skiing-guide",
        "/adventures/ski-touring",
    ]
    assert result["insights"] == [
        "Top performers concentrated in: cycling, skiing",
        "Best performing content type: adventure",
    ]


def test_top_performers_by_other_metric(scored_db) -> None:
    with get_session() as session:
        result = get_top_performers(session, metric="performance", limit=1)

    assert result["top_performers"][0]["path"] == "/adventures/ski-touring"
    assert result["needs_improvement"][0]["path"] == "/adventures/cycling-tuscany"
    assert result["insights"][-1] == "Topics needing optimization: cycling"


def test_top_performers_limit_beyond_integer_range(scored_db) -> None:
    with get_session() as session:
        result = get_top_performers(session, limit=2**63)

    assert len(result["top_performers"]) == 3
    assert len(result["needs_improvement"]) == 3


@pytest.mark.parametrize("kwargs", [{"metric": "pageviews; DROP TABLE pages"}, {"limit": 0}])
def test_top_performers_validates(scored_db, kwargs) -> None:
    with get_session() as session:
        with pytest.raises(ValidationError):
            get_top_performers(session, **kwargs)


def test_performance_patterns_grouped(scored_db) -> None:
    with get_session() as session:
        result = get_performance_patterns(session)

    patterns = result["patterns"]
    assert set(patterns) == {
        "topic_performance",
        "content_type_performance",
        "funnel_stage_performance",
    }
    assert [p["value"] for p in patterns["topic_performance"]] == ["cycling", "skiing"]
    assert [p["value"] for p in patterns["funnel_stage_performance"]] == [
        "decision",
        "consideration",
        "awareness",
    ]
    assert result["recommendations"] == [
        "Replicate content patterns from cycling (score: 81)",
        "Focus on adventure content type for best results",
    ]


def test_performance_patterns_filtered_by_type(scored_db) -> None:
    with get_session() as session:
        result = get_performance_patterns(session, "content_type_performance")

    assert list(result["patterns"]) == ["content_type_performance"]
    assert result["patterns"]["content_type_performance"][0] == {
        "value": "adventure",
        "score": pytest.approx(75.0),
        "sample_size": 2,
        "insight": "adventure content averages 75 score",
    }
    assert result["recommendations"] == ["Focus on adventure content type for best results"]


def test_performance_patterns_rejects_unknown_type(scored_db) -> None:
    with get_session() as session:
        with pytest.raises(ValidationError, match="type must be one of"):
            get_performance_patterns(session, "audience_performance")


def test_pattern_recommendations_flag_weak_decision_stage() -> None:
    recs = pattern_recommendations(
        {
            "topic_performance": [{"value": "hiking", "score": 60.0}],
            "funnel_stage_performance": [
                {"value": "awareness", "score": 70.0},
                {"value": "decision", "score": 40.0},
            ],
        }
    )
    assert recs == ["Decision-stage content needs optimization for conversions"]
