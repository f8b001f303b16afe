"""
Read-side views over the scoring job's output.

Nothing here recomputes scores; page_scores and performance_patterns are
rebuilt by ``co-backend recompute-scores``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .errors import NotFoundError, ValidationError
from .inventory import SQL_LIMIT_MAX
from .models import Page, PagePerformance, PageScore, PerformancePattern
from .scoring import PATTERN_CONTENT_TYPE, PATTERN_FUNNEL_STAGE, PATTERN_TOPIC, round_half_up

RECENT_SAMPLES_LIMIT = 30
DEFAULT_TOP_LIMIT = 10

SCORE_COLUMNS = {
    "overall": PageScore.overall_score,
    "performance": PageScore.performance_score,
    "engagement": PageScore.engagement_score,
    "conversion": PageScore.conversion_score,
}

PATTERN_TYPES = (PATTERN_TOPIC, PATTERN_CONTENT_TYPE, PATTERN_FUNNEL_STAGE)

# Score bands used when reading a single page's results.
SLOW_PERFORMANCE = 70.0
FAST_PERFORMANCE = 80.0
LOW_ENGAGEMENT = 55.0
GOOD_ENGAGEMENT = 70.0
LOW_CONVERSION = 5.0
STRONG_CONVERSION = 8.0
WELL_PERFORMING_OVERALL = 55.0
AVERAGE_OVERALL = 45.0
REPLICATE_TOPIC_SCORE = 70.0
DECISION_STAGE_FLOOR = 50.0


def _page_descriptor(page: Page) -> Dict[str, Any]:
    return {
        "path": page.path,
        "title": page.title,
        "primary_topic": page.primary_topic,
        "funnel_stage": page.funnel_stage,
        "content_type": page.content_type,
    }


def _sample_dict(sample: PagePerformance) -> Dict[str, Any]:
    return {
        "date": sample.sample_date.isoformat(),
        "pageviews": sample.pageviews,
        "visits": sample.visits,
        "avg_lcp": sample.avg_lcp,
        "avg_cls": sample.avg_cls,
        "avg_inp": sample.avg_inp,
        "bounce_rate": sample.bounce_rate,
        "avg_engagement_time": sample.avg_engagement_time,
        "conversion_rate": sample.conversion_rate,
    }


def analyze_scores(scores: Optional[Dict[str, float]]) -> Dict[str, Any]:
    """
    Turn a page's score set into a status line with strengths, weaknesses
    and concrete recommendations.
    """
    if not scores:
        return {
            "status": "No performance data available",
            "strengths": [],
            "weaknesses": [],
            "recommendations": [],
        }

    overall = scores["overall"]
    if overall > WELL_PERFORMING_OVERALL:
        status = "Performing well"
    elif overall > AVERAGE_OVERALL:
        status = "Average performance"
    else:
        status = "Needs improvement"

    strengths: List[str] = []
    weaknesses: List[str] = []
    recommendations: List[str] = []

    if scores["performance"] > FAST_PERFORMANCE:
        strengths.append("Fast loading times")
    elif scores["performance"] < SLOW_PERFORMANCE:
        weaknesses.append("Page speed optimization needed")
        recommendations.append("Slow page load (optimize images, reduce JS)")

    if scores["engagement"] > GOOD_ENGAGEMENT:
        strengths.append("Good user engagement")
    elif scores["engagement"] < LOW_ENGAGEMENT:
        weaknesses.append("Improve content engagement")
        recommendations.append("Low engagement (improve content relevance)")

    if scores["conversion"] > STRONG_CONVERSION:
        strengths.append("Strong conversion performance")
    elif scores["conversion"] < LOW_CONVERSION:
        weaknesses.append("Add clearer conversion paths")
        recommendations.append("Low conversions (add clearer CTAs)")

    return {
        "status": status,
        "strengths": strengths,
        "weaknesses": weaknesses,
        "recommendations": recommendations,
    }


def get_page_performance(session: Session, path: Optional[str] = None) -> Dict[str, Any]:
    """
    Detailed view for one page, or an overview by content type and funnel
    stage when no path is given.
    """
    if not path:
        return get_performance_overview(session)

    page = session.get(Page, path)
    if page is None:
        raise NotFoundError("Page not found")

    samples = (
        session.query(PagePerformance)
        .filter(PagePerformance.page_path == path)
        .order_by(PagePerformance.sample_date.desc())
        .limit(RECENT_SAMPLES_LIMIT)
        .all()
    )

    score_row = session.get(PageScore, path)
    scores = None
    if score_row is not None:
        scores = {
            "performance": score_row.performance_score,
            "engagement": score_row.engagement_score,
            "conversion": score_row.conversion_score,
            "overall": score_row.overall_score,
        }

    return {
        "page": _page_descriptor(page),
        "performance": [_sample_dict(s) for s in samples],
        "scores": scores,
        "analysis": analyze_scores(scores),
    }


def _avg(value) -> Optional[float]:
    return float(value) if value is not None else None


def get_performance_overview(session: Session) -> Dict[str, Any]:
    rows = (
        session.query(
            Page.content_type,
            Page.funnel_stage,
            func.count(func.distinct(Page.path)),
            func.avg(PageScore.overall_score),
            func.avg(PageScore.performance_score),
            func.avg(PageScore.engagement_score),
            func.avg(PageScore.conversion_score),
        )
        .outerjoin(PageScore, PageScore.page_path == Page.path)
        .group_by(Page.content_type, Page.funnel_stage)
        .order_by(Page.content_type, Page.funnel_stage)
        .all()
    )
    return {
        "overview": [
            {
                "content_type": content_type,
                "funnel_stage": funnel_stage,
                "page_count": int(page_count),
                "avg_score": _avg(avg_score),
                "avg_performance": _avg(avg_perf),
                "avg_engagement": _avg(avg_engagement),
                "avg_conversion": _avg(avg_conversion),
            }
            for (
                content_type,
                funnel_stage,
                page_count,
                avg_score,
                avg_perf,
                avg_engagement,
                avg_conversion,
            ) in rows
        ],
        "summary": "Performance overview by content type and funnel stage",
    }


def _unique(values: List[Any]) -> List[Any]:
    seen: List[Any] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def performance_insights(
    top: List[Dict[str, Any]],
    bottom: List[Dict[str, Any]],
) -> List[str]:
    insights: List[str] = []
    top_topics = _unique([p["primary_topic"] for p in top])
    top_types = _unique([p["content_type"] for p in top])

    if top and len(top_topics) <= 2:
        insights.append(
            "Top performers concentrated in: " + ", ".join(str(t) for t in top_topics)
        )
    if top and len(top_types) <= 2:
        insights.append("Best performing content type: " + ", ".join(str(t) for t in top_types))

    needs_work = [t for t in _unique([p["primary_topic"] for p in bottom]) if t not in top_topics]
    if needs_work:
        insights.append("Topics needing optimization: " + ", ".join(str(t) for t in needs_work))

    return insights


def get_top_performers(
    session: Session,
    metric: str = "overall",
    limit: int = DEFAULT_TOP_LIMIT,
) -> Dict[str, Any]:
    """
    Rank scored pages by one score column.

    ``metric`` selects from a fixed column mapping; unknown names are
    rejected rather than interpolated into SQL.
    """
    column = SCORE_COLUMNS.get(metric)
    if column is None:
        raise ValidationError(f"metric must be one of: {', '.join(SCORE_COLUMNS)}")
    if limit < 1:
        raise ValidationError("limit must be a positive integer")
    bound = min(limit, SQL_LIMIT_MAX)

    base = session.query(
        Page.path,
        Page.title,
        Page.primary_topic,
        Page.funnel_stage,
        Page.content_type,
        PageScore.overall_score,
        PageScore.performance_score,
        PageScore.engagement_score,
        PageScore.conversion_score,
    ).join(PageScore, PageScore.page_path == Page.path)

    top = [dict(r._mapping) for r in base.order_by(column.desc(), Page.path).limit(bound).all()]
    bottom = [dict(r._mapping) for r in base.order_by(column.asc(), Page.path).limit(bound).all()]

    return {
        "metric": metric,
        "top_performers": top,
        "needs_improvement": bottom,
        "insights": performance_insights(top, bottom),
    }


def pattern_recommendations(grouped: Dict[str, List[Dict[str, Any]]]) -> List[str]:
    recs: List[str] = []

    topics = grouped.get(PATTERN_TOPIC) or []
    if topics and topics[0]["score"] > REPLICATE_TOPIC_SCORE:
        best = topics[0]
        recs.append(
            f"Replicate content patterns from {best['value']} "
            f"(score: {round_half_up(best['score'])})"
        )

    types = grouped.get(PATTERN_CONTENT_TYPE) or []
    if types:
        recs.append(f"Focus on {types[0]['value']} content type for best results")

    for stage in grouped.get(PATTERN_FUNNEL_STAGE) or []:
        if stage["value"] == "decision":
            if stage["score"] < DECISION_STAGE_FLOOR:
                recs.append("Decision-stage content needs optimization for conversions")
            break

    return recs


def get_performance_patterns(
    session: Session,
    pattern_type: Optional[str] = None,
) -> Dict[str, Any]:
    if pattern_type and pattern_type not in PATTERN_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(PATTERN_TYPES)}")

    query = session.query(PerformancePattern)
    if pattern_type:
        query = query.filter(PerformancePattern.pattern_type == pattern_type)
    rows = query.order_by(
        PerformancePattern.avg_performance.desc(), PerformancePattern.id
    ).all()

    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for pattern in rows:
        grouped.setdefault(pattern.pattern_type, []).append(
            {
                "value": pattern.pattern_value,
                "score": pattern.avg_performance,
                "sample_size": pattern.sample_size,
                "insight": pattern.insight,
            }
        )

    return {
        "patterns": grouped,
        "recommendations": pattern_recommendations(grouped),
    }


__all__ = [
    "PATTERN_TYPES",
    "SCORE_COLUMNS",
    "analyze_scores",
    "get_page_performance",
    "get_performance_overview",
    "get_performance_patterns",
    "get_top_performers",
    "pattern_recommendations",
    "performance_insights",
]
