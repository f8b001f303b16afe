"""
Per-page performance scoring.

Scores are derived from the average of a page's daily real-user samples:

- performance: mean of LCP / CLS / INP sub-scores, each interpolated linearly
  between a "good" threshold (100) and a "poor" threshold (0);
- engagement: mean of the non-bounce percentage and engagement time (200s
  and above scores 100);
- conversion: conversion rate x 1000, deliberately left unclamped;
- overall: 0.3 performance + 0.4 engagement + 0.3 conversion.

Scoring runs as a batch job (``co-backend recompute-scores``), never at
request time.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .models import Page, PagePerformance, PageScore, PerformancePattern

logger = logging.getLogger("contentontology.scoring")

LCP_GOOD_MS = 2500.0
LCP_POOR_MS = 4000.0
CLS_GOOD = 0.1
CLS_POOR = 0.25
INP_GOOD_MS = 200.0
INP_POOR_MS = 500.0

PERFORMANCE_WEIGHT = 0.3
ENGAGEMENT_WEIGHT = 0.4
CONVERSION_WEIGHT = 0.3

CONVERSION_SCALE = 1000.0

PATTERN_TOPIC = "topic_performance"
PATTERN_CONTENT_TYPE = "content_type_performance"
PATTERN_FUNNEL_STAGE = "funnel_stage_performance"


@dataclass(frozen=True)
class MetricAggregate:
    """
    Averages of a page's raw samples. Any metric may be None when no sample
    reported it.
    """

    avg_lcp: Optional[float] = None
    avg_cls: Optional[float] = None
    avg_inp: Optional[float] = None
    bounce_rate: Optional[float] = None
    engagement_time: Optional[float] = None
    conversion_rate: Optional[float] = None


@dataclass(frozen=True)
class ScoreSet:
    performance: float
    engagement: float
    conversion: float
    overall: float


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (display rounding)."""
    return int(math.floor(value + 0.5))


def interpolate_score(value: float, good: float, poor: float) -> float:
    """
    Map a lower-is-better metric onto 0-100.

    ``value <= good`` scores 100, ``value >= poor`` scores 0, anything in
    between is interpolated linearly.
    """
    if value <= good:
        return 100.0
    if value >= poor:
        return 0.0
    score = 100.0 * (poor - value) / (poor - good)
    return max(0.0, min(100.0, score))


def _mean(values: Iterable[Optional[float]]) -> float:
    present = [v for v in values if v is not None]
    if not present:
        return 0.0
    return sum(present) / len(present)


def performance_score(
    lcp: Optional[float],
    cls: Optional[float],
    inp: Optional[float],
) -> float:
    """
    Core Web Vitals score. Metrics that were never reported are left out of
    the mean rather than counted as perfect.
    """
    return _mean(
        [
            interpolate_score(lcp, LCP_GOOD_MS, LCP_POOR_MS) if lcp is not None else None,
            interpolate_score(cls, CLS_GOOD, CLS_POOR) if cls is not None else None,
            interpolate_score(inp, INP_GOOD_MS, INP_POOR_MS) if inp is not None else None,
        ]
    )


def engagement_score(
    bounce_rate: Optional[float],
    engagement_time: Optional[float],
) -> float:
    bounce_part = (1.0 - bounce_rate) * 100.0 if bounce_rate is not None else None
    time_part = min(100.0, engagement_time / 2.0) if engagement_time is not None else None
    return _mean([bounce_part, time_part])


def conversion_score(conversion_rate: Optional[float]) -> float:
    # Not clamped: a 10%+ conversion rate scores above 100.
    if conversion_rate is None:
        return 0.0
    return conversion_rate * CONVERSION_SCALE


def overall_score(performance: float, engagement: float, conversion: float) -> float:
    return (
        performance * PERFORMANCE_WEIGHT
        + engagement * ENGAGEMENT_WEIGHT
        + conversion * CONVERSION_WEIGHT
    )


def compute_scores(aggregate: MetricAggregate) -> ScoreSet:
    perf = performance_score(aggregate.avg_lcp, aggregate.avg_cls, aggregate.avg_inp)
    engagement = engagement_score(aggregate.bounce_rate, aggregate.engagement_time)
    conversion = conversion_score(aggregate.conversion_rate)
    return ScoreSet(
        performance=perf,
        engagement=engagement,
        conversion=conversion,
        overall=overall_score(perf, engagement, conversion),
    )


def _as_float(value) -> Optional[float]:
    return float(value) if value is not None else None


def recalculate_page_scores(session: Session) -> int:
    """
    Rebuild the page_scores table from page_performance averages.

    Every existing score row is replaced; pages without samples end up with
    no row. Returns the number of pages scored.
    """
    aggregates = (
        session.query(
            PagePerformance.page_path,
            func.avg(PagePerformance.avg_lcp),
            func.avg(PagePerformance.avg_cls),
            func.avg(PagePerformance.avg_inp),
            func.avg(PagePerformance.bounce_rate),
            func.avg(PagePerformance.avg_engagement_time),
            func.avg(PagePerformance.conversion_rate),
        )
        .group_by(PagePerformance.page_path)
        .order_by(PagePerformance.page_path)
        .all()
    )

    deleted = session.query(PageScore).delete(synchronize_session=False) or 0
    logger.debug("Cleared %d existing page score row(s)", deleted)

    calculated_at = datetime.now(timezone.utc)
    rows = []
    for page_path, lcp, cls, inp, bounce, engagement_time, conversion in aggregates:
        scores = compute_scores(
            MetricAggregate(
                avg_lcp=_as_float(lcp),
                avg_cls=_as_float(cls),
                avg_inp=_as_float(inp),
                bounce_rate=_as_float(bounce),
                engagement_time=_as_float(engagement_time),
                conversion_rate=_as_float(conversion),
            )
        )
        rows.append(
            PageScore(
                page_path=page_path,
                performance_score=scores.performance,
                engagement_score=scores.engagement,
                conversion_score=scores.conversion,
                overall_score=scores.overall,
                last_calculated=calculated_at,
            )
        )

    if rows:
        session.add_all(rows)
        session.flush()

    logger.info("Calculated scores for %d page(s)", len(rows))
    return len(rows)


def _topic_insight(avg_score: float) -> str:
    if avg_score > 70:
        return "High-performing topic - replicate patterns"
    if avg_score < 40:
        return "Underperforming topic - needs optimization"
    return "Average performance - room for improvement"


def identify_patterns(session: Session) -> int:
    """
    Rebuild performance_patterns from the current page scores.

    Returns the number of pattern rows written.
    """
    session.query(PerformancePattern).delete(synchronize_session=False)

    avg_overall = func.avg(PageScore.overall_score)
    page_count = func.count(Page.path)
    patterns = []

    topic_rows = (
        session.query(Page.primary_topic, avg_overall, page_count)
        .join(PageScore, PageScore.page_path == Page.path)
        .filter(Page.primary_topic.isnot(None))
        .group_by(Page.primary_topic)
        .order_by(avg_overall.desc())
        .all()
    )
    for topic, avg_score, count in topic_rows:
        patterns.append(
            PerformancePattern(
                pattern_type=PATTERN_TOPIC,
                pattern_value=topic,
                avg_performance=float(avg_score),
                sample_size=int(count),
                insight=_topic_insight(float(avg_score)),
            )
        )

    type_rows = (
        session.query(Page.content_type, avg_overall, page_count)
        .join(PageScore, PageScore.page_path == Page.path)
        .group_by(Page.content_type)
        .order_by(avg_overall.desc())
        .all()
    )
    for content_type, avg_score, count in type_rows:
        patterns.append(
            PerformancePattern(
                pattern_type=PATTERN_CONTENT_TYPE,
                pattern_value=content_type,
                avg_performance=float(avg_score),
                sample_size=int(count),
                insight=f"{content_type} content averages {round_half_up(float(avg_score))} score",
            )
        )

    stage_rows = (
        session.query(
            Page.funnel_stage,
            avg_overall,
            func.avg(PageScore.conversion_score),
            page_count,
        )
        .join(PageScore, PageScore.page_path == Page.path)
        .group_by(Page.funnel_stage)
        .order_by(avg_overall.desc())
        .all()
    )
    for stage, avg_score, avg_conversion, count in stage_rows:
        patterns.append(
            PerformancePattern(
                pattern_type=PATTERN_FUNNEL_STAGE,
                pattern_value=stage,
                avg_performance=float(avg_score),
                sample_size=int(count),
                insight=(
                    f"{stage} stage: {round_half_up(float(avg_score))} overall, "
                    f"{round_half_up(float(avg_conversion))} conversion"
                ),
            )
        )

    if patterns:
        session.add_all(patterns)
        session.flush()

    logger.info("Stored %d performance pattern(s)", len(patterns))
    return len(patterns)


__all__ = [
    "MetricAggregate",
    "ScoreSet",
    "compute_scores",
    "conversion_score",
    "engagement_score",
    "identify_patterns",
    "interpolate_score",
    "overall_score",
    "performance_score",
    "recalculate_page_scores",
    "round_half_up",
]
