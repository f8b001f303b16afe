from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from .models import FUNNEL_STAGES, Page, check_choice

PRIORITY_HIGH = "high"
PRIORITY_MEDIUM = "medium"

_STAGE_RECOMMENDATIONS = {
    "awareness": "Create an inspirational magazine article about {topic} to attract new audiences",
    "consideration": "Develop detailed {topic} adventure pages with trip information",
    "decision": "Add comparison guides or booking support content for {topic}",
}


@dataclass(frozen=True)
class ContentGap:
    topic: str
    total_pages: int
    coverage: Dict[str, int]
    missing_stages: List[str] = field(default_factory=list)
    priority: str = PRIORITY_MEDIUM
    recommendation: str = ""


def gap_priority(missing_stages: List[str]) -> str:
    return PRIORITY_HIGH if len(missing_stages) >= 2 else PRIORITY_MEDIUM


def gap_recommendation(topic: str, missing_stages: List[str]) -> str:
    return ". ".join(
        _STAGE_RECOMMENDATIONS[stage].format(topic=topic) for stage in missing_stages
    )


def _stage_count(stage: str):
    return func.sum(case((Page.funnel_stage == stage, 1), else_=0))


def find_content_gaps(
    session: Session,
    *,
    topic: Optional[str] = None,
    funnel_stage: Optional[str] = None,
) -> List[ContentGap]:
    """
    Report topics lacking pages at one or more funnel stages.

    Only pages with a primary topic take part. With ``funnel_stage`` set, a
    topic is reported only when that particular stage is empty. High priority
    gaps (two or more stages missing) are listed first.
    """
    check_choice("funnel_stage", funnel_stage, FUNNEL_STAGES)

    query = session.query(
        Page.primary_topic,
        func.count(Page.path),
        *[_stage_count(stage) for stage in FUNNEL_STAGES],
    ).filter(Page.primary_topic.isnot(None))
    if topic:
        query = query.filter(Page.primary_topic == topic)
    rows = query.group_by(Page.primary_topic).all()

    gaps: List[ContentGap] = []
    for row_topic, total, *stage_counts in rows:
        coverage = {
            stage: int(count or 0) for stage, count in zip(FUNNEL_STAGES, stage_counts)
        }
        missing = [stage for stage in FUNNEL_STAGES if coverage[stage] == 0]
        if not missing:
            continue
        if funnel_stage and funnel_stage not in missing:
            continue
        gaps.append(
            ContentGap(
                topic=row_topic,
                total_pages=int(total),
                coverage=coverage,
                missing_stages=missing,
                priority=gap_priority(missing),
                recommendation=gap_recommendation(row_topic, missing),
            )
        )

    gaps.sort(
        key=lambda gap: (
            gap.priority != PRIORITY_HIGH,
            -len(gap.missing_stages),
            gap.topic,
        )
    )
    return gaps


__all__ = [
    "ContentGap",
    "PRIORITY_HIGH",
    "PRIORITY_MEDIUM",
    "find_content_gaps",
    "gap_priority",
    "gap_recommendation",
]
