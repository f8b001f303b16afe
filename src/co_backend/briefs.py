"""
Content brief assembly.

A brief combines what the inventory already knows about a topic (pages,
secondary topics, audiences, entities) with static recommendation tables
keyed by content type and funnel stage. No model calls are involved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from .config import BrandConfig, get_brand_config
from .errors import ValidationError
from .models import (
    CONTENT_TYPES,
    FUNNEL_STAGES,
    Entity,
    Page,
    PageAudience,
    PageEntity,
    PageTopic,
    check_choice,
)

DEFAULT_FUNNEL_STAGE = "consideration"
RELATED_TOPICS_LIMIT = 5
INTERNAL_LINKS_LIMIT = 3
SEO_RELATED_TOPICS_LIMIT = 3
BRIEF_ENTITY_MENTIONS = 5

_TITLE_PATTERNS: Dict[str, List[str]] = {
    "adventure": [
        "{Topic} Adventure in [Location]",
        "[Location] {Topic} Experience",
        "Ultimate {Topic} Trip",
    ],
    "article": [
        "The Complete Guide to {Topic}",
        "Why {Topic} Should Be Your Next Adventure",
        "{Topic}: What You Need to Know",
    ],
    "landing": [
        "Explore {Topic} Adventures",
        "{Topic} Experiences with {brand}",
    ],
}

_KEY_ELEMENTS: Dict[str, Dict[str, List[str]]] = {
    "adventure": {
        "awareness": ["Inspiring imagery", "Destination highlights", "Activity overview"],
        "consideration": [
            "Detailed itinerary",
            "What's included",
            "Difficulty level",
            "Best time to visit",
        ],
        "decision": ["Pricing", "Booking form", "FAQ", "Reviews", "Cancellation policy"],
    },
    "article": {
        "awareness": ["Compelling headline", "Hero image", "Story hook", "Social sharing"],
        "consideration": [
            "Expert tips",
            "Detailed information",
            "Related adventures",
            "Author bio",
        ],
        "decision": ["Clear CTA", "Related bookable trips", "Newsletter signup"],
    },
}


@dataclass(frozen=True)
class BriefRequest:
    topic: Optional[str] = None
    content_type: Optional[str] = None
    funnel_stage: Optional[str] = None
    target_audience: Optional[str] = None

    def validate(self) -> None:
        if not (self.topic or "").strip() or not (self.content_type or "").strip():
            raise ValidationError("topic and content_type are required")
        check_choice("content_type", self.content_type, CONTENT_TYPES)
        check_choice("funnel_stage", self.funnel_stage, FUNNEL_STAGES)


@dataclass(frozen=True)
class ContentBrief:
    topic: str
    content_type: str
    funnel_stage: str
    target_audience: str
    context: Dict[str, Any] = field(default_factory=dict)
    recommendations: Dict[str, Any] = field(default_factory=dict)
    brief_text: str = ""


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


def title_patterns(topic: str, content_type: str, brand: str) -> List[str]:
    templates = _TITLE_PATTERNS.get(content_type, _TITLE_PATTERNS["article"])
    return [t.format(Topic=_capitalize(topic), brand=brand) for t in templates]


def key_elements(content_type: str, funnel_stage: str) -> List[str]:
    by_stage = _KEY_ELEMENTS.get(content_type)
    if by_stage is None or funnel_stage not in by_stage:
        return list(_KEY_ELEMENTS["article"]["consideration"])
    return list(by_stage[funnel_stage])


def render_brief_text(
    *,
    topic: str,
    content_type: str,
    funnel_stage: str,
    audience: str,
    existing_count: int,
    entity_names: List[str],
    known_audiences: List[str],
    brand: BrandConfig,
) -> str:
    entities_line = ", ".join(entity_names[:BRIEF_ENTITY_MENTIONS]) or "None identified"
    audiences_line = ", ".join(known_audiences) or audience
    engagement_target = "booking CTAs" if funnel_stage == "decision" else "content"

    lines = [
        f"## Content Brief: {_capitalize(topic)} {_capitalize(content_type)}",
        "",
        "### Objective",
        f"Create {funnel_stage}-stage {content_type} content about {topic} targeting {audience}.",
        "",
        "### Context",
        f"- Existing {topic} content: {existing_count} pages",
        f"- Related entities: {entities_line}",
        f"- Known audiences: {audiences_line}",
        "",
        "### Requirements",
        f"1. Align with {brand.name} brand voice ({brand.domain.lower()})",
        f"2. Include relevant internal links to existing {topic} content",
        f"3. Optimize for {funnel_stage} stage of customer journey",
        f"4. Target primary audience: {audience}",
        "",
        "### Success Metrics",
        f"- Engagement with {engagement_target}",
        "- Internal link clicks to related adventures",
        f"- Time on page appropriate for {content_type} content",
    ]
    return "\n".join(lines)


def build_content_brief(session: Session, request: BriefRequest) -> ContentBrief:
    """
    Assemble a brief for new content on ``request.topic``.

    Missing topic or content_type raises ValidationError; a topic with no
    existing pages still produces a full brief.
    """
    request.validate()
    topic = request.topic.strip()
    content_type = request.content_type.strip()
    funnel_stage = request.funnel_stage or DEFAULT_FUNNEL_STAGE
    brand = get_brand_config()

    topic_paths = session.query(Page.path).filter(Page.primary_topic == topic)

    stage_order = case(
        *[(Page.funnel_stage == stage, idx) for idx, stage in enumerate(FUNNEL_STAGES)],
        else_=len(FUNNEL_STAGES),
    )
    existing = [
        dict(row._mapping)
        for row in session.query(
            Page.path, Page.title, Page.content_type, Page.funnel_stage, Page.summary
        )
        .filter(Page.primary_topic == topic)
        .order_by(stage_order, Page.path)
        .all()
    ]

    related_topics = [
        t
        for (t,) in session.query(PageTopic.topic)
        .filter(PageTopic.page_path.in_(topic_paths), PageTopic.topic != topic)
        .distinct()
        .order_by(PageTopic.topic)
        .limit(RELATED_TOPICS_LIMIT)
        .all()
    ]

    audience_count = func.count(PageAudience.page_path)
    known_audiences = [
        audience
        for audience, _ in session.query(PageAudience.audience, audience_count)
        .filter(PageAudience.page_path.in_(topic_paths))
        .group_by(PageAudience.audience)
        .order_by(audience_count.desc(), PageAudience.audience)
        .all()
    ]

    entities = [
        {"name": name, "type": entity_type}
        for name, entity_type in session.query(Entity.name, Entity.type)
        .join(PageEntity, PageEntity.entity_id == Entity.id)
        .filter(PageEntity.page_path.in_(topic_paths))
        .distinct()
        .order_by(Entity.name)
        .all()
    ]

    audience = request.target_audience or (
        known_audiences[0] if known_audiences else brand.default_audience
    )

    internal_links = [
        {
            "path": page["path"],
            "title": page["title"],
            "context": f"Link to {page['funnel_stage']}-stage content",
        }
        for page in existing[:INTERNAL_LINKS_LIMIT]
    ]

    return ContentBrief(
        topic=topic,
        content_type=content_type,
        funnel_stage=funnel_stage,
        target_audience=audience,
        context={
            "existing_content": existing,
            "existing_count": len(existing),
            "related_topics": related_topics,
            "known_audiences": known_audiences,
            "entities": entities,
        },
        recommendations={
            "title_patterns": title_patterns(topic, content_type, brand.name),
            "key_elements": key_elements(content_type, funnel_stage),
            "internal_links": internal_links,
            "seo_keywords": [topic, *related_topics[:SEO_RELATED_TOPICS_LIMIT]],
        },
        brief_text=render_brief_text(
            topic=topic,
            content_type=content_type,
            funnel_stage=funnel_stage,
            audience=audience,
            existing_count=len(existing),
            entity_names=[e["name"] for e in entities],
            known_audiences=known_audiences,
            brand=brand,
        ),
    )


__all__ = [
    "BriefRequest",
    "ContentBrief",
    "DEFAULT_FUNNEL_STAGE",
    "build_content_brief",
    "key_elements",
    "render_brief_text",
    "title_patterns",
]
