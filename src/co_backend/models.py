from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
    text,
)
from sqlalchemy.orm import Mapped, deferred, mapped_column, relationship
from sqlalchemy.sql import func

from .db import Base
from .errors import ValidationError

CONTENT_TYPES = ("adventure", "article", "landing", "listing", "support")

# Funnel order matters: gap listings report missing stages in this order.
FUNNEL_STAGES = ("awareness", "consideration", "decision")


def check_choice(name: str, value: Optional[str], choices: tuple[str, ...]) -> None:
    """
    Reject a value outside one of the enumerations above. None means "not given".
    """
    if value is not None and value not in choices:
        raise ValidationError(f"{name} must be one of: {', '.join(choices)}")


class TimestampMixin:
    """
    Common created_at / updated_at columns.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class Site(TimestampMixin, Base):
    """
    An onboarded content source (one CMS repository / domain).
    """

    __tablename__ = "sites"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    domain: Mapped[Optional[str]] = mapped_column(String(255))

    # Crawl source descriptor (document-authoring org/repo).
    source_org: Mapped[Optional[str]] = mapped_column(String(255))
    source_repo: Mapped[Optional[str]] = mapped_column(String(255))

    # Cached after each crawl; live counts are computed on read.
    page_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
    )

    pages: Mapped[List["Page"]] = relationship(back_populates="site")

    def __repr__(self) -> str:
        return f"<Site id={self.id!r} name={self.name!r}>"


class Page(TimestampMixin, Base):
    """
    A crawled page, keyed by its site-relative path.

    Classification fields stay NULL until the analysis step has run.
    """

    __tablename__ = "pages"

    path: Mapped[str] = mapped_column(String(1000), primary_key=True)
    site_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("sites.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    title: Mapped[Optional[str]] = mapped_column(Text)
    content_type: Mapped[Optional[str]] = mapped_column(String(32), index=True)
    primary_topic: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    funnel_stage: Mapped[Optional[str]] = mapped_column(String(32), index=True)
    summary: Mapped[Optional[str]] = mapped_column(Text)
    word_count: Mapped[Optional[int]] = mapped_column(Integer)

    raw_html: Mapped[Optional[str]] = deferred(mapped_column(Text))
    last_crawled: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    site: Mapped[Optional[Site]] = relationship(back_populates="pages")
    topics: Mapped[List["PageTopic"]] = relationship(
        back_populates="page",
        cascade="all, delete-orphan",
    )
    audiences: Mapped[List["PageAudience"]] = relationship(
        back_populates="page",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Page path={self.path!r} topic={self.primary_topic!r}>"


class PageTopic(Base):
    """
    Topic label attached to a page. Exactly one row per classified page has
    is_primary set, mirroring Page.primary_topic.
    """

    __tablename__ = "page_topics"

    page_path: Mapped[str] = mapped_column(
        ForeignKey("pages.path", ondelete="CASCADE"),
        primary_key=True,
    )
    topic: Mapped[str] = mapped_column(String(255), primary_key=True, index=True)
    is_primary: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=false(),
    )

    page: Mapped[Page] = relationship(back_populates="topics")


class Entity(TimestampMixin, Base):
    """
    Named thing mentioned by pages (location, activity, feature, brand).
    """

    __tablename__ = "entities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    type: Mapped[Optional[str]] = mapped_column(String(64))

    def __repr__(self) -> str:
        return f"<Entity id={self.id!r} name={self.name!r} type={self.type!r}>"


class PageEntity(Base):
    __tablename__ = "page_entities"

    page_path: Mapped[str] = mapped_column(
        ForeignKey("pages.path", ondelete="CASCADE"),
        primary_key=True,
    )
    entity_id: Mapped[int] = mapped_column(
        ForeignKey("entities.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )

    entity: Mapped[Entity] = relationship(lazy="joined")


class PageAudience(Base):
    __tablename__ = "page_audiences"

    page_path: Mapped[str] = mapped_column(
        ForeignKey("pages.path", ondelete="CASCADE"),
        primary_key=True,
    )
    audience: Mapped[str] = mapped_column(String(255), primary_key=True, index=True)

    page: Mapped[Page] = relationship(back_populates="audiences")


class PageMessage(Base):
    """
    Key message extracted by the classification step.
    """

    __tablename__ = "page_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    page_path: Mapped[str] = mapped_column(
        ForeignKey("pages.path", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)


class PagePerformance(Base):
    """
    One day of raw real-user metrics for a page.
    """

    __tablename__ = "page_performance"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    page_path: Mapped[str] = mapped_column(String(1000), nullable=False, index=True)
    sample_date: Mapped[date] = mapped_column("date", Date, nullable=False)

    pageviews: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    visits: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))

    # Core Web Vitals averages: LCP/INP in milliseconds, CLS unitless.
    avg_lcp: Mapped[Optional[float]] = mapped_column(Float)
    avg_cls: Mapped[Optional[float]] = mapped_column(Float)
    avg_inp: Mapped[Optional[float]] = mapped_column(Float)

    bounce_rate: Mapped[Optional[float]] = mapped_column(Float)
    avg_engagement_time: Mapped[Optional[float]] = mapped_column(Float)
    conversion_rate: Mapped[Optional[float]] = mapped_column(Float)

    __table_args__ = (
        UniqueConstraint(
            "page_path",
            "date",
            name="uq_page_performance_path_date",
        ),
    )

    def __repr__(self) -> str:
        return f"<PagePerformance path={self.page_path!r} date={self.sample_date!r}>"


class PageScore(Base):
    """
    Derived 0-100 scores for a page (conversion is unbounded above).
    Replaced wholesale by each scoring run.
    """

    __tablename__ = "page_scores"

    page_path: Mapped[str] = mapped_column(String(1000), primary_key=True)
    performance_score: Mapped[float] = mapped_column(Float, nullable=False)
    engagement_score: Mapped[float] = mapped_column(Float, nullable=False)
    conversion_score: Mapped[float] = mapped_column(Float, nullable=False)
    overall_score: Mapped[float] = mapped_column(Float, nullable=False, index=True)
    last_calculated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<PageScore path={self.page_path!r} overall={self.overall_score!r}>"


class PerformancePattern(Base):
    """
    Aggregate score per topic / content type / funnel stage, rebuilt on every
    scoring run.
    """

    __tablename__ = "performance_patterns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pattern_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    pattern_value: Mapped[Optional[str]] = mapped_column(String(255))
    avg_performance: Mapped[float] = mapped_column(Float, nullable=False)
    sample_size: Mapped[int] = mapped_column(Integer, nullable=False)
    insight: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class CrawlLog(Base):
    __tablename__ = "crawl_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    site_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    pages_crawled: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        server_default=text("'running'"),
    )


class SkillUsageEvent(Base):
    """
    One assistant tool invocation reported by the plugin (anonymous).
    """

    __tablename__ = "skill_usage_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id_hash: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    tool_name: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    tool_category: Mapped[str] = mapped_column(String(64), nullable=False)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    error_type: Mapped[Optional[str]] = mapped_column(String(128))
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    # "metadata" is reserved on declarative classes.
    event_metadata: Mapped[Optional[str]] = mapped_column("metadata", Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
