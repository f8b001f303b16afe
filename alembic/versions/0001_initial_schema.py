"""Initial schema for the content ontology.

Creates:
- sites
- pages, page_topics, entities, page_entities, page_audiences, page_messages
- page_performance, page_scores, performance_patterns
- crawl_log, skill_usage_events
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    # sites
    op.create_table(
        "sites",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("domain", sa.String(length=255)),
        sa.Column("source_org", sa.String(length=255)),
        sa.Column("source_repo", sa.String(length=255)),
        sa.Column("page_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
    )

    # pages
    op.create_table(
        "pages",
        sa.Column("path", sa.String(length=1000), primary_key=True),
        sa.Column(
            "site_id",
            sa.String(length=64),
            sa.ForeignKey("sites.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("title", sa.Text()),
        sa.Column("content_type", sa.String(length=32)),
        sa.Column("primary_topic", sa.String(length=255)),
        sa.Column("funnel_stage", sa.String(length=32)),
        sa.Column("summary", sa.Text()),
        sa.Column("word_count", sa.Integer()),
        sa.Column("raw_html", sa.Text()),
        sa.Column("last_crawled", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("ix_pages_site_id", "pages", ["site_id"])
    op.create_index("ix_pages_content_type", "pages", ["content_type"])
    op.create_index("ix_pages_primary_topic", "pages", ["primary_topic"])
    op.create_index("ix_pages_funnel_stage", "pages", ["funnel_stage"])

    # page_topics
    op.create_table(
        "page_topics",
        sa.Column(
            "page_path",
            sa.String(length=1000),
            sa.ForeignKey("pages.path", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("topic", sa.String(length=255), primary_key=True),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_page_topics_topic", "page_topics", ["topic"])

    # entities
    op.create_table(
        "entities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("type", sa.String(length=64)),
        *_timestamps(),
    )

    # page_entities
    op.create_table(
        "page_entities",
        sa.Column(
            "page_path",
            sa.String(length=1000),
            sa.ForeignKey("pages.path", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "entity_id",
            sa.Integer(),
            sa.ForeignKey("entities.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_index("ix_page_entities_entity_id", "page_entities", ["entity_id"])

    # page_audiences
    op.create_table(
        "page_audiences",
        sa.Column(
            "page_path",
            sa.String(length=1000),
            sa.ForeignKey("pages.path", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("audience", sa.String(length=255), primary_key=True),
    )
    op.create_index("ix_page_audiences_audience", "page_audiences", ["audience"])

    # page_messages
    op.create_table(
        "page_messages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "page_path",
            sa.String(length=1000),
            sa.ForeignKey("pages.path", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("message", sa.Text(), nullable=False),
    )
    op.create_index("ix_page_messages_page_path", "page_messages", ["page_path"])

    # page_performance (no FK: analytics may report paths before they are crawled)
    op.create_table(
        "page_performance",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("page_path", sa.String(length=1000), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("pageviews", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("visits", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("avg_lcp", sa.Float()),
        sa.Column("avg_cls", sa.Float()),
        sa.Column("avg_inp", sa.Float()),
        sa.Column("bounce_rate", sa.Float()),
        sa.Column("avg_engagement_time", sa.Float()),
        sa.Column("conversion_rate", sa.Float()),
        sa.UniqueConstraint("page_path", "date", name="uq_page_performance_path_date"),
    )
    op.create_index("ix_page_performance_page_path", "page_performance", ["page_path"])

    # page_scores
    op.create_table(
        "page_scores",
        sa.Column("page_path", sa.String(length=1000), primary_key=True),
        sa.Column("performance_score", sa.Float(), nullable=False),
        sa.Column("engagement_score", sa.Float(), nullable=False),
        sa.Column("conversion_score", sa.Float(), nullable=False),
        sa.Column("overall_score", sa.Float(), nullable=False),
        sa.Column("last_calculated", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_page_scores_overall_score", "page_scores", ["overall_score"])

    # performance_patterns
    op.create_table(
        "performance_patterns",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("pattern_type", sa.String(length=64), nullable=False),
        sa.Column("pattern_value", sa.String(length=255)),
        sa.Column("avg_performance", sa.Float(), nullable=False),
        sa.Column("sample_size", sa.Integer(), nullable=False),
        sa.Column("insight", sa.Text()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_performance_patterns_pattern_type", "performance_patterns", ["pattern_type"]
    )

    # crawl_log
    op.create_table(
        "crawl_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("site_id", sa.String(length=64)),
        sa.Column(
            "started_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("pages_crawled", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "status",
            sa.String(length=32),
            nullable=False,
            server_default=sa.text("'running'"),
        ),
    )
    op.create_index("ix_crawl_log_site_id", "crawl_log", ["site_id"])

    # skill_usage_events
    op.create_table(
        "skill_usage_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id_hash", sa.String(length=64), nullable=False),
        sa.Column("tool_name", sa.String(length=128), nullable=False),
        sa.Column("tool_category", sa.String(length=64), nullable=False),
        sa.Column("duration_ms", sa.Integer()),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("error_type", sa.String(length=128)),
        sa.Column("error_message", sa.Text()),
        sa.Column("metadata", sa.Text()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_skill_usage_events_user_id_hash", "skill_usage_events", ["user_id_hash"]
    )
    op.create_index("ix_skill_usage_events_tool_name", "skill_usage_events", ["tool_name"])


def downgrade() -> None:
    op.drop_index("ix_skill_usage_events_tool_name", table_name="skill_usage_events")
    op.drop_index("ix_skill_usage_events_user_id_hash", table_name="skill_usage_events")
    op.drop_table("skill_usage_events")
    op.drop_index("ix_crawl_log_site_id", table_name="crawl_log")
    op.drop_table("crawl_log")
    op.drop_index("ix_performance_patterns_pattern_type", table_name="performance_patterns")
    op.drop_table("performance_patterns")
    op.drop_index("ix_page_scores_overall_score", table_name="page_scores")
    op.drop_table("page_scores")
    op.drop_index("ix_page_performance_page_path", table_name="page_performance")
    op.drop_table("page_performance")
    op.drop_index("ix_page_messages_page_path", table_name="page_messages")
    op.drop_table("page_messages")
    op.drop_index("ix_page_audiences_audience", table_name="page_audiences")
    op.drop_table("page_audiences")
    op.drop_index("ix_page_entities_entity_id", table_name="page_entities")
    op.drop_table("page_entities")
    op.drop_table("entities")
    op.drop_index("ix_page_topics_topic", table_name="page_topics")
    op.drop_table("page_topics")
    op.drop_index("ix_pages_funnel_stage", table_name="pages")
    op.drop_index("ix_pages_primary_topic", table_name="pages")
    op.drop_index("ix_pages_content_type", table_name="pages")
    op.drop_index("ix_pages_site_id", table_name="pages")
    op.drop_table("pages")
    op.drop_table("sites")
