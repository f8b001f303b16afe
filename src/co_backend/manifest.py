"""
Assistant plugin manifest served at /manifest.json.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List

from .config import get_api_base_url
from .context import ASPECTS
from .models import CONTENT_TYPES, FUNNEL_STAGES
from .performance import SCORE_COLUMNS
from .related import RELATIONSHIPS

MANIFEST_NAME = "enterprise-content-ontology"
MANIFEST_VERSION = "2.0.0"
CLIENT_API_KEY_ENV_VAR = "CONTENT_ONTOLOGY_API_KEY"


def _string(description: str, **extra: Any) -> Dict[str, Any]:
    return {"type": "string", "description": description, **extra}


def _object(properties: Dict[str, Any], required: List[str] | None = None) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


_TOOLS: List[Dict[str, Any]] = [
    {
        "name": "query_content_inventory",
        "description": (
            "Search and query the content inventory. Find pages by topic, content type, "
            "funnel stage, or audience. Returns structured metadata about matching pages."
        ),
        "parameters": _object(
            {
                "site_id": _string(
                    "Filter by site ID (e.g., 'wknd'). Optional - omit to query all sites."
                ),
                "topic": _string("Filter by primary topic (e.g., 'surfing', 'skiing', 'cycling')"),
                "content_type": _string("Filter by content type", enum=list(CONTENT_TYPES)),
                "funnel_stage": _string(
                    "Filter by marketing funnel stage", enum=list(FUNNEL_STAGES)
                ),
                "audience": _string("Filter by target audience segment"),
                "search": _string("Free text search in page paths and titles"),
                "limit": {
                    "type": "integer",
                    "default": 20,
                    "description": "Maximum number of results to return",
                },
            }
        ),
    },
    {
        "name": "get_content_gaps",
        "description": (
            "Identify content gaps in the inventory. Shows topics missing content at "
            "specific funnel stages, helping prioritize content creation."
        ),
        "parameters": _object(
            {
                "topic": _string(
                    "Analyze gaps for a specific topic, or leave empty for all topics"
                ),
                "funnel_stage": _string(
                    "Find topics missing this specific funnel stage", enum=list(FUNNEL_STAGES)
                ),
            }
        ),
    },
    {
        "name": "generate_content_brief",
        "description": (
            "Generate a content brief based on the ontology context. Uses existing content "
            "patterns, brand voice, and gap analysis to create actionable briefs."
        ),
        "parameters": _object(
            {
                "topic": _string("The primary topic for the new content"),
                "content_type": _string(
                    "The type of content to create", enum=list(CONTENT_TYPES)
                ),
                "funnel_stage": _string(
                    "Target funnel stage for the content", enum=list(FUNNEL_STAGES)
                ),
                "target_audience": _string("Primary audience for the content"),
            },
            required=["topic", "content_type"],
        ),
    },
    {
        "name": "get_brand_context",
        "description": (
            "Get brand context and content patterns from the ontology. Returns common "
            "topics, audiences, entities and content types."
        ),
        "parameters": _object(
            {
                "aspect": _string(
                    "Which aspect of brand context to retrieve",
                    enum=list(ASPECTS),
                    default="all",
                ),
            }
        ),
    },
    {
        "name": "get_related_content",
        "description": (
            "Find content related to a specific page. Useful for internal linking, "
            "content clusters, and understanding content relationships."
        ),
        "parameters": _object(
            {
                "path": _string("The page path to find related content for"),
                "relationship": _string(
                    "Type of relationship to find", enum=list(RELATIONSHIPS), default="all"
                ),
            },
            required=["path"],
        ),
    },
    {
        "name": "get_performance_insights",
        "description": (
            "Get performance insights from RUM analytics. Shows top performers, "
            "underperformers, and patterns to inform content strategy."
        ),
        "parameters": _object(
            {
                "metric": _string(
                    "Which metric to rank by", enum=list(SCORE_COLUMNS), default="overall"
                ),
            }
        ),
    },
    {
        "name": "get_page_performance",
        "description": (
            "Get detailed performance data for a specific page. Shows Core Web Vitals, "
            "engagement metrics, and optimization recommendations."
        ),
        "parameters": _object(
            {"path": _string("The page path to get performance data for")},
            required=["path"],
        ),
    },
    {
        "name": "list_sites",
        "description": (
            "List all sites in the content ontology. Shows site name, domain, page count, "
            "and topic count for each site."
        ),
        "parameters": _object({}),
    },
    {
        "name": "get_site_details",
        "description": (
            "Get detailed information about a specific site including stats and configuration."
        ),
        "parameters": _object(
            {"site_id": _string("The site identifier")},
            required=["site_id"],
        ),
    },
]


def build_manifest() -> Dict[str, Any]:
    """
    Return the plugin manifest with the configured API base URL.
    """
    return {
        "name": MANIFEST_NAME,
        "display_name": "Enterprise Content Ontology",
        "description": (
            "Content intelligence for a CMS content inventory. Query your content "
            "inventory, identify gaps, and generate context-aware content briefs."
        ),
        "version": MANIFEST_VERSION,
        "capabilities": {"tools": True, "context": True},
        "tools": copy.deepcopy(_TOOLS),
        "context_providers": [
            {
                "name": "content_summary",
                "description": "Provides a summary of the content inventory for context",
                "auto_include": True,
            }
        ],
        "api": {
            "base_url": get_api_base_url(),
            "auth": {"type": "bearer", "env_var": CLIENT_API_KEY_ENV_VAR},
        },
    }


__all__ = ["build_manifest"]
