from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

# Path to this repo root (computed from this file)
REPO_ROOT = Path(__file__).resolve().parents[2]  # src/co_backend -> src -> repo root

# === Database configuration ===

# By default we keep things simple and use a SQLite database file in the
# repository root. This can be overridden via CO_DATABASE_URL.
DEFAULT_DATABASE_URL = f"sqlite:///{REPO_ROOT / 'content_ontology.db'}"

# === Brand defaults ===

# Used by the summary endpoint when no site is selected (or the site row has
# no name/domain), and as the brief's fallback audience.
DEFAULT_BRAND_NAME = "WKND"
DEFAULT_BRAND_DOMAIN = "Adventure travel and lifestyle"
DEFAULT_AUDIENCE = "adventure travelers"

# === Plugin manifest ===

# Base URL advertised to the assistant runtime in /manifest.json.
DEFAULT_API_BASE_URL = "http://localhost:8000"

# === Usage tracking ===

# Skill usage events posted by the assistant plugin (/api/track).
DEFAULT_USAGE_TRACKING_ENABLED = True

# === CORS ===

# The assistant runtime calls the API from arbitrary origins, so the default
# is permissive. Override via CO_CORS_ORIGINS (comma-separated).
DEFAULT_CORS_ORIGINS: List[str] = ["*"]

_TRUTHY_OFF = ("0", "false", "no", "off")


@dataclass
class DatabaseConfig:
    """
    Database connection settings.
    """

    database_url: str = DEFAULT_DATABASE_URL


@dataclass
class BrandConfig:
    """
    Brand labels used when composing summaries and briefs.
    """

    name: str = DEFAULT_BRAND_NAME
    domain: str = DEFAULT_BRAND_DOMAIN
    default_audience: str = DEFAULT_AUDIENCE


def get_database_config() -> DatabaseConfig:
    """
    Return the current database configuration, honouring environment overrides.
    """
    url = os.environ.get("CO_DATABASE_URL", DEFAULT_DATABASE_URL)
    return DatabaseConfig(database_url=url)


def get_brand_config() -> BrandConfig:
    """
    Return brand labels, honouring CO_BRAND_NAME / CO_BRAND_DOMAIN /
    CO_DEFAULT_AUDIENCE. Blank values fall back to the defaults.
    """
    name = os.environ.get("CO_BRAND_NAME", "").strip() or DEFAULT_BRAND_NAME
    domain = os.environ.get("CO_BRAND_DOMAIN", "").strip() or DEFAULT_BRAND_DOMAIN
    audience = os.environ.get("CO_DEFAULT_AUDIENCE", "").strip() or DEFAULT_AUDIENCE
    return BrandConfig(name=name, domain=domain, default_audience=audience)


def get_api_key() -> Optional[str]:
    """
    Return the bearer key required on API requests, or None when unset.

    If unset, the API is effectively open. This is convenient for local
    development but should be configured in production.
    """
    raw = os.environ.get("CO_API_KEY")
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def get_environment() -> str:
    """
    Return the deployment environment name (development by default).
    """
    return os.environ.get("CO_ENV", "development").strip().lower() or "development"


def get_cors_origins() -> List[str]:
    """
    Return the list of allowed CORS origins.

    Controlled via CO_CORS_ORIGINS (comma-separated).
    """
    raw = os.environ.get("CO_CORS_ORIGINS")
    if raw is not None:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        if origins:
            return origins
    return DEFAULT_CORS_ORIGINS


def get_api_base_url() -> str:
    """
    Return the public API base URL advertised in the plugin manifest.

    Trailing slashes are stripped and https:// is assumed when the scheme is
    omitted.
    """
    raw = os.environ.get("CO_API_BASE_URL", DEFAULT_API_BASE_URL).strip()
    if not raw:
        return DEFAULT_API_BASE_URL
    if not (raw.startswith("http://") or raw.startswith("https://")):
        raw = f"https://{raw}"
    return raw.rstrip("/")


def get_usage_tracking_enabled() -> bool:
    """
    Return whether skill usage events should be recorded.
    """
    default = "1" if DEFAULT_USAGE_TRACKING_ENABLED else "0"
    raw = os.environ.get("CO_USAGE_TRACKING_ENABLED", default).strip().lower()
    return raw not in _TRUTHY_OFF
