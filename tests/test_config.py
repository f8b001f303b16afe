from __future__ import annotations

from co_backend.config import (
    DEFAULT_API_BASE_URL,
    DEFAULT_AUDIENCE,
    DEFAULT_BRAND_DOMAIN,
    DEFAULT_BRAND_NAME,
    DEFAULT_DATABASE_URL,
    BrandConfig,
    DatabaseConfig,
    get_api_base_url,
    get_api_key,
    get_brand_config,
    get_cors_origins,
    get_database_config,
    get_environment,
    get_usage_tracking_enabled,
)


def test_database_config_default(monkeypatch) -> None:
    """
    Default database URL should match the constant when no env override is set.
    """
    monkeypatch.delenv("CO_DATABASE_URL", raising=False)
    cfg = get_database_config()
    assert isinstance(cfg, DatabaseConfig)
    assert cfg.database_url == DEFAULT_DATABASE_URL
    assert cfg.database_url.startswith("sqlite:///")


def test_database_config_env_override(monkeypatch) -> None:
    monkeypatch.setenv("CO_DATABASE_URL", "postgresql+psycopg://u:p@db/ontology")
    assert get_database_config().database_url == "postgresql+psycopg://u:p@db/ontology"


def test_brand_config_defaults_and_overrides(monkeypatch) -> None:
    cfg = get_brand_config()
    assert cfg == BrandConfig(
        name=DEFAULT_BRAND_NAME,
        domain=DEFAULT_BRAND_DOMAIN,
        default_audience=DEFAULT_AUDIENCE,
    )
    assert cfg.default_audience == "adventure travelers"

    monkeypatch.setenv("CO_BRAND_NAME", "Acme")
    monkeypatch.setenv("CO_BRAND_DOMAIN", "  ")
    monkeypatch.setenv("CO_DEFAULT_AUDIENCE", "hikers")
    cfg = get_brand_config()
    assert cfg.name == "Acme"
    assert cfg.domain == DEFAULT_BRAND_DOMAIN
    assert cfg.default_audience == "hikers"


def test_api_key_blank_is_unset(monkeypatch) -> None:
    assert get_api_key() is None
    monkeypatch.setenv("CO_API_KEY", "   ")
    assert get_api_key() is None
    monkeypatch.setenv("CO_API_KEY", " secret ")
    assert get_api_key() == "secret"


def test_environment_is_normalised(monkeypatch) -> None:
    monkeypatch.setenv("CO_ENV", " Production ")
    assert get_environment() == "production"
    monkeypatch.delenv("CO_ENV")
    assert get_environment() == "development"


def test_cors_origins(monkeypatch) -> None:
    assert get_cors_origins() == ["*"]
    monkeypatch.setenv("CO_CORS_ORIGINS", "https://a.example, https://b.example,")
    assert get_cors_origins() == ["https://a.example", "https://b.example"]
    monkeypatch.setenv("CO_CORS_ORIGINS", " , ")
    assert get_cors_origins() == ["*"]


def test_api_base_url_normalisation(monkeypatch) -> None:
    assert get_api_base_url() == DEFAULT_API_BASE_URL
    monkeypatch.setenv("CO_API_BASE_URL", "ontology.example.com/")
    assert get_api_base_url() == "https://ontology.example.com"
    monkeypatch.setenv("CO_API_BASE_URL", "http://localhost:9000/")
    assert get_api_base_url() == "http://localhost:9000"


def test_usage_tracking_toggle(monkeypatch) -> None:
    assert get_usage_tracking_enabled() is True
    for off in ("0", "false", "OFF", "no"):
        monkeypatch.setenv("CO_USAGE_TRACKING_ENABLED", off)
        assert get_usage_tracking_enabled() is False
    monkeypatch.setenv("CO_USAGE_TRACKING_ENABLED", "1")
    assert get_usage_tracking_enabled() is True
