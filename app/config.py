from __future__ import annotations

from pydantic import AliasChoices, ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Startup Scout"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Runtime
    scout_mode: str = "fixture"
    fixture_dir: str = Field(
        default="fixtures/sample",
        validation_alias=AliasChoices("scout_fixture_dir", "fixture_dir"),
    )
    enabled_sources: list[str] = []  # Empty means every configured adapter

    # Executor
    adapter_timeout_seconds: float = 15.0
    adapter_max_attempts: int = 3
    adapter_backoff_base_seconds: float = 1.0
    retry_non_transient: bool = True

    # Aggregation
    per_source_cap: int = 30
    result_cap: int = 100
    persist_cap: int = 50
    dedup_similarity_threshold: float = 0.85
    hard_filter_results: bool = False

    # Providers
    exa_api_key: str | None = None
    tavily_api_key: str | None = None
    brave_api_key: str | None = None
    searxng_url: str | None = None
    rss_feeds: dict[str, str] = {
        "techcrunch": "https://techcrunch.com/category/venture/feed/",
        "crunchbase_news": "https://news.crunchbase.com/feed/",
    }
    local_db_source: bool = True  # Replay persisted startups in online mode
    http_user_agent: str = "StartupScout/1.0"

    # Database
    database_url: str | None = None
    db_pool_min_size: int = 1
    db_pool_max_size: int = 5
    db_auto_create_schema: bool = False

    # Security
    cors_origins: list[str] = []  # Empty by default for security

    # Sentry
    sentry_dsn: str | None = None

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Metrics
    metrics_backend: str = "stdout"
    metrics_namespace: str = "scout"
    metrics_disable: bool = False
    metrics_sample_rate: float = 1.0
    metrics_statsd_host: str = "127.0.0.1"
    metrics_statsd_port: int = 8125

    @property
    def enabled_source_set(self) -> set[str]:
        """Return the lower-cased adapter allowlist (empty when unrestricted)."""
        return {name.strip().lower() for name in self.enabled_sources if name.strip()}

    model_config = ConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()
