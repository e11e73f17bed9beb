from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Values are read from process environment and optionally from `.env`.
    """

    github_token: str | None = None
    github_api_base_url: str = "https://api.github.com"
    github_graphql_url: str = "https://api.github.com/graphql"
    github_user_agent: str = "github-activity-dashboard"
    http_timeout_seconds: float = 20.0

    dashboard_users: list[str] = ["gradientwolf", "oppenheimmer"]
    # None means "current year and the one before it".
    dashboard_years: list[int] | None = None

    cache_ttl_seconds: float = 300.0
    max_fallback_repositories: int = 5
    repository_throttle_seconds: float = 0.1

    log_level: str = "INFO"
    sentry_dsn: str | None = None
    environment: str = "development"
    release: str | None = None
    sentry_traces_sample_rate: float = 0.1
    rate_limit_per_minute: int = 30
    rate_limit_window_seconds: int = 60

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
