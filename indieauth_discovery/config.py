"""Runtime configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for IndieAuth discovery."""

    app_name: str = "IndieAuth Discovery"
    app_version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"
    outbound_http_timeout_seconds: float = 10.0
    max_redirects: int = 10
    user_agent: str = "indieauth-discovery/0.1.0"
    allow_private_network_targets: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings so env parsing only happens once."""

    return Settings()
