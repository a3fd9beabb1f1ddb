from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "docstream"
    debug: bool = False

    # Offline mode: models come from the in-process mock registry and
    # connection checks are skipped entirely.
    test_mode: bool = False  # env: TEST_MODE

    # API
    frontend_url: str = "http://localhost:3000"
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Redis (connection store + document streams)
    redis_url: str = "redis://localhost:6379"
    document_stream_ttl_seconds: int = 86400

    # Provider router
    router_base_url: str = "https://api.byorouter.com"
    router_api_key: str = ""
    router_timeout_seconds: float = 30.0

    # Session tokens (HS256)
    auth_secret: str = ""

    # Defaults shown before the user picks anything
    default_chat_provider: str = "openai"
    default_chat_model: str = "openai/gpt-4o"


@lru_cache
def get_settings() -> Settings:
    return Settings()
