"""Application configuration via environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"
    locale: str = "zh-TW"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Supabase project (tables, auth, storage)
    supabase_url: str = ""
    supabase_anon_key: str = ""
    backend_timeout: float = 15.0

    # The one account allowed into the admin area (plain equality, no roles)
    admin_email: str = ""
    admin_path_prefix: str = "/admin"
    login_path: str = "/login"

    # Session cookies
    access_cookie_name: str = "sb-access-token"
    refresh_cookie_name: str = "sb-refresh-token"
    cookie_secure: bool = False

    # Login throttling
    login_delay_seconds: float = 1.0
    login_cooldown_seconds: int = 30

    # Post cover images
    cover_bucket: str = "post-cover"
    cover_signed_url_ttl: int = 60 * 60 * 24 * 365  # one year

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
