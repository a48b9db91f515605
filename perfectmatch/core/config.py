"""
Settings read from the environment (and .env) with pydantic-settings.
Import get_settings() rather than building Settings directly.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "perfectmatch_user"
    postgres_password: str = "password"
    postgres_db: str = "perfectmatch_db"

    # Full SQLAlchemy URL, overrides the postgres_* parts (tests use sqlite)
    database_url: Optional[str] = None

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Login lockout
    login_max_attempts: int = 5
    login_lockout_minutes: int = 5

    # Email (Resend)
    resend_api_key: str = ""
    resend_api_url: str = "https://api.resend.com/emails"
    from_email: str = "onboarding@resend.dev"
    support_email: str = "delivered@resend.dev"
    email_max_attempts: int = 3
    email_rate_limit_per_minute: int = 10

    # Matching
    match_min_score: int = 40
    match_limit: int = 50

    # Uploads
    upload_dir: str = "uploads"

    # App
    app_base_url: str = "https://perfectmatchschools.com"
    debug: bool = False
    log_level: str = "INFO"

    @property
    def postgres_url(self) -> str:
        """Construct the database connection URL"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
