from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables or a `.env`
    file. Required values have no default, so a missing one stops the
    process at import time.
    """

    DATABASE_URL: str
    """Direct Postgres connection string, used for out-of-band DDL."""

    SUPABASE_URL: str
    """Hosted database project URL; the table API lives under `/rest/v1`."""

    SUPABASE_ANON_KEY: str
    """Public (anonymous) API key handed to browser clients."""

    SUPABASE_SERVICE_ROLE_KEY: str
    """Privileged API key used by the backend for every table call."""

    JWT_SECRET: str
    """Secret used to sign admin tokens."""

    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    ADMIN_EMAILS: List[str] = []
    """Allow-list of addresses permitted to attempt admin login (JSON list)."""

    ADMIN_DEFAULT_PASSWORD: str = ""
    """Password used by `setup_db --seed-admins` when none is passed."""

    BCRYPT_ROUNDS: int = 12

    CORS_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"
    PORT: int = 8000

    model_config = SettingsConfigDict(env_file=".env")

    @property
    def rest_url(self) -> str:
        return self.SUPABASE_URL.rstrip("/") + "/rest/v1"

    @property
    def admin_emails(self) -> set:
        return {e.strip().lower() for e in self.ADMIN_EMAILS if e.strip()}


settings = Settings()
"""Process-wide settings, built once at startup"""
