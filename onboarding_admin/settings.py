from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    App settings.

    Notes:
    - Everything is overridable via `APP_*` env vars (or a local `.env`).
    - Secrets (session signing key, bootstrap administrator password) have no defaults.
      Startup fails if they are needed and missing.
    """

    model_config = SettingsConfigDict(env_prefix="APP_", env_file=".env", extra="ignore")

    db_url: str | None = None
    security_config_path: str | None = None
    log_level: str = "INFO"

    session_secret: str | None = None
    session_cookie_name: str = "onboarding_session"
    session_cookie_secure: bool = True
    session_ttl_minutes: int = 7 * 24 * 60

    bootstrap_admin_email: str | None = None
    bootstrap_admin_password: str | None = None
    bootstrap_admin_first_name: str = "Super"
    bootstrap_admin_last_name: str = "Administrator"

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "onboarding.db"
        return f"sqlite:///{db_path}"

    def resolved_security_config_path(self) -> Path:
        if self.security_config_path:
            return Path(self.security_config_path)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "config" / "security_config.yaml"

    def require_session_secret(self) -> str:
        if not self.session_secret:
            raise ValueError("APP_SESSION_SECRET must be set to sign session cookies")
        return self.session_secret


@lru_cache
def get_settings() -> Settings:
    return Settings()
