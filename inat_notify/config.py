"""
Engine settings (Pydantic Settings).
"""
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# .env at the project root (parent of inat_notify/)
_env_path = Path(__file__).resolve().parent.parent / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=_env_path, env_prefix="INAT_", extra="ignore")

    api_base_url: str = "https://api.inaturalist.org/v1"
    site_base_url: str = "https://www.inaturalist.org"
    # INAT_API_TOKEN: JWT from /users/api_token; optional when a session cookie is set
    api_token: str = ""
    # INAT_SESSION_COOKIE: value of the _inaturalist_session cookie (from browser)
    session_cookie: str = ""
    session_cookie_name: str = "_inaturalist_session"
    http_timeout_seconds: float = 20.0
    user_agent: str = "inat-notify/0.1"

    @field_validator("api_token", "session_cookie", mode="after")
    @classmethod
    def strip_credentials(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("api_base_url", "site_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


settings = Settings()
