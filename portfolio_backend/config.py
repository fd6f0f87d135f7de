"""
Configuration and settings for the portfolio backend.
"""

from __future__ import annotations

import re
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1, "m": 60, "h": 3600}


def parse_duration(value) -> timedelta:
    """
    Parse "30m", "1h30m", "90s" or a plain number of seconds into a timedelta.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)
    text = str(value).strip().lower()
    if not text:
        raise ValueError("empty duration")
    if re.fullmatch(r"\d+(?:\.\d+)?", text):
        return timedelta(seconds=float(text))
    parts = _DURATION_PART.findall(text)
    if not parts or "".join(n + u for n, u in parts) != text:
        raise ValueError(f"invalid duration: {value!r}")
    seconds = sum(float(n) * _DURATION_UNITS[u] for n, u in parts)
    return timedelta(seconds=seconds)


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    api_version: str = Field(default="v1")
    cors_origins: str = Field(default="*")
    log_level: str = Field(default="INFO")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)

    # Key-value store (Redis expected)
    redis_url: Optional[str] = Field(default=None)
    redis_host: str = Field(default="localhost")
    redis_port: int = Field(default=6379)
    redis_password: Optional[str] = Field(default=None)
    redis_db: int = Field(default=0)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Auth
    jwt_secret: str = Field(default="default-secret-change-in-production")
    jwt_expiration: timedelta = Field(default=timedelta(minutes=30))
    admin_username: str = Field(default="admin")
    admin_password_hash: str = Field(default="")
    max_login_attempts: int = Field(default=5, ge=1)
    login_cooldown: timedelta = Field(default=timedelta(minutes=15))
    auth_cookie_name: str = Field(default="admin_token")
    auth_cookie_secure: bool = Field(default=False)
    # Peers whose X-Forwarded-For header is honoured; "*" trusts any peer.
    trusted_proxies: str = Field(default="")

    # Local uploads
    upload_dir: str = Field(default="./uploads")
    skills_upload_dir: str = Field(default="./skills-upload")
    blog_upload_dir: str = Field(default="./blog-upload")
    public_base_url: str = Field(default="")

    default_author: str = Field(default="Serkan Ursavaş")

    @field_validator("jwt_expiration", "login_cooldown", mode="before")
    @classmethod
    def _parse_duration(cls, value):
        return parse_duration(value)

    @property
    def versioned_prefix(self) -> str:
        return f"{self.api_prefix.rstrip('/')}/{self.api_version}"

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def trusted_proxy_list(self) -> list[str]:
        return [p.strip() for p in self.trusted_proxies.split(",") if p.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
