"""Application configuration management."""
from pydantic import model_validator, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from ipaddress import ip_address, ip_network
from sqlalchemy.engine.url import make_url, URL
from typing import Optional
import logging
import os

SQLITE_LOCAL_URL = "sqlite+aiosqlite:///./data/localhavencms.db"

# Docker bridge, user-defined and overlay networks plus localhost
DEFAULT_TRUSTED_PROXIES = [
    "172.16.0.0/12",
    "192.168.0.0/16",
    "10.0.0.0/8",
    "127.0.0.1",
]


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = SQLITE_LOCAL_URL
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Application
    environment: str = "development"
    port: int = 8090
    allowed_origins: str = ""  # comma-separated

    # Admin access (required)
    admin_username: str
    admin_password: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    access_token_exp_hours: int = 24
    login_failure_delay_seconds: float = 1.0

    # Proxies whose X-Forwarded-For / X-Real-IP headers are honoured (comma-separated)
    trusted_proxies: str = ",".join(DEFAULT_TRUSTED_PROXIES)

    # Rate limiting. Buckets refill at <limit> tokens per window and hold at most
    # <burst>, so the defaults allow 60, 5 and 3 requests per minute sustained.
    rate_limit_disabled: bool = False
    global_rate_limit: int = 60  # requests per window per client IP
    global_rate_burst: int = 60
    survey_rate_limit: int = 5  # submissions per window per client IP
    survey_rate_burst: int = 5
    login_rate_limit: int = 3  # login attempts per window per client IP
    login_rate_burst: int = 3
    rate_limit_window_seconds: int = 60
    rate_limit_idle_seconds: float = 600.0  # evict buckets unused for this long

    # Results cache
    results_cache_ttl_seconds: float = 300.0

    @field_validator("trusted_proxies", "allowed_origins", mode="before")
    @classmethod
    def join_sequences(cls, value):
        """Accept sequences as well as comma-separated strings."""
        if value is None:
            return ""
        if isinstance(value, (list, tuple, set)):
            return ",".join(str(item).strip() for item in value)
        return value

    @field_validator("trusted_proxies")
    @classmethod
    def validate_trusted_proxies(cls, value: str) -> str:
        """Every proxy must be an IP address or a CIDR range."""
        for proxy in _split_csv(value):
            try:
                if "/" in proxy:
                    ip_network(proxy, strict=False)
                else:
                    ip_address(proxy)
            except ValueError as exc:
                raise ValueError(f"invalid proxy address: {proxy}") from exc
        return value

    @model_validator(mode="after")
    def validate_all_config(self):
        """Validate security configuration and normalize database URLs."""
        logger = logging.getLogger(__name__)

        for name in ("admin_username", "admin_password", "jwt_secret"):
            if not getattr(self, name):
                raise ValueError(f"Required environment variable {name.upper()} is not set")

        if self.jwt_algorithm not in ["HS256", "HS384", "HS512"]:
            raise ValueError(f"Unsupported JWT algorithm: {self.jwt_algorithm}. Use HS256, HS384, or HS512.")

        if self.access_token_exp_hours < 1:
            raise ValueError("access_token_exp_hours must be at least 1")

        if self.rate_limit_window_seconds < 1:
            raise ValueError("rate_limit_window_seconds must be at least 1")

        url = self.database_url
        if not url:
            logger.warning("Empty DATABASE_URL, using SQLite fallback")
            self.database_url = SQLITE_LOCAL_URL
            return self

        try:
            parsed: URL = make_url(url)
        except Exception as e:
            raise ValueError(f"Invalid DATABASE_URL: {e}") from e

        drivername = parsed.drivername
        if drivername.startswith("postgres") and "+asyncpg" not in drivername:
            parsed = parsed.set(drivername="postgresql+asyncpg")
            logger.info(f"Driver normalized: {drivername} -> {parsed.drivername}")
        elif drivername == "sqlite":
            parsed = parsed.set(drivername="sqlite+aiosqlite")
            logger.info(f"Driver normalized: {drivername} -> {parsed.drivername}")
        self.database_url = parsed.render_as_string(hide_password=False)

        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def trusted_proxy_list(self) -> list[str]:
        return _split_csv(self.trusted_proxies)

    @property
    def allowed_origin_list(self) -> list[str]:
        return _split_csv(self.allowed_origins)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    The .env file is only consulted outside production.
    """
    if os.getenv("ENVIRONMENT") == "production":
        return Settings(_env_file=None)
    return Settings()
