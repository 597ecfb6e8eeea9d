# app/core/config.py
from __future__ import annotations

"""
# CMS Backend — Centralized Configuration (Pydantic v2)

Single `settings` object with strongly-typed, environment-driven config.

## Goals
- Safe defaults for local/dev; explicit where prod needs secrets.
- Robust URL normalization and CSV → list helpers.
- Object storage is optional so imports never crash in dev.
- API docs are only exposed on staging.

## Usage
    from app.core.config import settings
"""

from typing import List, Optional, Literal

from dotenv import load_dotenv
from pydantic import Field, SecretStr, AnyHttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()  # harmless in prod; convenient in dev


# ─────────────────────────────────────────────────────────────
# Small helpers
# ─────────────────────────────────────────────────────────────
def _split_csv(v: str | None) -> list[str]:
    """Split a comma-separated string into a trimmed list (empty-safe)."""
    if not v:
        return []
    return [s.strip() for s in str(v).split(",") if s and s.strip()]


def _normalize_url_like(v: str | None, *, require_scheme: bool = True) -> str:
    """Normalize to a string URL without trailing slash."""
    s = (v or "").strip()
    if not s:
        return ""
    if require_scheme and not (s.startswith("http://") or s.startswith("https://")):
        s = "https://" + s
    return s.rstrip("/")


# ─────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────
class Settings(BaseSettings):
    """
    Global application settings sourced from environment.

    Security:
        - Explicit secret for JWT; bounded access-token TTL.
        - Docs are only served when `ENV == "staging"` and `ENABLE_DOCS`.

    Notes:
        - `DATABASE_URI` wins over the `POSTGRES_*` parts when set
          (used by tests to point at SQLite).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # don't crash on unknown keys
    )

    # ── App meta ──────────────────────────────────────────────
    PROJECT_NAME: str = "CMS API"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    ENV: Literal["development", "staging", "production", "test"] = "development"
    ENABLE_DOCS: bool = True

    # ── Security / JWT ────────────────────────────────────────
    JWT_SECRET_KEY: SecretStr = Field(...)
    JWT_ALGORITHM: Literal["HS256", "HS384", "HS512"] = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60, ge=5, le=7 * 24 * 60)

    # ── Redis / Rate limiting ─────────────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"
    IDEMPOTENCY_TTL_SECONDS: int = Field(600, ge=60, le=24 * 60 * 60)

    # ── Database (PostgreSQL) ─────────────────────────────────
    DATABASE_URI: Optional[str] = None
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: SecretStr = Field(SecretStr(""))
    POSTGRES_DB: str = "cms"

    # ── CORS & Hosts ─────────────────────────────────────────
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = Field(
        default_factory=lambda: ["http://localhost:8000", "http://localhost:5173"]
    )
    FRONTEND_ORIGINS: Optional[str] = None  # CSV
    ALLOW_ORIGINS_REGEX: Optional[str] = None

    # ── Object storage (optional in dev) ──────────────────────
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[SecretStr] = None
    AWS_REGION: str = "us-east-1"
    AWS_BUCKET_NAME: Optional[str] = None
    AWS_S3_ENDPOINT_URL: Optional[str] = None  # MinIO / localstack
    CLOUDFRONT_DOMAIN: Optional[str] = None  # e.g., cdn.example.com or https://cdn.example.com

    # ── Upload limits (kilobytes) ─────────────────────────────
    PAGE_BANNER_MAX_KB: int = Field(10240, ge=1)
    MEDIA_FILE_MAX_KB: int = Field(10240, ge=1)
    TEAM_PICTURE_MAX_KB: int = Field(2048, ge=1)

    # ── Security headers (mirrors env used by security middleware) ───────────
    ENABLE_HTTPS_REDIRECT: bool = False
    HSTS_MAX_AGE: int = 0
    REFERRER_POLICY: Optional[str] = "strict-origin-when-cross-origin"
    SECURITY_SKIP_PATHS: Optional[str] = "/healthz,/readyz,/docs,/redoc,/openapi.json"

    # ── Validators / normalizers ──────────────────────────────
    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def _assemble_cors_origins(cls, v: str | List[str]):
        if isinstance(v, str):
            return _split_csv(v)
        return v

    @field_validator("FRONTEND_ORIGINS", mode="before")
    @classmethod
    def _normalize_frontend_csv(cls, v):
        return None if v is None else ",".join(_split_csv(str(v)))

    @field_validator("CLOUDFRONT_DOMAIN", "AWS_S3_ENDPOINT_URL", mode="before")
    @classmethod
    def _normalize_base_urls(cls, v: str | None) -> str | None:
        """
        Accepts either 'cdn.example.com' or 'https://cdn.example.com' and
        normalizes to 'https://cdn.example.com' (no trailing slash).
        """
        s = (v or "").strip()
        if not s:
            return None
        return _normalize_url_like(s)

    # ── Derived / convenience properties ─────────────────────
    @property
    def is_staging(self) -> bool:
        return self.ENV.lower() == "staging"

    @property
    def docs_enabled(self) -> bool:
        """OpenAPI UI/schema are served on staging only."""
        return bool(self.ENABLE_DOCS) and self.is_staging

    @property
    def DATABASE_URL(self) -> str:
        """Sync DSN."""
        if self.DATABASE_URI:
            return self.DATABASE_URI
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def ASYNC_DATABASE_URL(self) -> str:
        """Async SQLAlchemy DSN."""
        url = self.DATABASE_URL
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if url.startswith("sqlite://"):
            return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return url

    @property
    def frontend_origins_list(self) -> List[str]:
        """
        Preferred CORS allowlist:
        Priority → FRONTEND_ORIGINS (CSV) → BACKEND_CORS_ORIGINS (typed list).
        """
        if self.FRONTEND_ORIGINS:
            return _split_csv(self.FRONTEND_ORIGINS)
        return [str(u).rstrip("/") for u in (self.BACKEND_CORS_ORIGINS or [])]

    @property
    def security_skip_paths_list(self) -> List[str]:
        return _split_csv(self.SECURITY_SKIP_PATHS or "")

    @property
    def cdn_base_url(self) -> str:
        """CloudFront base URL (https, no trailing slash) or empty string."""
        return (self.CLOUDFRONT_DOMAIN or "").rstrip("/")


# Singleton instance
settings = Settings()
