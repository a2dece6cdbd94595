from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List
from urllib.parse import urlparse


def _as_bool(value: str | None, default: bool) -> bool:
    """Interpret common truthy / falsy strings while providing a default."""

    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(value: str | None, default: int, *, minimum: int = 0) -> int:
    try:
        return max(int(str(value).strip()), minimum)
    except (TypeError, ValueError):
        return default


def _as_float(value: str | None, default: float) -> float:
    try:
        parsed = float(str(value).strip())
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _as_list(csv: str | None, fallback: List[str]) -> List[str]:
    """Split a CSV string to list with trimming and fallback."""
    if not csv:
        return fallback
    items = [x.strip() for x in csv.split(",") if x.strip()]
    return items or fallback


def _parse_allowed_origins(raw: str | None) -> List[str]:
    """Normalise comma-separated origins into values accepted by CORSMiddleware."""

    if not raw:
        return ["*"]

    cleaned: List[str] = []
    for origin in raw.split(","):
        value = origin.strip()
        if not value:
            continue
        if value == "*":
            return ["*"]

        parsed = urlparse(value)
        if parsed.scheme and parsed.netloc:
            normalised = f"{parsed.scheme}://{parsed.netloc}"
        else:
            normalised = value

        if normalised not in cleaned:
            cleaned.append(normalised)

    return cleaned or ["*"]


@dataclass
class OracleConfig:
    provider: str = "openai"
    api_key: str | None = None
    base_url: str | None = None
    model: str | None = None
    proxy: str | None = None
    timeout_seconds: float = 60.0
    max_samples_per_competitor: int = 10

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls) -> "OracleConfig":
        provider = (os.getenv("ORACLE_PROVIDER") or "openai").strip().lower()
        if provider == "gemini":
            api_key = (
                os.getenv("ORACLE_API_KEY")
                or os.getenv("GEMINI_API_KEY")
                or os.getenv("GOOGLE_API_KEY")
            )
            default_model = "gemini-2.5-pro"
        else:
            api_key = os.getenv("ORACLE_API_KEY") or os.getenv("OPENAI_API_KEY")
            default_model = "gpt-4o-mini"
        base_url = os.getenv("ORACLE_BASE_URL") or os.getenv("OPENAI_BASE_URL")
        model = os.getenv("ORACLE_MODEL") or default_model
        proxy = os.getenv("ORACLE_PROXY") or os.getenv("OPENAI_PROXY")

        return cls(
            provider=provider,
            api_key=api_key,
            base_url=base_url,
            model=model,
            proxy=proxy,
            timeout_seconds=_as_float(os.getenv("ORACLE_TIMEOUT_SECONDS"), 60.0),
            max_samples_per_competitor=_as_int(os.getenv("ORACLE_MAX_SAMPLES"), 10, minimum=1),
        )


@dataclass
class RendererConfig:
    default_dimensions: str = "1200x628"
    timeout_seconds: float = 30.0
    jpeg_quality: int = 90
    chrome_binary: str | None = None
    extra_args: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "RendererConfig":
        quality = _as_int(os.getenv("RENDER_JPEG_QUALITY"), 90, minimum=1)
        return cls(
            default_dimensions=os.getenv("RENDER_DEFAULT_DIMENSIONS") or "1200x628",
            timeout_seconds=_as_float(os.getenv("RENDER_TIMEOUT_SECONDS"), 30.0),
            jpeg_quality=min(quality, 95),
            chrome_binary=os.getenv("CHROME_BINARY") or None,
            extra_args=_as_list(os.getenv("CHROME_EXTRA_ARGS"), []),
        )


@dataclass
class GuardConfig:
    max_body_bytes: int
    max_inline_base64_bytes: int

    @classmethod
    def from_env(cls) -> "GuardConfig":
        return cls(
            max_body_bytes=_as_int(os.getenv("MAX_BODY_BYTES"), 2 * 1024 * 1024),
            max_inline_base64_bytes=_as_int(os.getenv("MAX_INLINE_BASE64_BYTES"), 128 * 1024),
        )


@dataclass
class StorageConfig:
    data_dir: Path | None = None
    bucket: str | None = None
    endpoint: str | None = None
    access_key: str | None = None
    secret_key: str | None = None
    region: str = "auto"
    public_base: str | None = None
    signed_url_ttl: int = 900
    store_renders: bool = True

    @property
    def object_storage_configured(self) -> bool:
        return bool(self.bucket and self.endpoint and self.access_key and self.secret_key)

    @classmethod
    def from_env(cls) -> "StorageConfig":
        def _first(*names: str) -> str | None:
            for name in names:
                value = (os.getenv(name) or "").strip()
                if value:
                    return value
            return None

        data_dir = _first("CREATIVE_DATA_DIR")
        return cls(
            data_dir=Path(data_dir) if data_dir else None,
            bucket=_first("R2_BUCKET", "S3_BUCKET"),
            endpoint=_first("R2_ENDPOINT", "S3_ENDPOINT"),
            access_key=_first("R2_ACCESS_KEY_ID", "S3_ACCESS_KEY"),
            secret_key=_first("R2_SECRET_ACCESS_KEY", "S3_SECRET_KEY"),
            region=_first("R2_REGION", "S3_REGION") or "auto",
            public_base=_first("R2_PUBLIC_BASE", "S3_PUBLIC_BASE"),
            signed_url_ttl=_as_int(_first("R2_SIGNED_GET_TTL", "S3_SIGNED_GET_TTL"), 900, minimum=60),
            store_renders=_as_bool(os.getenv("STORE_RENDERS"), True),
        )


@dataclass
class Settings:
    environment: str
    log_level: str
    allowed_origins: List[str]
    oracle: OracleConfig
    renderer: RendererConfig
    guard: GuardConfig
    storage: StorageConfig


@lru_cache()
def get_settings() -> Settings:
    def _get(name: str, default: str | None = None) -> str | None:
        v = os.getenv(name)
        return v if v is not None else default

    return Settings(
        environment=_get("ENVIRONMENT", "development") or "development",
        log_level=(_get("LOG_LEVEL", "INFO") or "INFO").upper(),
        allowed_origins=_parse_allowed_origins(_get("ALLOWED_ORIGINS", "*")),
        oracle=OracleConfig.from_env(),
        renderer=RendererConfig.from_env(),
        guard=GuardConfig.from_env(),
        storage=StorageConfig.from_env(),
    )
