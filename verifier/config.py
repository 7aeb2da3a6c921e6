# verifier/config.py
import os
from typing import List, Optional

from pydantic import BaseModel, Field

from verifier import __version__

# Bytes
MB = 1024 * 1024

DEFAULT_URL_MODEL = "gemini-3-pro-preview"
DEFAULT_TEXT_MODEL = "gemini-2.5-flash"
DEFAULT_MEDIA_MODEL = "gemini-3-pro-preview"


class ConfigError(ValueError):
    """Variabile d'ambiente presente ma non interpretabile."""


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} deve essere un intero, ricevuto {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} deve essere un numero, ricevuto {raw!r}")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str = "") -> List[str]:
    return [x.strip() for x in os.getenv(name, default).split(",") if x.strip()]


class Settings(BaseModel):
    # ----- General -----
    service_version: str = __version__
    log_level: str = "INFO"

    # ----- Gemini -----
    gemini_api_key: Optional[str] = None
    url_model: str = DEFAULT_URL_MODEL
    text_model: str = DEFAULT_TEXT_MODEL
    media_model: str = DEFAULT_MEDIA_MODEL

    # ----- Limits & timeouts -----
    max_upload_bytes: int = Field(default=10 * MB, gt=0)
    max_text_chars: int = Field(default=20_000, gt=0)
    request_timeout_s: float = Field(default=120.0, gt=0)

    # ----- CORS -----
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])

    # ----- Page context (solo analisi URL) -----
    resolver_allowlist: List[str] = Field(default_factory=list)
    fetch_page_context: bool = True
    page_fetch_timeout_s: float = Field(default=8.0, gt=0)
    page_fetch_max_bytes: int = Field(default=1 * MB, gt=0)

    @property
    def has_api_key(self) -> bool:
        return bool(self.gemini_api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        api_key = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or None
        return cls(
            service_version=os.getenv("SERVICE_VERSION", __version__),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            gemini_api_key=api_key.strip() if api_key else None,
            url_model=os.getenv("GEMINI_URL_MODEL", DEFAULT_URL_MODEL),
            text_model=os.getenv("GEMINI_TEXT_MODEL", DEFAULT_TEXT_MODEL),
            media_model=os.getenv("GEMINI_MEDIA_MODEL", DEFAULT_MEDIA_MODEL),
            max_upload_bytes=_env_int("MAX_UPLOAD_BYTES", 10 * MB),    # 10 MB
            max_text_chars=_env_int("MAX_TEXT_CHARS", 20_000),
            request_timeout_s=_env_float("REQUEST_TIMEOUT_S", 120.0),  # sec
            allowed_origins=_env_list("ALLOWED_ORIGINS", "*") or ["*"],
            resolver_allowlist=[d.lower() for d in _env_list("RESOLVER_ALLOWLIST")],
            fetch_page_context=_env_bool("FETCH_PAGE_CONTEXT", True),
            page_fetch_timeout_s=_env_float("PAGE_FETCH_TIMEOUT_S", 8.0),
            page_fetch_max_bytes=_env_int("PAGE_FETCH_MAX_BYTES", 1 * MB),
        )
