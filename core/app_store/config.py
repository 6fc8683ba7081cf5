"""Runtime settings for the review feed client and CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


ENV_PREFIX = "REVIEWS_"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.environ.get(f"{ENV_PREFIX}{name}")
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _default_settings_path() -> Path:
    base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")).expanduser()
    return base / "app-reviews" / "settings.json"


@dataclass
class Settings:
    feed_host: str = "itunes.apple.com"
    default_country: str = "us"
    default_language: Optional[str] = None
    request_timeout: float = 30.0
    max_attempts: int = 2
    retry_delay: float = 0.5
    # Only the first pages are cached, bounding memory.
    cached_pages: int = 2
    http_proxy: Optional[str] = None
    user_agent: str = "app-reviews/1.0 (+https://itunes.apple.com)"
    settings_path: Path = field(default_factory=_default_settings_path)
    output_dir: Path = Path("outputs")
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``REVIEWS_*`` environment variables."""
        defaults = cls()
        settings_path = _env("SETTINGS_PATH")
        output_dir = _env("OUTPUT_DIR")
        return cls(
            feed_host=_env("FEED_HOST", defaults.feed_host) or defaults.feed_host,
            default_country=(_env("DEFAULT_COUNTRY", defaults.default_country) or "us").lower(),
            default_language=_env("DEFAULT_LANGUAGE"),
            request_timeout=_env_float("REQUEST_TIMEOUT", defaults.request_timeout),
            max_attempts=max(1, _env_int("MAX_ATTEMPTS", defaults.max_attempts)),
            retry_delay=max(0.0, _env_float("RETRY_DELAY", defaults.retry_delay)),
            cached_pages=max(0, _env_int("CACHED_PAGES", defaults.cached_pages)),
            http_proxy=_env("HTTP_PROXY") or os.environ.get("HTTPS_PROXY") or None,
            user_agent=_env("USER_AGENT", defaults.user_agent) or defaults.user_agent,
            settings_path=Path(settings_path).expanduser() if settings_path else defaults.settings_path,
            output_dir=Path(output_dir).expanduser() if output_dir else defaults.output_dir,
            log_level=(_env("LOG_LEVEL", defaults.log_level) or "WARNING").upper(),
        )


settings = Settings.from_env()
