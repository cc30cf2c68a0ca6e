"""
core/config.py -- Centralized configuration via pydantic-settings.

All environment variable reads happen here. No module should call
os.getenv() or os.environ.get() directly -- import get_settings() instead.

Environment variable names carry the VULNSRC_ prefix, e.g. amzn2_mirror is
read from VULNSRC_AMZN2_MIRROR. Empty values are ignored so that
`VULNSRC_DEBIAN_JSON=` in a .env file falls back to the public tracker.

Settings are read once: get_settings() is cached, and build_registry()
copies the feed URIs into each updater at construction time. In tests call
get_settings.cache_clear() after changing the environment.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("vulnsrc.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'vulnsrc.db'}"


class Settings(BaseSettings):
    """Process settings loaded from environment variables and an optional .env file.

    All fields have defaults so Settings() can be instantiated without any
    environment at all.
    """

    model_config = SettingsConfigDict(
        env_prefix="VULNSRC_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Feeds
    # ------------------------------------------------------------------

    amzn1_mirror: str = "http://repo.us-west-2.amazonaws.com/2018.03/updates/x86_64/mirror.list"
    amzn2_mirror: str = "https://cdn.amazonlinux.com/2/core/latest/x86_64/mirror.list"
    debian_json: str = "https://security-tracker.debian.org/tracker/data/json"
    debian_cveprefix: str = "https://security-tracker.debian.org/tracker"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    # Seconds, applied to connect and read separately by requests.
    http_timeout: float = 60.0
    user_agent: str = "vulnsrc/0.1 (+https://github.com/vulnsrc/vulnsrc)"

    # ------------------------------------------------------------------
    # Storage / logging
    # ------------------------------------------------------------------

    database_url: str = _DEFAULT_DB_URL
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_feeds(self) -> "Settings":
        for name in ("amzn1_mirror", "amzn2_mirror", "debian_json", "debian_cveprefix"):
            value = getattr(self, name)
            if not value.startswith(("http://", "https://")):
                raise ValueError(f"VULNSRC_{name.upper()} must be an http(s) URI, got {value!r}")
        if self.http_timeout <= 0:
            raise ValueError("VULNSRC_HTTP_TIMEOUT must be positive.")
        # A trailing slash would produce "prefix//CVE-..." links.
        self.debian_cveprefix = self.debian_cveprefix.rstrip("/")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings singleton."""
    return Settings()
