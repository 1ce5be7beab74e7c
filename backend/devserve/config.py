"""
DevServe — Application Configuration
======================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Passed into create_app(); every middleware and route receives the
       values it needs from there rather than importing this module.
When:  Loaded once at module import time; validated before the app starts.

Complex values (VENDOR_MAP) are read as JSON objects from the environment:
    VENDOR_MAP='{"lib.js": "https://cdn.example.com/lib.js"}'
"""

from pathlib import Path
from typing import Dict

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

ALPINEJS_VERSION = "3.15.4"

DEFAULT_VENDOR_MAP: Dict[str, str] = {
    "alpinejs.mjs": f"https://esm.sh/alpinejs@{ALPINEJS_VERSION}/es2024/alpinejs.mjs",
}


class Settings(BaseSettings):
    """
    Runtime settings loaded from environment variables.

    All settings have sensible defaults for local development. Attributes are
    grouped by the component that consumes them.
    """

    # ── Runtime Mode ──────────────────────────────────────────────────────
    # dev enables the static file watcher, the live-reload updater script
    # and error details in 500 responses; production adds HSTS.
    dev: bool = Field(default=False)

    # What: Directory watched for changes in dev mode.
    # Relative paths resolve against the working directory and must stay inside it.
    static_files_path: Path = Field(default=Path("static"))

    # ── Vendor Assets ─────────────────────────────────────────────────────
    # What: Allow-list of public file name → remote CDN URL.
    # A "<name>.map" request falls back to the "<name>" entry with ".map" appended.
    vendor_map: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_VENDOR_MAP))

    # What: Route prefix the vendor files are served under ("/" = site root).
    vendor_route: str = Field(default="/")

    # What: Seconds before an upstream CDN fetch is abandoned.
    vendor_fetch_timeout: float = Field(default=10.0, gt=0, le=120)

    # ── Rate Limiting ─────────────────────────────────────────────────────
    # What: Per-client fixed window limit (process-local, not shared across instances).
    rate_limit_requests: int = Field(default=180, ge=1, le=100_000)
    rate_limit_window: int = Field(default=60, ge=1, le=86_400)  # seconds

    # What: Expired buckets are swept once every N rate-limit checks.
    rate_limit_sweep_interval: int = Field(default=1000, ge=1)

    # ── Live Reload ───────────────────────────────────────────────────────
    # What: Idle seconds before an SSE comment is sent to keep proxies from
    # closing the connection.
    sse_keepalive_seconds: float = Field(default=15.0, gt=0, le=300)

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("static_files_path")
    @classmethod
    def validate_static_files_path(cls, v: Path) -> Path:
        """
        Resolve the watched directory against the working directory.

        Absolute paths are accepted only when they point inside the working
        directory; anything escaping it (including via "..") is rejected.
        """
        cwd = Path.cwd().resolve()
        resolved = (cwd / v).resolve()
        try:
            resolved.relative_to(cwd)
        except ValueError:
            raise ValueError(
                f"static_files_path must stay within cwd: cwd='{cwd}', static_files_path='{v}'"
            ) from None
        return resolved

    @field_validator("vendor_route")
    @classmethod
    def validate_vendor_route(cls, v: str) -> str:
        """Normalizes the prefix to '/<segments>' without a trailing slash ('/' for root)."""
        stripped = v.strip().strip("/")
        return f"/{stripped}" if stripped else "/"

    @field_validator("vendor_map")
    @classmethod
    def validate_vendor_map(cls, v: Dict[str, str]) -> Dict[str, str]:
        """Keys are bare file names; a key containing '/' could never be requested."""
        for key, url in v.items():
            if not key or "/" in key:
                raise ValueError(f"Invalid vendor key '{key}': must be a single file name")
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"Vendor '{key}' URL must be http(s), got '{url}'")
        return v


# Singleton instance used by uvicorn's `devserve.main:app` entry point
settings = Settings()
