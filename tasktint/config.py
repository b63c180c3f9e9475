"""Centralized configuration for tasktint.

Typed constants for the color cache, fingerprint learning, render scheduling,
storage and API settings. Environment variable overrides use safe defaults so
the core starts without extra env configuration.
"""

from __future__ import annotations

import os
from pathlib import Path

from tasktint.infrastructure.env import ensure_env_loaded

ensure_env_loaded()

# --- App ---
APP_VERSION: str = "1.0.0"

# --- Cache Manager ---
CACHE_TTL_SECONDS: float = float(os.getenv("TASKTINT_CACHE_TTL", "30.0"))
CACHE_ERROR_TTL_SECONDS: float = float(os.getenv("TASKTINT_CACHE_ERROR_TTL", "1.0"))
IDENTITY_MAPPING_TTL_SECONDS: float = float(os.getenv("TASKTINT_IDENTITY_MAPPING_TTL", "30.0"))

# --- Render Scheduler ---
REPAINT_MIN_INTERVAL_SECONDS: float = float(os.getenv("TASKTINT_REPAINT_MIN_INTERVAL", "0.1"))
REPAINT_MAX_RETRIES: int = int(os.getenv("TASKTINT_REPAINT_MAX_RETRIES", "20"))
REPAINT_RETRY_DELAY_SECONDS: float = float(os.getenv("TASKTINT_REPAINT_RETRY_DELAY", "0.2"))

# --- Completed styling ---
COMPLETED_OPACITY_DEFAULT: float = 0.3
TRANSPARENT_BACKGROUND: str = "rgba(255, 255, 255, 0)"
TRANSPARENT_TEXT: str = "rgba(0, 0, 0, 0)"
PENDING_TEXT_ON_TRANSPARENT: str = "#202124"
COMPLETED_TEXT_ON_TRANSPARENT: str = "#5f6368"

# --- Storage ---
STORE_PATH: Path = Path(
    os.getenv("TASKTINT_STORE_PATH", str(Path(__file__).parent / "data" / "tasktint.db"))
)
DB_CONNECT_TIMEOUT: float = float(os.getenv("TASKTINT_DB_CONNECT_TIMEOUT", "30.0"))
DB_RETRY_MAX: int = int(os.getenv("TASKTINT_DB_RETRY_MAX", "5"))
DB_RETRY_BASE_DELAY: float = float(os.getenv("TASKTINT_DB_RETRY_BASE_DELAY", "0.1"))
DB_RETRY_MAX_DELAY: float = float(os.getenv("TASKTINT_DB_RETRY_MAX_DELAY", "2.0"))
DB_RETRY_JITTER: float = float(os.getenv("TASKTINT_DB_RETRY_JITTER", "0.1"))

# --- API ---
API_HOST: str = os.getenv("TASKTINT_API_HOST", "127.0.0.1")
API_PORT: int = int(os.getenv("TASKTINT_API_PORT", "8000"))
API_RESOLVE_BATCH_MAX: int = 500
API_ALLOWED_ORIGINS: list[str] = [
    origin.strip()
    for origin in os.getenv(
        "TASKTINT_API_ALLOWED_ORIGINS", "https://calendar.google.com,http://localhost:3000"
    ).split(",")
    if origin.strip()
]
