import os
from dataclasses import dataclass
from pathlib import Path

"""
Central configuration for the dispatch router.
Defaults, paths and environment overrides live here.

Runtime capability configuration is a plain dict passed to Dispatcher.init():

    {
        "storage": {"threshold_bytes": ..., "db_path": ..., "remote": {...}},
        "<domain>": {...},   # passed through untouched
    }
"""


def _get_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_str(key: str, default: str) -> str:
    return os.getenv(key, "").strip() or default


# ---- Protocol ----
PROTOCOL_VERSION = "0.2.0"
ID_PREFIX = "csop_"

# ---- Dispatch defaults ----
DEFAULT_TIMEOUT_MS = _get_int("CSOP_DEFAULT_TIMEOUT_MS", 5000)
DEFAULT_MAX_RETRIES = _get_int("CSOP_DEFAULT_MAX_RETRIES", 0)

# Backoff between attempts: BASE_DELAY_MS * 2 ** attempt
BASE_DELAY_MS = 100

# ---- Storage tiering ----
STORAGE_THRESHOLD_BYTES = _get_int("CSOP_STORAGE_THRESHOLD_BYTES", 5 * 1024 * 1024)
STORAGE_KEY_MAX_LENGTH = 255
REMOTE_REQUEST_TIMEOUT_SECONDS = 30.0

# ---- Paths ----
BASE_DIR = Path(__file__).resolve().parent.parent.parent
DATA_DIR = Path(_get_str("CSOP_DATA_DIR", str(BASE_DIR / "data")))
LOCAL_DB_PATH = DATA_DIR / "csop-storage.db"

# ---- Logging ----
LOG_LEVEL = _get_str("CSOP_LOG_LEVEL", "INFO").upper()


@dataclass(frozen=True)
class Settings:
    """Snapshot of the module constants, so callers can override per instance."""
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS
    default_max_retries: int = DEFAULT_MAX_RETRIES
    local_db_path: Path = LOCAL_DB_PATH
    log_level: str = LOG_LEVEL


def load_settings() -> Settings:
    return Settings()
